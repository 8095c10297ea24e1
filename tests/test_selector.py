import numpy as np
import pytest

from promptlab.genes.gene import Gene, GeneType
from promptlab.genes.store import GeneStore
from promptlab.synthesis.selector import GeneSelector, pick_index


def _gene(gene_id, fitness, gene_type=GeneType.PERSONA, category=None):
    return Gene(id=gene_id, type=gene_type, content=f"gene {gene_id}", fitness_score=fitness, category=category)


# ---------------------------------------------------------------------------
# pick_index
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("u,expected", [
    (0.0, 0),
    (0.89, 0),
    (0.9, 1),     # boundary belongs to the next bucket
    (0.99, 1),
])
def test_pick_index_buckets(u, expected):
    assert pick_index(np.array([0.9, 0.1]), u) == expected


def test_pick_index_ties_break_by_insertion_order():
    weights = np.array([0.5, 0.5, 0.5])
    assert pick_index(weights, 0.0) == 0
    assert pick_index(weights, 0.49) == 0
    assert pick_index(weights, 0.5) == 1


# ---------------------------------------------------------------------------
# GeneSelector
# ---------------------------------------------------------------------------

def test_selection_proportional_to_fitness():
    store = GeneStore([_gene("hi", 0.9), _gene("lo", 0.1)])
    selector = GeneSelector(store, seed=1337)

    trials = 10_000
    hits = sum(1 for _ in range(trials) if selector.select_best_gene(GeneType.PERSONA).id == "hi")
    assert hits / trials == pytest.approx(0.9, abs=0.05)


def test_fixed_seed_reproduces_picks():
    genes = [_gene("a", 0.2), _gene("b", 0.5), _gene("c", 0.3)]
    first = GeneSelector(GeneStore(genes), seed=7)
    second = GeneSelector(GeneStore(genes), seed=7)
    picks_a = [first.select_best_gene(GeneType.PERSONA).id for _ in range(50)]
    picks_b = [second.select_best_gene(GeneType.PERSONA).id for _ in range(50)]
    assert picks_a == picks_b


def test_all_zero_fitness_falls_back_to_uniform():
    store = GeneStore([_gene("a", 0.0), _gene("b", 0.0)])
    selector = GeneSelector(store, seed=1337)
    picks = [selector.select_best_gene(GeneType.PERSONA).id for _ in range(2_000)]
    share_a = picks.count("a") / len(picks)
    assert share_a == pytest.approx(0.5, abs=0.05)


def test_zero_fitness_gene_never_picked_when_others_positive():
    store = GeneStore([_gene("dead", 0.0), _gene("alive", 0.4)])
    selector = GeneSelector(store, seed=3)
    assert {selector.select_best_gene(GeneType.PERSONA).id for _ in range(200)} == {"alive"}


def test_empty_pool_returns_none():
    selector = GeneSelector(GeneStore(), seed=1)
    assert selector.select_best_gene(GeneType.PERSONA) is None


def test_selection_increments_usage():
    store = GeneStore([_gene("only", 0.5)])
    selector = GeneSelector(store, seed=1)
    first = selector.select_best_gene(GeneType.PERSONA)
    second = selector.select_best_gene(GeneType.PERSONA)
    assert first.usage_count == 1
    assert second.usage_count == 2
    assert store.get_gene("only").usage_count == 2


def test_uncounted_selection_leaves_usage():
    store = GeneStore([_gene("only", 0.5)])
    selector = GeneSelector(store, seed=1)
    assert selector.select_best_gene(GeneType.PERSONA, count_usage=False).id == "only"
    assert store.get_gene("only").usage_count == 0


def test_category_filter():
    store = GeneStore([
        _gene("sched", 0.9, GeneType.DOMAIN_INSTRUCTION, category="schedule"),
        _gene("summ", 0.9, GeneType.DOMAIN_INSTRUCTION, category="summary"),
    ])
    selector = GeneSelector(store, seed=11)
    picks = {selector.select_best_gene(GeneType.DOMAIN_INSTRUCTION, "Schedule").id for _ in range(50)}
    assert picks == {"sched"}
    assert selector.select_best_gene(GeneType.DOMAIN_INSTRUCTION, "unknown") is None
