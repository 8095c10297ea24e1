import threading

import pytest

from promptlab.config import Settings
from promptlab.evolution.feedback import (
    FeedbackEvolutionEngine,
    GeneHealth,
    classify_health,
    is_mutation_eligible,
)
from promptlab.genes.gene import Gene, GeneType, UserFeedback
from promptlab.genes.store import GeneStore
from promptlab.synthesis.context import Intent
from promptlab.synthesis.synthesizer import SynthesizedPrompt


def _gene(gene_id="g", fitness=0.5, usage=0, directive="make it more concise", **kw):
    return Gene(
        id=gene_id,
        type=kw.pop("type", GeneType.RESPONSE_FORMAT),
        content=kw.pop("content", "Answer in bullets. Add as much detail as possible."),
        fitness_score=fitness,
        usage_count=usage,
        evolution_directive=directive,
        **kw,
    )


def _prompt(*genes):
    return SynthesizedPrompt(intent=Intent("plan_day", "schedule"), genes=list(genes))


def _engine(*genes, settings=None):
    store = GeneStore(genes)
    return store, FeedbackEvolutionEngine(store, settings=settings or Settings())


# ---------------------------------------------------------------------------
# Health bands
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("fitness,band", [
    (1.0, GeneHealth.HEALTHY),
    (0.5, GeneHealth.HEALTHY),
    (0.49, GeneHealth.WEAK),
    (0.3, GeneHealth.WEAK),
    (0.29, GeneHealth.CRITICAL),
    (0.0, GeneHealth.CRITICAL),
])
def test_classify_health(fitness, band):
    assert classify_health(_gene(fitness=fitness)) is band


@pytest.mark.parametrize("fitness,usage,eligible", [
    (0.2, 11, True),
    (0.2, 10, False),   # usage must exceed the floor
    (0.3, 50, False),   # fitness must be below the threshold
])
def test_mutation_eligibility(fitness, usage, eligible):
    assert is_mutation_eligible(_gene(fitness=fitness, usage=usage)) is eligible


# ---------------------------------------------------------------------------
# Fitness updates
# ---------------------------------------------------------------------------

def test_positive_feedback_converges_to_one():
    store, engine = _engine(_gene(fitness=0.5))
    for _ in range(10):
        engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.positive())
    g = store.get_gene("g")
    assert g.fitness_score == pytest.approx(1.0)
    assert g.positive_reactions == 10

    engine.apply_feedback(_prompt(g), UserFeedback.positive())
    assert store.get_gene("g").fitness_score == 1.0


def test_negative_feedback_applies_larger_penalty():
    store, engine = _engine(_gene(fitness=0.5))
    outcome = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative())
    assert outcome.adjusted["g"] == pytest.approx(0.42)
    assert store.get_gene("g").negative_reactions == 1


def test_fitness_stays_in_range_under_any_sequence():
    store, engine = _engine(_gene(fitness=0.1))
    pattern = [False] * 12 + [True] * 30 + [False, True] * 10
    for positive in pattern:
        fb = UserFeedback.positive() if positive else UserFeedback.negative()
        engine.apply_feedback(_prompt(store.get_gene("g")), fb)
        assert 0.0 <= store.get_gene("g").fitness_score <= 1.0


def test_duplicate_gene_in_prompt_counted_once():
    store, engine = _engine(_gene(fitness=0.5))
    g = store.get_gene("g")
    engine.apply_feedback(_prompt(g, g), UserFeedback.positive())
    assert store.get_gene("g").positive_reactions == 1


def test_unknown_gene_ids_are_reported_not_raised():
    store, engine = _engine(_gene("known"))
    ghost = _gene("ghost")
    outcome = engine.apply_feedback(_prompt(store.get_gene("known"), ghost), UserFeedback.negative())
    assert outcome.unknown_gene_ids == ["ghost"]
    assert "known" in outcome.adjusted


# ---------------------------------------------------------------------------
# Mutation trigger
# ---------------------------------------------------------------------------

def test_negative_feedback_triggers_mutation():
    store, engine = _engine(_gene(fitness=0.25, usage=15))
    outcome = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative("too long"))

    src = store.get_gene("g")
    assert src.fitness_score == pytest.approx(0.17)
    assert len(outcome.spawned) == 1
    child = outcome.spawned[0]
    assert child.parent_gene_id == "g"
    assert child.fitness_score == pytest.approx(0.5)
    assert child.version == src.version + 1
    assert child.id in store
    assert len(store) == 2


def test_penalty_never_goes_below_zero():
    store, engine = _engine(_gene(fitness=0.05, usage=15))
    engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative())
    assert store.get_gene("g").fitness_score == 0.0


def test_low_usage_does_not_trigger_mutation():
    store, engine = _engine(_gene(fitness=0.25, usage=5))
    outcome = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative())
    assert outcome.spawned == []
    assert len(store) == 1


def test_positive_feedback_never_mutates():
    store, engine = _engine(_gene(fitness=0.0, usage=50))
    outcome = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.positive())
    assert outcome.spawned == []


def test_skipped_mutation_keeps_fitness_change():
    store, engine = _engine(_gene(fitness=0.25, usage=15, directive=""))
    outcome = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative())
    assert outcome.spawned == []
    assert "g" in outcome.skipped_mutations
    assert store.get_gene("g").fitness_score == pytest.approx(0.17)
    assert len(store) == 1


def test_parent_stays_in_pool_after_mutation():
    store, engine = _engine(_gene(fitness=0.2, usage=30))
    for _ in range(3):
        engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative("too long"))
    assert "g" in store
    assert store.get_gene("g").fitness_score == 0.0


def test_outcome_to_dict():
    store, engine = _engine(_gene(fitness=0.25, usage=15))
    d = engine.apply_feedback(_prompt(store.get_gene("g")), UserFeedback.negative()).to_dict()
    assert d["polarity"] == "negative"
    assert d["health"]["g"] == "critical"
    assert d["spawned"][0]["parent_gene_id"] == "g"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

def test_concurrent_feedback_loses_no_updates():
    genes = [_gene(f"g{i}", fitness=0.5, directive="") for i in range(3)]
    store, engine = _engine(*genes)
    prompt = _prompt(*store.all_genes())
    n_threads, per_thread = 6, 50

    def worker():
        for _ in range(per_thread):
            engine.apply_feedback(prompt, UserFeedback.positive())
            engine.apply_feedback(prompt, UserFeedback.negative())

    threads = [threading.Thread(target=worker) for _ in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for g in store.all_genes():
        assert g.positive_reactions == n_threads * per_thread
        assert g.negative_reactions == n_threads * per_thread
        assert 0.0 <= g.fitness_score <= 1.0
