"""Fitness-weighted random gene selection.

A gene's chance of being picked is proportional to its fitness among the
eligible candidates. If every candidate sits at fitness 0, the pick is
uniform instead, so freshly mutated genes that have not been re-scored are
never shut out entirely.

The draw is a single uniform sample matched against cumulative weights in
insertion order, so a fixed seed reproduces the same picks and ties break by
insertion order.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

import numpy as np

from promptlab.genes.gene import Gene, GeneType
from promptlab.genes.store import GeneStore
from promptlab.utils.repro import make_rng

logger = logging.getLogger(__name__)


def pick_index(weights: np.ndarray, u: float) -> int:
    """Index whose cumulative-weight bucket contains ``u`` (0 <= u < total)."""
    cumulative = np.cumsum(weights)
    idx = int(np.searchsorted(cumulative, u, side="right"))
    return min(idx, len(weights) - 1)


class GeneSelector:
    def __init__(self, store: GeneStore, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.store = store
        self._rng = rng if rng is not None else make_rng(seed)
        self._rng_lock = threading.Lock()

    def candidates(self, gene_type: GeneType, category_filter: Optional[str] = None) -> List[Gene]:
        genes = self.store.genes_for_type(gene_type)
        if category_filter is not None:
            wanted = category_filter.strip().lower()
            genes = [g for g in genes if g.category == wanted]
        return genes

    def select_best_gene(
        self,
        gene_type: GeneType,
        category_filter: Optional[str] = None,
        count_usage: bool = True,
    ) -> Optional[Gene]:
        """Draw one gene of ``gene_type``; None when nothing is eligible.

        With ``count_usage=False`` the pick is not recorded, so the caller can
        record it later with ``GeneStore.increment_usage``.
        """
        pool = self.candidates(gene_type, category_filter)
        if not pool:
            logger.debug("No candidates for %s (category=%s)", GeneType(gene_type).value, category_filter)
            return None

        weights = np.array([g.fitness_score for g in pool], dtype=np.float64)
        total = float(weights.sum())
        if total <= 0.0:
            weights = np.ones(len(pool), dtype=np.float64)
            total = float(len(pool))

        with self._rng_lock:
            u = float(self._rng.random()) * total
        chosen = pool[pick_index(weights, u)]
        if not count_usage:
            return chosen

        usage = self.store.increment_usage(chosen.id)
        if usage is not None:
            chosen = chosen.model_copy(update={"usage_count": usage})
        return chosen
