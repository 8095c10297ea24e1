"""Type-indexed, thread-safe gene store.

The store is the only mutable shared resource in the engine. A single
re-entrant lock serializes every mutation, and reads hand out copies, so no
caller can observe (or cause) a half-updated gene. Genes are never deleted.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Dict, Iterable, List, Optional

from .gene import Gene, GeneType, clamp_fitness

logger = logging.getLogger(__name__)


class GeneStore:
    def __init__(self, genes: Optional[Iterable[Gene]] = None):
        self._lock = threading.RLock()
        self._by_type: Dict[GeneType, List[str]] = {t: [] for t in GeneType}
        # id -> gene, in insertion order
        self._genes: Dict[str, Gene] = {}
        for gene in genes or ():
            self.add_gene(gene)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_gene(self, gene: Gene) -> Optional[Gene]:
        """Insert a copy of ``gene``, assigning a fresh id if it has none.

        A child gene is refused (None) unless its parent is already stored
        with the same type and ``version - 1``.
        """
        with self._lock:
            stored = gene.model_copy(deep=True)
            if not stored.id:
                stored = stored.model_copy(update={"id": uuid.uuid4().hex})
            if stored.id in self._genes:
                # Ids come from the store or the mutation engine, so this is a bug upstream
                logger.error("Duplicate gene id %s ignored", stored.id)
                return self._genes[stored.id].model_copy(deep=True)
            problem = self._lineage_problem(stored)
            if problem:
                logger.error("Gene %s refused: %s", stored.id, problem)
                return None
            self._genes[stored.id] = stored
            self._by_type[stored.type].append(stored.id)
            logger.debug("Added gene %s (%s v%d)", stored.id, stored.type.value, stored.version)
            return stored.model_copy(deep=True)

    def adjust_fitness(self, gene_id: str, delta: float) -> Optional[float]:
        with self._lock:
            gene = self._lookup(gene_id, "adjust_fitness")
            if gene is None:
                return None
            gene.fitness_score = clamp_fitness(gene.fitness_score + delta)
            return gene.fitness_score

    def record_positive_reaction(self, gene_id: str) -> None:
        with self._lock:
            gene = self._lookup(gene_id, "record_positive_reaction")
            if gene is not None:
                gene.positive_reactions += 1

    def record_negative_reaction(self, gene_id: str) -> None:
        with self._lock:
            gene = self._lookup(gene_id, "record_negative_reaction")
            if gene is not None:
                gene.negative_reactions += 1

    def increment_usage(self, gene_id: str) -> Optional[int]:
        with self._lock:
            gene = self._lookup(gene_id, "increment_usage")
            if gene is None:
                return None
            gene.usage_count += 1
            return gene.usage_count

    def apply_reaction(self, gene_id: str, delta: float, positive: bool) -> Optional[Gene]:
        """Adjust fitness and bump the matching reaction counter as one unit.

        Returns a copy of the updated gene, or None for an unknown id.
        """
        with self._lock:
            gene = self._lookup(gene_id, "apply_reaction")
            if gene is None:
                return None
            self.adjust_fitness(gene_id, delta)
            if positive:
                self.record_positive_reaction(gene_id)
            else:
                self.record_negative_reaction(gene_id)
            return gene.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def genes_for_type(self, gene_type: GeneType) -> List[Gene]:
        """Snapshot of genes of one type, in insertion order. Empty if none."""
        with self._lock:
            return [self._genes[gid].model_copy(deep=True) for gid in self._by_type[GeneType(gene_type)]]

    def get_gene(self, gene_id: str) -> Optional[Gene]:
        with self._lock:
            gene = self._genes.get(gene_id)
            return gene.model_copy(deep=True) if gene is not None else None

    def all_genes(self) -> List[Gene]:
        with self._lock:
            return [g.model_copy(deep=True) for g in self._genes.values()]

    def types(self) -> List[GeneType]:
        with self._lock:
            return [t for t in GeneType if self._by_type[t]]

    def __len__(self) -> int:
        with self._lock:
            return len(self._genes)

    def __contains__(self, gene_id: object) -> bool:
        with self._lock:
            return gene_id in self._genes

    def _lineage_problem(self, gene: Gene) -> str:
        if gene.parent_gene_id is None:
            return ""
        parent = self._genes.get(gene.parent_gene_id)
        if parent is None:
            return f"parent {gene.parent_gene_id} not in store"
        if parent.type != gene.type:
            return f"type {gene.type.value} differs from parent type {parent.type.value}"
        if gene.version != parent.version + 1:
            return f"version {gene.version} != parent version {parent.version} + 1"
        return ""

    def _lookup(self, gene_id: str, op: str) -> Optional[Gene]:
        gene = self._genes.get(gene_id)
        if gene is None:
            logger.warning("UnknownGeneId: %s(%s) ignored", op, gene_id)
        return gene
