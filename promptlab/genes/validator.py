from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from .gene import Gene, GeneType
from .store import GeneStore

REQUIRED_TYPES = (GeneType.PERSONA, GeneType.RESPONSE_FORMAT, GeneType.SAFETY_GUARDRAIL)


def check_lineage(genes: Iterable[Gene]) -> List[str]:
    """Lineage errors for genes given in insertion order.

    A parent must appear before its child, carry a different id, and have
    exactly ``child.version - 1``.
    """
    errs: List[str] = []
    seen: Dict[str, Gene] = {}
    for gene in genes:
        if gene.parent_gene_id is not None:
            parent = seen.get(gene.parent_gene_id)
            if gene.parent_gene_id == gene.id:
                errs.append(f"Gene {gene.id} is its own parent")
            elif parent is None:
                errs.append(f"Gene {gene.id} has orphaned parent_gene_id {gene.parent_gene_id}")
            else:
                if gene.version != parent.version + 1:
                    errs.append(
                        f"Gene {gene.id} version {gene.version} != parent {parent.id} version {parent.version} + 1"
                    )
                if gene.type != parent.type:
                    errs.append(f"Gene {gene.id} type {gene.type.value} differs from parent type {parent.type.value}")
        seen[gene.id] = gene
    return errs


def validate_pool(store: GeneStore) -> Tuple[bool, List[str]]:
    errs: List[str] = []
    genes = store.all_genes()

    for t in REQUIRED_TYPES:
        if not store.genes_for_type(t):
            errs.append(f"No genes for required slot: {t.value}")

    for g in genes:
        if not 0.0 <= g.fitness_score <= 1.0:
            errs.append(f"Gene {g.id} fitness {g.fitness_score} out of range")

    errs.extend(check_lineage(genes))
    return (len(errs) == 0), errs
