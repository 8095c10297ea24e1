"""Gene pool report builder.

Aggregates per-type fitness, health bands and lineage depth into one
serializable report for logs and the CLI scripts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from promptlab.config import Settings
from promptlab.evolution.feedback import GeneHealth, classify_health
from promptlab.genes.gene import Gene, GeneType
from promptlab.genes.store import GeneStore
from promptlab.utils.repro import utc_isoformat


@dataclass
class TypeStats:
    """Fitness statistics for one gene type."""
    gene_type: str
    count: int
    mean_fitness: float
    max_fitness: float
    mutated: int
    bands: Dict[str, int] = field(default_factory=dict)

    def summary(self) -> str:
        bands = ", ".join(f"{k}={v}" for k, v in self.bands.items())
        return (
            f"{self.gene_type:<20} n={self.count:<3} mean={self.mean_fitness:.3f} "
            f"max={self.max_fitness:.3f} mutated={self.mutated} [{bands}]"
        )


def lineage_depth(gene: Gene, by_id: Dict[str, Gene]) -> int:
    depth = 0
    seen = {gene.id}
    current = gene
    while current.parent_gene_id is not None and current.parent_gene_id in by_id:
        current = by_id[current.parent_gene_id]
        if current.id in seen:
            break
        seen.add(current.id)
        depth += 1
    return depth


@dataclass
class PoolReport:
    timestamp: str = ""
    total_genes: int = 0
    seed_genes: int = 0
    mutated_genes: int = 0
    max_lineage_depth: int = 0
    total_usage: int = 0
    type_stats: List[TypeStats] = field(default_factory=list)
    top_genes: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = utc_isoformat()

    @classmethod
    def from_store(cls, store: GeneStore, settings: Optional[Settings] = None, top_k: int = 5) -> "PoolReport":
        s = settings or Settings()
        genes = store.all_genes()
        by_id = {g.id: g for g in genes}

        stats: List[TypeStats] = []
        for t in GeneType:
            group = [g for g in genes if g.type == t]
            if not group:
                continue
            fitness = np.array([g.fitness_score for g in group], dtype=np.float64)
            bands = {h.value: 0 for h in GeneHealth}
            for g in group:
                bands[classify_health(g, s).value] += 1
            stats.append(TypeStats(
                gene_type=t.value,
                count=len(group),
                mean_fitness=round(float(fitness.mean()), 4),
                max_fitness=round(float(fitness.max()), 4),
                mutated=sum(1 for g in group if not g.is_seed),
                bands=bands,
            ))

        ranked = sorted(genes, key=lambda g: (-g.fitness_score, -g.usage_count, g.id))[:top_k]
        return cls(
            total_genes=len(genes),
            seed_genes=sum(1 for g in genes if g.is_seed),
            mutated_genes=sum(1 for g in genes if not g.is_seed),
            max_lineage_depth=max((lineage_depth(g, by_id) for g in genes), default=0),
            total_usage=sum(g.usage_count for g in genes),
            type_stats=stats,
            top_genes=[
                {
                    "id": g.id,
                    "type": g.type.value,
                    "fitness": round(g.fitness_score, 4),
                    "usage": g.usage_count,
                    "acceptance": round(g.acceptance_ratio, 4),
                }
                for g in ranked
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "total_genes": self.total_genes,
            "seed_genes": self.seed_genes,
            "mutated_genes": self.mutated_genes,
            "max_lineage_depth": self.max_lineage_depth,
            "total_usage": self.total_usage,
            "types": [
                {
                    "type": s.gene_type,
                    "count": s.count,
                    "mean_fitness": s.mean_fitness,
                    "max_fitness": s.max_fitness,
                    "mutated": s.mutated,
                    "bands": dict(s.bands),
                }
                for s in self.type_stats
            ],
            "top_genes": list(self.top_genes),
        }

    def to_summary(self) -> str:
        lines = [f"Gene Pool Report - {self.timestamp}", "=" * 50]
        lines.append(
            f"Genes: {self.total_genes} ({self.seed_genes} seed, {self.mutated_genes} mutated), "
            f"max lineage depth {self.max_lineage_depth}, total selections {self.total_usage}"
        )
        lines.append("")
        for s in self.type_stats:
            lines.append(f"  {s.summary()}")
        if self.top_genes:
            lines.append("\nTop genes:")
            for g in self.top_genes:
                lines.append(
                    f"  {g['id']} ({g['type']}) fitness={g['fitness']:.3f} "
                    f"usage={g['usage']} acceptance={g['acceptance']:.2f}"
                )
        return "\n".join(lines)
