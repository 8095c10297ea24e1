"""Feedback-driven fitness updates and mutation triggering.

Every gene that contributed to a synthesized prompt is rewarded (+0.05) or
penalized (-0.08) as one atomic store update together with its reaction
counter. The penalty outweighs the reward, so genes behind a
bad outcome fade faster than good ones climb.

After a negative reaction, genes that are critical (fitness below 0.3) and
well used (more than 10 selections) are handed to the mutation engine; the
child enters the pool at neutral fitness. Nothing is ever removed: genes
keep decaying and regenerating.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from promptlab.config import Settings
from promptlab.errors import MutationSkipped
from promptlab.genes.gene import Gene, UserFeedback
from promptlab.genes.store import GeneStore
from promptlab.synthesis.synthesizer import SynthesizedPrompt
from .mutator import MutationEngine

logger = logging.getLogger(__name__)


class GeneHealth(str, Enum):
    HEALTHY = "healthy"     # fitness >= healthy threshold
    WEAK = "weak"           # between mutation threshold and healthy threshold
    CRITICAL = "critical"   # below mutation threshold


def classify_health(gene: Gene, settings: Optional[Settings] = None) -> GeneHealth:
    s = settings or Settings()
    if gene.fitness_score >= s.healthy_threshold:
        return GeneHealth.HEALTHY
    if gene.fitness_score >= s.mutation_fitness_threshold:
        return GeneHealth.WEAK
    return GeneHealth.CRITICAL


def is_mutation_eligible(gene: Gene, settings: Optional[Settings] = None) -> bool:
    s = settings or Settings()
    return classify_health(gene, s) is GeneHealth.CRITICAL and gene.usage_count > s.mutation_usage_floor


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

@dataclass
class FeedbackOutcome:
    """What one feedback event did to the pool."""
    polarity: str
    adjusted: Dict[str, float] = field(default_factory=dict)   # gene id -> fitness after update
    health: Dict[str, GeneHealth] = field(default_factory=dict)
    spawned: List[Gene] = field(default_factory=list)
    skipped_mutations: Dict[str, str] = field(default_factory=dict)  # gene id -> reason
    unknown_gene_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polarity": self.polarity,
            "adjusted": dict(self.adjusted),
            "health": {k: v.value for k, v in self.health.items()},
            "spawned": [{"id": g.id, "parent_gene_id": g.parent_gene_id, "version": g.version} for g in self.spawned],
            "skipped_mutations": dict(self.skipped_mutations),
            "unknown_gene_ids": list(self.unknown_gene_ids),
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class FeedbackEvolutionEngine:
    def __init__(
        self,
        store: GeneStore,
        mutation_engine: Optional[MutationEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.mutation_engine = mutation_engine or MutationEngine(self.settings)

    def apply_feedback(self, prompt: SynthesizedPrompt, feedback: UserFeedback) -> FeedbackOutcome:
        positive = feedback.is_positive
        delta = self.settings.positive_delta if positive else -self.settings.negative_delta
        outcome = FeedbackOutcome(polarity=feedback.polarity)

        updated: List[Gene] = []
        for gene_id in dict.fromkeys(prompt.gene_ids):
            gene = self.store.apply_reaction(gene_id, delta, positive)
            if gene is None:
                outcome.unknown_gene_ids.append(gene_id)
                continue
            outcome.adjusted[gene.id] = gene.fitness_score
            outcome.health[gene.id] = classify_health(gene, self.settings)
            updated.append(gene)

        if not positive:
            for gene in updated:
                if not is_mutation_eligible(gene, self.settings):
                    continue
                try:
                    child = self.mutation_engine.mutate(gene, feedback.context)
                except MutationSkipped as e:
                    outcome.skipped_mutations[gene.id] = e.reason
                    continue
                stored = self.store.add_gene(child)
                if stored is None:
                    outcome.skipped_mutations[gene.id] = "child refused by store"
                    continue
                outcome.spawned.append(stored)

        logger.info(
            "Applied %s feedback to %d gene(s); %d spawned, %d skipped, %d unknown",
            feedback.polarity, len(outcome.adjusted), len(outcome.spawned),
            len(outcome.skipped_mutations), len(outcome.unknown_gene_ids),
        )
        return outcome
