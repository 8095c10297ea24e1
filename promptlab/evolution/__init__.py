"""Feedback-driven evolution of the gene pool.

Provides fitness updates from user reactions, deterministic directive-keyed
mutation of weak genes, and a fire-and-forget dispatcher that serializes
feedback onto a single worker.
"""

from .mutator import (
    REWRITE_RULES,
    MutationEngine,
    MutationResult,
    RewriteRule,
    rewrite_content,
)
from .feedback import (
    FeedbackEvolutionEngine,
    FeedbackOutcome,
    GeneHealth,
    classify_health,
    is_mutation_eligible,
)
from .dispatcher import FeedbackDispatcher

__all__ = [
    "REWRITE_RULES",
    "MutationEngine",
    "MutationResult",
    "RewriteRule",
    "rewrite_content",
    "FeedbackEvolutionEngine",
    "FeedbackOutcome",
    "GeneHealth",
    "classify_health",
    "is_mutation_eligible",
    "FeedbackDispatcher",
]
