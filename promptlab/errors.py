"""Error taxonomy for the gene pool engine.

Only ``IncompleteSynthesis`` is meant to reach callers of the engine.
``MutationSkipped`` and ``PersistenceFailure`` are raised internally and
absorbed (logged) by the feedback engine and ``load_or_seed`` respectively.
Operations on unknown gene ids are logged no-ops and never raise.
"""
from __future__ import annotations

from typing import List, Sequence


class PromptLabError(Exception):
    """Base class for all promptlab errors."""
    pass


class IncompleteSynthesis(PromptLabError):
    """A required slot had no eligible gene, so no prompt was emitted."""

    def __init__(self, missing_slots: Sequence[str], intent: str = ""):
        self.missing_slots: List[str] = list(missing_slots)
        self.intent = intent
        msg = f"Missing required slot(s): {', '.join(self.missing_slots)}"
        if intent:
            msg += f" (intent={intent})"
        super().__init__(msg)


class MutationSkipped(PromptLabError):
    """The source gene's evolution directive could not drive a mutation."""

    def __init__(self, gene_id: str, reason: str):
        self.gene_id = gene_id
        self.reason = reason
        super().__init__(f"Mutation of gene {gene_id} skipped: {reason}")


class PersistenceFailure(PromptLabError):
    """A gene pool snapshot could not be read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Snapshot {path}: {reason}")
