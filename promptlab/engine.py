"""Engine facade: one shared gene store, synthesis on the caller's thread,
feedback serialized on a background worker, periodic snapshots.

Typical use::

    with PromptGeneEngine.from_settings(load_settings()) as engine:
        prompt = engine.synthesize(Intent("plan_day", "schedule"), ContextSnapshot.of(event_count=4))
        ...  # send prompt.to_prompt_text() to the model
        engine.report_feedback(prompt, UserFeedback.negative("too long"))

Only ``IncompleteSynthesis`` escapes ``synthesize``; everything on the
feedback path is absorbed and logged.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Optional

from promptlab.config import Settings
from promptlab.errors import PersistenceFailure
from promptlab.evolution.dispatcher import FeedbackDispatcher
from promptlab.evolution.feedback import FeedbackEvolutionEngine, FeedbackOutcome
from promptlab.evolution.mutator import MutationEngine
from promptlab.genes.builtin import builtin_genes
from promptlab.genes.gene import UserFeedback
from promptlab.genes.persistence import load_or_seed, save_snapshot
from promptlab.genes.store import GeneStore
from promptlab.synthesis.context import ContextSnapshot, Intent
from promptlab.synthesis.selector import GeneSelector
from promptlab.synthesis.synthesizer import PromptSynthesizer, SynthesizedPrompt

logger = logging.getLogger(__name__)


class PromptGeneEngine:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[GeneStore] = None,
        seed: Optional[int] = None,
    ):
        self.settings = settings or Settings()
        self.store = store if store is not None else GeneStore(builtin_genes())
        self.selector = GeneSelector(self.store, seed=seed if seed is not None else self.settings.global_seed)
        self.synthesizer = PromptSynthesizer(self.selector)
        self.mutation_engine = MutationEngine(self.settings)
        self.feedback_engine = FeedbackEvolutionEngine(self.store, self.mutation_engine, self.settings)
        self.dispatcher = FeedbackDispatcher(self.feedback_engine, on_applied=self._after_feedback)

        self._applied = 0
        self._count_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings, seed: Optional[int] = None) -> "PromptGeneEngine":
        store = load_or_seed(settings.snapshot_path, builtin_genes())
        return cls(settings=settings, store=store, seed=seed)

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def synthesize(self, intent: Intent, context: Optional[ContextSnapshot] = None) -> SynthesizedPrompt:
        return self.synthesizer.synthesize(intent, context)

    def report_feedback(self, prompt: SynthesizedPrompt, feedback: UserFeedback) -> Future:
        """Queue feedback and return immediately; the Future may be ignored.

        After ``close()`` the report is dropped and the Future resolves to None.
        """
        if self._closed:
            logger.warning("Engine closed; dropping %s feedback for %d gene(s)", feedback.polarity, len(prompt.genes))
            dropped: Future = Future()
            dropped.set_result(None)
            return dropped
        return self.dispatcher.submit(prompt, feedback)

    def apply_feedback_now(self, prompt: SynthesizedPrompt, feedback: UserFeedback) -> FeedbackOutcome:
        """Synchronous path (scripts and tests); bypasses the worker queue."""
        outcome = self.feedback_engine.apply_feedback(prompt, feedback)
        self._after_feedback(outcome)
        return outcome

    def checkpoint(self, path: Optional[str | Path] = None) -> Optional[Path]:
        target = path or self.settings.snapshot_path
        try:
            return save_snapshot(self.store, target)
        except PersistenceFailure as e:
            logger.error("Checkpoint failed: %s", e)
            return None

    def close(self, timeout: Optional[float] = None) -> None:
        if self._closed:
            return
        self._closed = True
        drained = self.dispatcher.drain(timeout=timeout)
        if not drained:
            logger.warning("Close timed out; dropping %d pending feedback job(s)", self.dispatcher.pending())
        self.dispatcher.shutdown(wait_for_pending=drained)
        if self.settings.persist_on_close:
            self.checkpoint()

    def __enter__(self) -> "PromptGeneEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _after_feedback(self, outcome: FeedbackOutcome) -> None:
        every = self.settings.checkpoint_every
        if every <= 0:
            return
        with self._count_lock:
            self._applied += 1
            due = self._applied % every == 0
        if due:
            self.checkpoint()
