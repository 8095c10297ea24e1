"""Fire-and-forget feedback dispatch.

Feedback reports are queued onto a single worker thread, which is the
engine's one serialization point for fitness updates and mutation. Callers
get a Future back immediately and never have to wait on it; failures inside
a job are logged, never re-raised into the caller.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional, Set

from promptlab.genes.gene import UserFeedback
from promptlab.synthesis.synthesizer import SynthesizedPrompt
from .feedback import FeedbackEvolutionEngine, FeedbackOutcome

logger = logging.getLogger(__name__)


class FeedbackDispatcher:
    def __init__(
        self,
        engine: FeedbackEvolutionEngine,
        on_applied: Optional[Callable[[FeedbackOutcome], None]] = None,
    ):
        self.engine = engine
        self.on_applied = on_applied
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="promptlab-feedback")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, prompt: SynthesizedPrompt, feedback: UserFeedback) -> Future:
        with self._lock:
            if self._closed:
                raise RuntimeError("FeedbackDispatcher is shut down")
            future = self._pool.submit(self._run, prompt, feedback)
            self._pending.add(future)
        future.add_done_callback(self._done)
        return future

    def _run(self, prompt: SynthesizedPrompt, feedback: UserFeedback) -> FeedbackOutcome:
        outcome = self.engine.apply_feedback(prompt, feedback)
        if self.on_applied is not None:
            self.on_applied(outcome)
        return outcome

    def _done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Feedback job failed: %s: %s", type(exc).__name__, exc)

    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued feedback; True if everything finished in time."""
        with self._lock:
            futures = list(self._pending)
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        """Stop the worker. Without ``wait_for_pending`` queued jobs are cancelled
        and a job already running finishes in the background."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait_for_pending, cancel_futures=not wait_for_pending)
