"""Simulate synthesize -> feedback cycles against the gene pool.

Each cycle picks an intent, synthesizes a prompt and reports a reaction drawn
with the given positive rate. Useful for watching fitness drift and mutation
kick in without a model or UI attached.

Usage:
    python scripts/simulate_feedback.py --cycles 200 --positive-rate 0.3
    python scripts/simulate_feedback.py --snapshot pool.json --report-json report.json
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path

# Ensure project root is on path
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from promptlab.config import load_settings
from promptlab.engine import PromptGeneEngine
from promptlab.errors import IncompleteSynthesis
from promptlab.evaluation.report import PoolReport
from promptlab.genes.gene import UserFeedback
from promptlab.synthesis.context import ContextSnapshot, Intent
from promptlab.utils.repro import set_global_seed, write_json

INTENTS = [
    Intent("plan_day", "schedule"),
    Intent("daily_digest", "summary"),
    Intent("weekly_review", "insight"),
]

NEGATIVE_CONTEXTS = [
    "answer was too long",
    "tone felt cold",
    "missed a meeting conflict",
    "",
]


def _cli_progress(current: int, total: int, spawned: int) -> None:
    pct = (current / total * 100) if total > 0 else 0
    print(f"  [{current}/{total}] ({pct:.0f}%) mutations so far: {spawned}", file=sys.stderr)


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate feedback cycles against the gene pool")
    parser.add_argument("--cycles", type=int, default=100, help="Number of cycles (default: 100)")
    parser.add_argument(
        "--positive-rate", type=float, default=0.5,
        help="Probability a reaction is positive (default: 0.5)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: GLOBAL_SEED)")
    parser.add_argument("--snapshot", type=str, default=None, help="Snapshot path (default: PROMPTLAB_SNAPSHOT_PATH)")
    parser.add_argument("--report-json", type=str, default=None, help="Also write the pool report and mutation history as JSON")
    parser.add_argument("--no-persist", action="store_true", help="Do not write snapshots")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = load_settings()
    updates = {}
    if args.snapshot:
        updates["snapshot_path"] = args.snapshot
    if args.no_persist:
        updates.update(checkpoint_every=0, persist_on_close=False)
    if updates:
        settings = settings.model_copy(update=updates)

    seed = args.seed if args.seed is not None else settings.global_seed
    if seed is not None:
        set_global_seed(seed)

    spawned = 0
    incomplete = 0
    with PromptGeneEngine.from_settings(settings, seed=seed) as engine:
        for i in range(args.cycles):
            intent = random.choice(INTENTS)
            context = ContextSnapshot.of(
                event_count=random.randint(0, 9),
                next_meeting_time=f"{random.randint(8, 17):02d}:{random.choice([0, 15, 30, 45]):02d}",
                free_hours=random.randint(0, 6),
            )
            try:
                prompt = engine.synthesize(intent, context)
            except IncompleteSynthesis as e:
                incomplete += 1
                logging.getLogger(__name__).warning("%s", e)
                continue

            if random.random() < args.positive_rate:
                feedback = UserFeedback.positive()
            else:
                feedback = UserFeedback.negative(random.choice(NEGATIVE_CONTEXTS))
            outcome = engine.apply_feedback_now(prompt, feedback)
            spawned += len(outcome.spawned)

            if (i + 1) % max(1, args.cycles // 10) == 0:
                _cli_progress(i + 1, args.cycles, spawned)

        report = PoolReport.from_store(engine.store, settings)
        mutations = [r.to_dict() for r in engine.mutation_engine.history]

    print()
    print(report.to_summary())
    print(f"\nCycles: {args.cycles}, incomplete syntheses: {incomplete}, mutations: {spawned}")
    skipped = sum(1 for m in mutations if not m["success"])
    if skipped:
        print(f"Skipped mutations: {skipped}")
    if args.report_json:
        payload = report.to_dict()
        payload["mutations"] = mutations
        write_json(args.report_json, payload)
        print(f"Report written to {args.report_json}")


if __name__ == "__main__":
    main()
