"""Write a fresh gene pool snapshot from the built-in seed genes.

Usage:
    python scripts/seed_gene_pool.py                       # writes PROMPTLAB_SNAPSHOT_PATH
    python scripts/seed_gene_pool.py --out pool.json       # custom path
    python scripts/seed_gene_pool.py --force               # replace an existing snapshot (old one kept as .bak)
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on path
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from promptlab.config import load_settings
from promptlab.genes.builtin import builtin_genes
from promptlab.genes.persistence import save_snapshot
from promptlab.genes.store import GeneStore
from promptlab.genes.validator import validate_pool
from promptlab.utils.repro import utc_timestamp


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the prompt gene pool snapshot")
    parser.add_argument(
        "--out", type=str, default=None,
        help="Snapshot path (default: PROMPTLAB_SNAPSHOT_PATH)",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Overwrite an existing snapshot",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = load_settings()
    out = Path(args.out or settings.snapshot_path)
    if out.exists() and not args.force:
        print(f"Snapshot already exists at {out}; use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    store = GeneStore(builtin_genes())
    ok, errs = validate_pool(store)
    if not ok:
        for e in errs:
            print(f"  - {e}", file=sys.stderr)
        sys.exit(2)

    if out.exists():
        backup = out.with_name(f"{out.name}.{utc_timestamp()}.bak")
        out.replace(backup)
        print(f"Previous snapshot moved to {backup}")

    save_snapshot(store, out)
    print(f"Seeded {len(store)} genes across {len(store.types())} types -> {out}")


if __name__ == "__main__":
    main()
