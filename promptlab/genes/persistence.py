"""Durable snapshots of the gene pool.

Snapshots are plain JSON: ``{"schema_version", "saved_at", "genes": [...]}``
with genes in insertion order, so parents always precede their children and
lineage can be re-checked on load. Writes go through a temp file and an
atomic rename.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from promptlab.errors import PersistenceFailure
from promptlab.utils.repro import read_json, utc_isoformat, write_json
from .gene import Gene
from .store import GeneStore
from .validator import check_lineage

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def snapshot_to_dict(store: GeneStore) -> Dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "saved_at": utc_isoformat(),
        "genes": [g.model_dump(mode="json") for g in store.all_genes()],
    }


def store_from_dict(obj: Dict[str, Any], *, source: str = "<dict>") -> GeneStore:
    if not isinstance(obj, dict):
        raise PersistenceFailure(source, "snapshot root is not an object")
    version = obj.get("schema_version")
    if version != SCHEMA_VERSION:
        raise PersistenceFailure(source, f"unsupported schema_version {version!r}")

    rows = obj.get("genes")
    if not isinstance(rows, list):
        raise PersistenceFailure(source, "'genes' must be a list")

    genes: List[Gene] = []
    for idx, row in enumerate(rows):
        try:
            gene = Gene.model_validate(row)
        except ValidationError as e:
            raise PersistenceFailure(source, f"gene #{idx} invalid: {e.error_count()} error(s)") from e
        if not gene.id:
            raise PersistenceFailure(source, f"gene #{idx} has no id")
        genes.append(gene)

    ids = [g.id for g in genes]
    if len(set(ids)) != len(ids):
        raise PersistenceFailure(source, "duplicate gene ids")

    errs = check_lineage(genes)
    if errs:
        raise PersistenceFailure(source, "; ".join(errs[:5]))

    return GeneStore(genes)


def save_snapshot(store: GeneStore, path: str | Path) -> Path:
    path = Path(path)
    try:
        write_json(path, snapshot_to_dict(store))
    except OSError as e:
        raise PersistenceFailure(str(path), f"write failed: {e}") from e
    logger.info("Saved %d genes to %s", len(store), path)
    return path


def load_snapshot(path: str | Path) -> GeneStore:
    path = Path(path)
    if not path.exists():
        raise PersistenceFailure(str(path), "file not found")
    try:
        obj = read_json(path)
    except (OSError, ValueError) as e:
        raise PersistenceFailure(str(path), f"unreadable: {e}") from e
    store = store_from_dict(obj, source=str(path))
    logger.info("Loaded %d genes from %s", len(store), path)
    return store


def load_or_seed(path: str | Path, seed_genes: Iterable[Gene]) -> GeneStore:
    """Load the snapshot at ``path``; fall back to the seed set on any failure."""
    try:
        return load_snapshot(path)
    except PersistenceFailure as e:
        logger.warning("PersistenceFailure: %s; starting from seed genes", e)
        return GeneStore(seed_genes)
