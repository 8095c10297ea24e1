"""Gene pool reporting.

Summarises fitness per gene type, health bands and lineage depth for the
CLI scripts and periodic logging.
"""

from .report import PoolReport, TypeStats, lineage_depth

__all__ = [
    "PoolReport",
    "TypeStats",
    "lineage_depth",
]
