"""Intent and runtime context used to fill context-template genes.

The calendar facts themselves are fetched elsewhere; this module only holds
the values handed to the synthesizer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from promptlab.utils.repro import utc_isoformat


@dataclass(frozen=True)
class Intent:
    """Classified purpose of a user request."""
    name: str
    category: str

    def __post_init__(self):
        object.__setattr__(self, "category", self.category.strip().lower())


@dataclass
class ContextSnapshot:
    """Runtime data (e.g. calendar facts) keyed by placeholder name."""
    values: Dict[str, Any] = field(default_factory=dict)
    captured_at: str = ""

    def __post_init__(self):
        if not self.captured_at:
            self.captured_at = utc_isoformat()

    @classmethod
    def of(cls, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "ContextSnapshot":
        merged: Dict[str, Any] = dict(values or {})
        merged.update(kwargs)
        return cls(values=merged)

    def as_template_values(self) -> Dict[str, str]:
        """Stringified values; datetimes are rendered as HH:MM."""
        out: Dict[str, str] = {}
        for k, v in self.values.items():
            if v is None:
                continue
            if isinstance(v, datetime):
                out[k] = v.strftime("%H:%M")
            else:
                out[k] = str(v)
        return out
