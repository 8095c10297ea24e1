"""Gene mutation driven by a gene's evolution directive.

Content rewriting is a deterministic policy, not a language model: the
directive is matched by keyword against ``REWRITE_RULES`` and every matching
rule is applied in table order. If no rule matches, the directive itself is
appended as an extra instruction. A note derived from the feedback context
is appended last, replacing any note left by an earlier mutation.

The child keeps the parent's type, category and directive, gets a fresh id,
``version + 1``, zeroed counters and a neutral fitness so it gets a fair
trial instead of inheriting its parent's poor score.
"""
from __future__ import annotations

import logging
import re
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, NoReturn, Optional, Sequence, Tuple

from promptlab.config import Settings
from promptlab.errors import MutationSkipped
from promptlab.genes.gene import Gene
from promptlab.utils.repro import utc_isoformat

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_FILLER_RE = re.compile(r"\b(?:very|really|just|quite|simply|basically|actually)\s+", re.IGNORECASE)
_NOTE_RE = re.compile(r"\s*Avoid repeating this issue: [^\n]*$")
_MAX_NOTE_CHARS = 160

_PLAIN_WORDS: Dict[str, str] = {
    "utilise": "use",
    "utilize": "use",
    "approximately": "about",
    "in order to": "to",
    "prior to": "before",
    "subsequently": "then",
    "assistance": "help",
    "consecutive": "back-to-back",
    "chronological order": "time order",
    "highlight": "point out",
}


# ---------------------------------------------------------------------------
# Rewrite primitives
# ---------------------------------------------------------------------------

def _append_instruction(content: str, sentence: str) -> str:
    if sentence.lower() in content.lower():
        return content
    return f"{content.rstrip()} {sentence}"


def _shorten(content: str) -> str:
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(content.strip()) if s]
    if len(sentences) > 1:
        return sentences[0]
    return _FILLER_RE.sub("", content)


def _simplify(content: str) -> str:
    out = content
    for word, plain in _PLAIN_WORDS.items():
        out = re.sub(rf"\b{re.escape(word)}\b", plain, out, flags=re.IGNORECASE)
    if out == content:
        out = _append_instruction(content, "Use plain, everyday words.")
    return out


@dataclass(frozen=True)
class RewriteRule:
    name: str
    keywords: Tuple[str, ...]
    rewrite: Callable[[str], str]

    def matches(self, directive: str) -> bool:
        d = directive.lower()
        return any(k in d for k in self.keywords)


REWRITE_RULES: Tuple[RewriteRule, ...] = (
    RewriteRule("concise", ("shorten", "shorter", "concise", "brief"), _shorten),
    RewriteRule("simplify", ("simplif", "plain", "simple"), _simplify),
    RewriteRule(
        "warmth", ("warm", "empath", "friendl", "kind"),
        lambda c: _append_instruction(c, "Acknowledge how the user may feel before giving facts."),
    ),
    RewriteRule(
        "formal", ("formal", "professional"),
        lambda c: _append_instruction(c, "Use a formal, professional register."),
    ),
    RewriteRule(
        "explicit", ("explicit", "clarif", "clear"),
        lambda c: _append_instruction(c, "State any assumption explicitly."),
    ),
    RewriteRule(
        "structure", ("structure", "list", "bullet"),
        lambda c: _append_instruction(c, "Organise the answer as a short list."),
    ),
)


def _feedback_note(feedback_context: str) -> str:
    ctx = " ".join(feedback_context.split())
    if len(ctx) > _MAX_NOTE_CHARS:
        ctx = ctx[: _MAX_NOTE_CHARS - 3].rstrip() + "..."
    return f"Avoid repeating this issue: {ctx}"


def rewrite_content(
    content: str,
    directive: str,
    feedback_context: str = "",
    rules: Sequence[RewriteRule] = REWRITE_RULES,
) -> Tuple[str, List[str]]:
    """Apply the directive-keyed rewrite policy.

    Returns (new content, names of the rules applied). Raises ValueError if
    the directive does not change the content.
    """
    base = _NOTE_RE.sub("", content).rstrip()
    applied: List[str] = []
    out = base
    for rule in rules:
        if rule.matches(directive):
            out = rule.rewrite(out)
            applied.append(rule.name)
    if not applied:
        instruction = directive.strip().rstrip(".")
        out = _append_instruction(base, instruction[0].upper() + instruction[1:] + ".")
        applied.append("directive")

    if out == base:
        raise ValueError("directive leaves the content unchanged")

    if feedback_context.strip():
        out = f"{out} {_feedback_note(feedback_context)}"
    return out, applied


# ---------------------------------------------------------------------------
# Mutation engine
# ---------------------------------------------------------------------------

@dataclass
class MutationResult:
    """Outcome of one mutation attempt (kept for logging and reports)."""
    source_gene_id: str
    success: bool
    new_gene_id: str = ""
    rules_applied: List[str] = field(default_factory=list)
    reason: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "source_gene_id": self.source_gene_id,
            "success": self.success,
            "new_gene_id": self.new_gene_id,
            "rules_applied": list(self.rules_applied),
            "reason": self.reason,
        }


class MutationEngine:
    def __init__(self, settings: Optional[Settings] = None, rules: Sequence[RewriteRule] = REWRITE_RULES):
        self.settings = settings or Settings()
        self.rules = tuple(rules)
        self.history: Deque[MutationResult] = deque(maxlen=500)

    def mutate(self, source: Gene, feedback_context: str = "") -> Gene:
        """Derive a child gene from ``source``.

        Raises MutationSkipped when the directive is empty or unusable; the
        source gene is left untouched either way.
        """
        directive = (source.evolution_directive or "").strip()
        if not directive:
            self._skip(source, "empty evolution directive")
        if not any(ch.isalpha() for ch in directive):
            self._skip(source, f"unusable evolution directive {directive!r}")

        try:
            content, applied = rewrite_content(source.content, directive, feedback_context, self.rules)
        except ValueError as e:
            self._skip(source, str(e))

        child = Gene(
            id=uuid.uuid4().hex,
            type=source.type,
            content=content,
            version=source.version + 1,
            fitness_score=self.settings.neutral_fitness,
            parent_gene_id=source.id,
            evolution_directive=source.evolution_directive,
            category=source.category,
            created_at=utc_isoformat(),
        )
        self.history.append(MutationResult(
            source_gene_id=source.id,
            success=True,
            new_gene_id=child.id,
            rules_applied=applied,
        ))
        logger.info(
            "Mutated gene %s (v%d) -> %s (v%d) via %s",
            source.id, source.version, child.id, child.version, ", ".join(applied),
        )
        return child

    def _skip(self, source: Gene, reason: str) -> NoReturn:
        self.history.append(MutationResult(source_gene_id=source.id, success=False, reason=reason))
        logger.info("MutationSkipped for gene %s: %s", source.id, reason)
        raise MutationSkipped(source.id, reason)
