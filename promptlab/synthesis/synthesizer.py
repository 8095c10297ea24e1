"""Prompt synthesis: one gene per slot, in a fixed order, with context filled in.

Slot order is persona -> response format -> domain instruction (by intent
category) -> context template -> tone -> error recovery -> safety guardrail.
Persona, response format and safety guardrail are required; if any of them
has no eligible gene the synthesis fails with ``IncompleteSynthesis`` instead
of emitting a malformed prompt. Optional slots are skipped silently.

The caller turns ``SynthesizedPrompt.to_prompt_text()`` (or the genes
themselves) into the instruction text sent to the model, and hands the prompt
back with the user's reaction for feedback attribution.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from promptlab.errors import IncompleteSynthesis
from promptlab.genes.gene import Gene, GeneType
from promptlab.utils.repro import utc_isoformat
from .context import ContextSnapshot, Intent
from .selector import GeneSelector

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


# ---------------------------------------------------------------------------
# Slot policy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SlotRule:
    """How the synthesizer treats one gene type."""
    order: Optional[int]        # Position in the prompt; None = not slotted
    required: bool = False
    by_category: bool = False   # Filter candidates by intent category
    fill_context: bool = False  # Substitute {placeholders} from the context


SLOT_RULES: Dict[GeneType, SlotRule] = {
    GeneType.PERSONA: SlotRule(order=0, required=True),
    GeneType.RESPONSE_FORMAT: SlotRule(order=1, required=True),
    GeneType.DOMAIN_INSTRUCTION: SlotRule(order=2, by_category=True),
    GeneType.CONTEXT_TEMPLATE: SlotRule(order=3, fill_context=True),
    GeneType.EMOTIONAL_TONE: SlotRule(order=4),
    GeneType.ERROR_RECOVERY: SlotRule(order=5),
    GeneType.SAFETY_GUARDRAIL: SlotRule(order=6, required=True),
    # Pooled for mutation and analysis, never placed in a prompt
    GeneType.EVOLUTION_DIRECTIVE: SlotRule(order=None),
    GeneType.INSIGHT_PATTERN: SlotRule(order=None),
    GeneType.LANGUAGE_MIXING: SlotRule(order=None),
}


def _check_slot_rules() -> None:
    missing = [t.value for t in GeneType if t not in SLOT_RULES]
    if missing:
        raise RuntimeError(f"SLOT_RULES has no entry for gene type(s): {', '.join(missing)}")


_check_slot_rules()


def fill_placeholders(content: str, values: Mapping[str, str]) -> Tuple[str, List[str]]:
    """Substitute ``{name}`` placeholders; unresolved ones stay as literal text."""
    unresolved: List[str] = []

    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        if name not in unresolved:
            unresolved.append(name)
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, content), unresolved


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class SynthesizedPrompt:
    """Ordered genes for one request plus the provenance needed for feedback."""
    intent: Intent
    genes: List[Gene] = field(default_factory=list)
    rendered: List[str] = field(default_factory=list)   # Per-gene text, same order as genes
    context_values: Dict[str, str] = field(default_factory=dict)
    unresolved_placeholders: List[str] = field(default_factory=list)
    synthesized_at: str = ""

    def __post_init__(self):
        if not self.synthesized_at:
            self.synthesized_at = utc_isoformat()

    @property
    def gene_ids(self) -> List[str]:
        return [g.id for g in self.genes]

    @property
    def slot_types(self) -> List[GeneType]:
        return [g.type for g in self.genes]

    def to_prompt_text(self) -> str:
        return "\n\n".join(self.rendered)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": {"name": self.intent.name, "category": self.intent.category},
            "synthesized_at": self.synthesized_at,
            "genes": [{"id": g.id, "type": g.type.value, "version": g.version} for g in self.genes],
            "context_values": dict(self.context_values),
            "unresolved_placeholders": list(self.unresolved_placeholders),
        }


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------

class PromptSynthesizer:
    def __init__(self, selector: GeneSelector):
        self.selector = selector

    def slot_plan(self, intent: Intent) -> List[Tuple[GeneType, Optional[str], bool]]:
        """(gene type, category filter, required) for each slot, in prompt order."""
        slotted = [(t, r) for t, r in SLOT_RULES.items() if r.order is not None]
        slotted.sort(key=lambda tr: tr[1].order)
        return [(t, intent.category if r.by_category else None, r.required) for t, r in slotted]

    def synthesize(self, intent: Intent, context: Optional[ContextSnapshot] = None) -> SynthesizedPrompt:
        context = context or ContextSnapshot()
        values = context.as_template_values()

        chosen: List[Tuple[Gene, SlotRule]] = []
        missing: List[str] = []
        for gene_type, category, required in self.slot_plan(intent):
            gene = self.selector.select_best_gene(gene_type, category, count_usage=False)
            if gene is None:
                if required:
                    missing.append(gene_type.value)
                else:
                    logger.debug("Optional slot %s empty for intent %s", gene_type.value, intent.name)
                continue
            chosen.append((gene, SLOT_RULES[gene_type]))

        if missing:
            logger.warning("IncompleteSynthesis for intent %s: missing %s", intent.name, missing)
            raise IncompleteSynthesis(missing, intent=intent.name)

        # Usage is recorded only for prompts that are actually emitted
        store = self.selector.store
        for i, (gene, rule) in enumerate(chosen):
            usage = store.increment_usage(gene.id)
            if usage is not None:
                chosen[i] = (gene.model_copy(update={"usage_count": usage}), rule)

        prompt = SynthesizedPrompt(intent=intent, context_values=values)
        for gene, rule in chosen:
            text = gene.content
            if rule.fill_context:
                text, unresolved = fill_placeholders(text, values)
                if unresolved:
                    logger.warning(
                        "Unresolved placeholder(s) %s in gene %s left as literal text",
                        unresolved, gene.id,
                    )
                    prompt.unresolved_placeholders.extend(
                        u for u in unresolved if u not in prompt.unresolved_placeholders
                    )
            prompt.genes.append(gene)
            prompt.rendered.append(text)

        logger.debug("Synthesized %d-gene prompt for intent %s", len(prompt.genes), intent.name)
        return prompt
