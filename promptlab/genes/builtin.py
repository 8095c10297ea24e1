"""Built-in seed genes for the calendar assistant.

The seed set covers every required slot (persona, response format, safety
guardrail) so a freshly installed engine can always synthesize a prompt.
Seed ids are stable so lineage in persisted snapshots stays readable.
"""

from __future__ import annotations

from typing import List, Optional

from .gene import Gene, GeneType


def _seed(
    gene_id: str,
    gene_type: GeneType,
    content: str,
    directive: str,
    *,
    category: Optional[str] = None,
    fitness: float = 0.5,
) -> Gene:
    return Gene(
        id=gene_id,
        type=gene_type,
        content=content,
        evolution_directive=directive,
        category=category,
        fitness_score=fitness,
    )


def builtin_genes() -> List[Gene]:
    return [
        # Persona
        _seed(
            "seed.persona.assistant",
            GeneType.PERSONA,
            "You are a calm, organised personal calendar assistant. You help the user understand and plan their day.",
            "make it warmer and more empathetic",
            fitness=0.6,
        ),
        _seed(
            "seed.persona.coach",
            GeneType.PERSONA,
            "You are a focused productivity coach who reviews the user's schedule and points out what matters most.",
            "make it more concise",
        ),
        # Response format
        _seed(
            "seed.format.bullets",
            GeneType.RESPONSE_FORMAT,
            "Answer in at most five short bullet points, most important first.",
            "shorten and keep the structure",
            fitness=0.6,
        ),
        _seed(
            "seed.format.paragraph",
            GeneType.RESPONSE_FORMAT,
            "Answer in one short paragraph of plain sentences without headings.",
            "use a structured list",
        ),
        # Domain instructions, keyed by intent category
        _seed(
            "seed.domain.schedule",
            GeneType.DOMAIN_INSTRUCTION,
            "When asked about scheduling, propose concrete time slots and mention conflicts with existing events.",
            "be more explicit about conflicts",
            category="schedule",
        ),
        _seed(
            "seed.domain.summary",
            GeneType.DOMAIN_INSTRUCTION,
            "Summarise the user's events in chronological order and highlight anything that needs preparation.",
            "make it more concise",
            category="summary",
        ),
        _seed(
            "seed.domain.insight",
            GeneType.DOMAIN_INSTRUCTION,
            "Look for patterns across the week such as back-to-back meetings or missing breaks, and name them plainly.",
            "simplify the wording",
            category="insight",
        ),
        # Context template
        _seed(
            "seed.context.day",
            GeneType.CONTEXT_TEMPLATE,
            "Today the user has {event_count} events. The next meeting starts at {next_meeting_time}.",
            "be more explicit",
        ),
        _seed(
            "seed.context.load",
            GeneType.CONTEXT_TEMPLATE,
            "The user has {event_count} events today and about {free_hours} free hours.",
            "clarify the numbers",
        ),
        # Tone
        _seed(
            "seed.tone.friendly",
            GeneType.EMOTIONAL_TONE,
            "Keep a friendly, encouraging tone.",
            "make it warmer",
        ),
        _seed(
            "seed.tone.neutral",
            GeneType.EMOTIONAL_TONE,
            "Keep a neutral, matter-of-fact tone.",
            "make it more formal",
        ),
        # Error recovery
        _seed(
            "seed.recovery.missing_data",
            GeneType.ERROR_RECOVERY,
            "If calendar data is missing or unclear, say so briefly and answer with what is known.",
            "be more explicit",
        ),
        # Safety guardrail
        _seed(
            "seed.safety.private",
            GeneType.SAFETY_GUARDRAIL,
            "Never reveal event details to anyone but the user, and do not invent events that are not in the calendar.",
            "clarify the rule",
            fitness=0.7,
        ),
        # Types that are pooled but not slotted by the default synthesizer
        _seed(
            "seed.directive.default",
            GeneType.EVOLUTION_DIRECTIVE,
            "Prefer shorter instructions when users react negatively to long answers.",
            "make it more concise",
        ),
        _seed(
            "seed.insight.overload",
            GeneType.INSIGHT_PATTERN,
            "Three or more consecutive meetings without a break suggest an overloaded day.",
            "simplify",
        ),
        _seed(
            "seed.language.mirror",
            GeneType.LANGUAGE_MIXING,
            "Reply in the language the user wrote in; keep event titles in their original language.",
            "clarify",
        ),
    ]
