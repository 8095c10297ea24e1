from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from promptlab.utils.repro import utc_isoformat


class GeneType(str, Enum):
    """Closed set of slot categories a gene can fill."""
    PERSONA = "persona"
    RESPONSE_FORMAT = "response_format"
    DOMAIN_INSTRUCTION = "domain_instruction"
    CONTEXT_TEMPLATE = "context_template"
    EVOLUTION_DIRECTIVE = "evolution_directive"
    INSIGHT_PATTERN = "insight_pattern"
    EMOTIONAL_TONE = "emotional_tone"
    LANGUAGE_MIXING = "language_mixing"
    ERROR_RECOVERY = "error_recovery"
    SAFETY_GUARDRAIL = "safety_guardrail"


Polarity = Literal["positive", "negative"]


def clamp_fitness(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class Gene(BaseModel):
    """A reusable instruction fragment with a fitness score and lineage.

    ``content`` may contain ``{name}`` placeholders; only context-template
    genes get them substituted at synthesis time. Fitness is clamped into
    [0, 1] on construction and on every assignment.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default="", frozen=True)
    type: GeneType
    content: str = Field(..., min_length=1)
    version: int = Field(default=1, ge=1)
    fitness_score: float = Field(default=0.5)
    parent_gene_id: Optional[str] = Field(default=None)

    positive_reactions: int = Field(default=0, ge=0)
    negative_reactions: int = Field(default=0, ge=0)
    usage_count: int = Field(default=0, ge=0)

    evolution_directive: str = Field(default="", max_length=2000)
    # Intent category; only meaningful for domain-instruction genes
    category: Optional[str] = Field(default=None)
    created_at: str = Field(default_factory=utc_isoformat)

    @field_validator("fitness_score")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_fitness(v)

    @field_validator("category")
    @classmethod
    def _lower_category(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else None

    @property
    def acceptance_ratio(self) -> float:
        total = self.positive_reactions + self.negative_reactions
        if total == 0:
            return 0.5
        return self.positive_reactions / total

    @property
    def is_seed(self) -> bool:
        return self.parent_gene_id is None


class UserFeedback(BaseModel):
    """A thumbs up/down reaction to one synthesized prompt."""

    polarity: Polarity
    context: str = Field(default="", max_length=2000)

    @property
    def is_positive(self) -> bool:
        return self.polarity == "positive"

    @classmethod
    def positive(cls, context: str = "") -> "UserFeedback":
        return cls(polarity="positive", context=context)

    @classmethod
    def negative(cls, context: str = "") -> "UserFeedback":
        return cls(polarity="negative", context=context)
