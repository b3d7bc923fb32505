# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pydantic models for stored patterns.

A pattern is a reusable bundle of markup, optional style rules and an
optional script body, plus the bookkeeping the library keeps about it:
semantic tags, an effectiveness score and usage statistics.

The store keeps the pattern kind in a column named ``type``; the model
exposes it as ``kind`` and serializes it back under the ``type`` alias.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from artcade.lib.errors import PatternValidationError

# =============================================================================
# Enums
# =============================================================================


class EnumPatternKind(str, Enum):
    """Closed set of pattern kinds (matches the store's ``type`` column)."""

    ANIMATION = "animation"
    LAYOUT = "layout"
    INTERACTION = "interaction"
    STYLE = "style"
    GAME_MECHANIC = "game_mechanic"


class EnumContentType(str, Enum):
    """Section of a pattern (or of generated output) a snippet belongs to."""

    HTML = "html"
    CSS = "css"
    JS = "js"


SEMANTIC_TAG_CATEGORIES: tuple[str, ...] = (
    "use_cases",
    "mechanics",
    "interactions",
    "visual_style",
)


# =============================================================================
# Semantic Tags
# =============================================================================


class ModelSemanticTags(BaseModel):
    """Four tag categories with set semantics.

    Order inside a category is preserved for encoding but carries no meaning.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    use_cases: list[str] = Field(default_factory=list)
    mechanics: list[str] = Field(default_factory=list)
    interactions: list[str] = Field(default_factory=list)
    visual_style: list[str] = Field(default_factory=list)

    def category(self, name: str) -> list[str]:
        """Return the tags for a category name."""
        if name not in SEMANTIC_TAG_CATEGORIES:
            raise KeyError(f"Unknown semantic tag category: {name}")
        return list(getattr(self, name))

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in SEMANTIC_TAG_CATEGORIES)


# =============================================================================
# Metadata
# =============================================================================


class ModelGameMechanic(BaseModel):
    """A game mechanic declared by a pattern."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    properties: dict[str, Any] = Field(default_factory=dict)


class ModelEvolutionLineage(BaseModel):
    """Where an evolved pattern came from."""

    model_config = ConfigDict(frozen=True, extra="allow")

    parent_pattern_id: str
    applied_patterns: list[str] = Field(default_factory=list)
    mutation_type: EnumPatternKind
    fitness_scores: dict[str, float] = Field(default_factory=dict)


class ModelPatternMetadata(BaseModel):
    """Structured metadata attached to pattern content.

    Every field is optional; unknown keys are kept so that metadata written
    by other tools survives a read-modify-write cycle.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    description: str | None = None
    visual_type: str | None = None
    interaction_type: str | None = None
    animation_duration: str | None = None
    color_scheme: list[str] | None = None
    dependencies: list[str] | None = None
    game_mechanics: list[ModelGameMechanic] | None = None
    evolution: ModelEvolutionLineage | None = None
    semantic_tags: ModelSemanticTags | None = None


class ModelPatternContent(BaseModel):
    """The reusable code bundle itself."""

    model_config = ConfigDict(frozen=True, extra="allow")

    html: str = Field(description="Markup; always present, may be empty")
    css: str | None = Field(default=None, description="Optional style rules")
    js: str | None = Field(default=None, description="Optional script body")
    context: str = Field(description="Free-text description of the pattern")
    metadata: ModelPatternMetadata = Field(default_factory=ModelPatternMetadata)

    @field_validator("context")
    @classmethod
    def _context_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("context must not be blank")
        return value


# =============================================================================
# Usage Bookkeeping
# =============================================================================


class ModelUsageStats(BaseModel):
    """Aggregate reuse statistics for a pattern."""

    model_config = ConfigDict(frozen=True)

    total_uses: int = Field(default=0, ge=0)
    successful_uses: int = Field(default=0, ge=0)
    average_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    last_used: datetime | None = None


class ModelLastUsage(BaseModel):
    """The most recent observed reuse of a pattern."""

    model_config = ConfigDict(frozen=True)

    direct_reuse: bool
    structural_similarity: float = Field(ge=0.0, le=1.0)
    feature_adoption: list[str] = Field(default_factory=list)
    timestamp: datetime


# =============================================================================
# Pattern
# =============================================================================


class ModelPattern(BaseModel):
    """A stored, reusable pattern."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    kind: EnumPatternKind = Field(alias="type")
    pattern_name: str = Field(min_length=1)
    content: ModelPatternContent
    embedding: list[float] | None = Field(
        default=None,
        description="Opaque vector owned by the store",
        repr=False,
    )
    effectiveness_score: float = Field(default=0.0, ge=0.0, le=1.0)
    usage_count: int = Field(default=0, ge=0)
    semantic_id: str | None = None
    usage_stats: ModelUsageStats | None = None
    last_usage: ModelLastUsage | None = None
    created_at: datetime | None = None
    last_used: datetime | None = None

    @property
    def description(self) -> str:
        """Metadata description, falling back to the content context."""
        return self.content.metadata.description or self.content.context


class ModelPatternMatch(BaseModel):
    """A retrieved pattern with its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    pattern: ModelPattern
    similarity: float = Field(ge=0.0, le=1.0)
    raw_similarity: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Vector similarity before any tag-overlap boost",
    )
    semantic_boost: float = Field(default=0.0, ge=0.0, le=1.0)


# =============================================================================
# Validation
# =============================================================================


def _format_validation_error(exc: ValidationError) -> list[str]:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return problems


def validate_pattern_payload(payload: Mapping[str, Any]) -> list[str]:
    """Check a raw pattern mapping without raising.

    Returns:
        Human-readable problems. Empty list means the payload is valid.
    """
    if not isinstance(payload, Mapping):
        return ["<root>: pattern must be a mapping"]
    try:
        ModelPattern.model_validate(dict(payload))
    except ValidationError as exc:
        return _format_validation_error(exc)
    return []


def parse_pattern(payload: Mapping[str, Any] | ModelPattern) -> ModelPattern:
    """Build a ModelPattern from a raw mapping.

    Raises:
        PatternValidationError: If the payload does not conform, listing
            every problem found.
    """
    if isinstance(payload, ModelPattern):
        return payload
    if not isinstance(payload, Mapping):
        raise PatternValidationError(["<root>: pattern must be a mapping"])
    try:
        return ModelPattern.model_validate(dict(payload))
    except ValidationError as exc:
        raise PatternValidationError(_format_validation_error(exc)) from exc


__all__ = [
    "EnumContentType",
    "EnumPatternKind",
    "ModelEvolutionLineage",
    "ModelGameMechanic",
    "ModelLastUsage",
    "ModelPattern",
    "ModelPatternContent",
    "ModelPatternMatch",
    "ModelPatternMetadata",
    "ModelSemanticTags",
    "ModelUsageStats",
    "SEMANTIC_TAG_CATEGORIES",
    "parse_pattern",
    "validate_pattern_payload",
]
