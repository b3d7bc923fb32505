# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Feedback scoring and the auto-approval rule for staged patterns.

Feedback arrives in six optional categories, each a mapping of metric name
to a 1-10 rating. The feedback score is the mean of every present metric
divided by 10. A staged pattern is approved automatically when the score
reaches the approval threshold (0.8 by default).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from artcade.patterns.models import EnumPatternKind

AUTO_APPROVAL_THRESHOLD = 0.8

FEEDBACK_CATEGORIES: tuple[str, ...] = (
    "visual_appeal",
    "gameplay_elements",
    "interactivity",
    "performance",
    "accessibility",
    "code_quality",
)


class ModelPatternFeedback(BaseModel):
    """User ratings for a generated pattern.

    Accepts both snake_case and camelCase keys (``visual_appeal`` or
    ``visualAppeal``).
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    visual_appeal: dict[str, float] | None = None
    gameplay_elements: dict[str, float] | None = None
    interactivity: dict[str, float] | None = None
    performance: dict[str, float] | None = None
    accessibility: dict[str, float] | None = None
    code_quality: dict[str, float] | None = None
    natural_language_feedback: str = Field(default="")

    @field_validator(*FEEDBACK_CATEGORIES)
    @classmethod
    def _ratings_in_range(
        cls, value: dict[str, float] | None
    ) -> dict[str, float] | None:
        if value is None:
            return value
        for metric, rating in value.items():
            if not 1.0 <= rating <= 10.0:
                raise ValueError(f"rating for {metric} must be in [1, 10], got {rating}")
        return value

    def ratings(self) -> list[float]:
        """Every present rating, across all categories."""
        values: list[float] = []
        for category in FEEDBACK_CATEGORIES:
            values.extend((getattr(self, category) or {}).values())
        return values


def calculate_feedback_score(feedback: ModelPatternFeedback) -> float:
    """Mean of all present ratings, normalized to [0, 1]. 0.0 with no ratings."""
    ratings = feedback.ratings()
    if not ratings:
        return 0.0
    return sum(rating / 10.0 for rating in ratings) / len(ratings)


def should_auto_approve(
    feedback: ModelPatternFeedback, threshold: float = AUTO_APPROVAL_THRESHOLD
) -> bool:
    return calculate_feedback_score(feedback) >= threshold


def infer_pattern_kind(
    html: str, feedback: ModelPatternFeedback | None = None
) -> EnumPatternKind:
    """Guess the kind of a feedback-sourced pattern from its markup.

    Checks animation markers first, then interaction, then layout; anything
    else is a style pattern.
    """
    if "@keyframes" in html or "animation:" in html:
        return EnumPatternKind.ANIMATION
    interactivity = (feedback.interactivity if feedback else None) or {}
    if "onclick" in html or "addEventListener" in html or "controls" in interactivity:
        return EnumPatternKind.INTERACTION
    visual = (feedback.visual_appeal if feedback else None) or {}
    if (
        "display: grid" in html
        or "display: flex" in html
        or "layoutBalance" in visual
        or "layout_balance" in visual
    ):
        return EnumPatternKind.LAYOUT
    return EnumPatternKind.STYLE


__all__ = [
    "AUTO_APPROVAL_THRESHOLD",
    "FEEDBACK_CATEGORIES",
    "ModelPatternFeedback",
    "calculate_feedback_score",
    "infer_pattern_kind",
    "should_auto_approve",
]
