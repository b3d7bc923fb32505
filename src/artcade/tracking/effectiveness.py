# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Per-pattern effectiveness scoring and usage statistics.

Every reuse event updates a pattern's bookkeeping:

    total_uses          += 1
    successful_uses     += 1 when similarity > success threshold (0.8)
    average_similarity  incremental mean over all uses
    last_used           event time
    effectiveness_score 0.25 * (visual + interactive + functional + performance)

The effectiveness score is replaced on each event, not blended with the
previous value. ``apply_usage_event`` is a pure function; the tracker reads
the pattern, applies it, and persists the result in one UPDATE statement.
The read-modify-write is not atomic, so concurrent events for the same
pattern can lose an update.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from artcade.config.settings import Settings, get_settings
from artcade.lib.errors import PatternNotFoundError
from artcade.patterns.models import ModelLastUsage, ModelPatternMatch, ModelUsageStats
from artcade.storage.protocols import ProtocolPatternStore

if TYPE_CHECKING:
    from artcade.verification.models import ModelUsageCheck

logger = logging.getLogger(__name__)

QUALITY_WEIGHTS: dict[str, float] = {
    "visual": 0.25,
    "interactive": 0.25,
    "functional": 0.25,
    "performance": 0.25,
}


# =============================================================================
# Models
# =============================================================================


class ModelQualityAssessment(BaseModel):
    """Quality sub-scores for one generated output, each in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    visual: float = Field(ge=0.0, le=1.0)
    interactive: float = Field(ge=0.0, le=1.0)
    functional: float = Field(ge=0.0, le=1.0)
    performance: float = Field(ge=0.0, le=1.0)

    @classmethod
    def uniform(cls, value: float) -> ModelQualityAssessment:
        """Build an assessment with the same score in every dimension."""
        return cls(visual=value, interactive=value, functional=value, performance=value)


class ModelUsageEvent(BaseModel):
    """One observed reuse of a pattern."""

    model_config = ConfigDict(frozen=True)

    pattern_id: str = Field(min_length=1)
    similarity: float = Field(ge=0.0, le=1.0)
    quality: ModelQualityAssessment
    features_used: list[str] = Field(default_factory=list)


class ModelUsageUpdate(BaseModel):
    """The new bookkeeping state produced by one usage event."""

    model_config = ConfigDict(frozen=True)

    effectiveness_score: float = Field(ge=0.0, le=1.0)
    usage_stats: ModelUsageStats
    last_usage: ModelLastUsage


# =============================================================================
# Pure Scoring
# =============================================================================


def compute_effectiveness_score(quality: ModelQualityAssessment) -> float:
    """Weighted sum of the quality sub-scores."""
    score = sum(
        weight * getattr(quality, dimension)
        for dimension, weight in QUALITY_WEIGHTS.items()
    )
    return min(1.0, max(0.0, score))


def apply_usage_event(
    previous: ModelUsageStats | None,
    similarity: float,
    quality: ModelQualityAssessment,
    now: datetime,
    features_used: Iterable[str] = (),
    success_threshold: float = 0.8,
    direct_reuse_threshold: float = 0.9,
) -> ModelUsageUpdate:
    """Compute the bookkeeping after one usage event.

    Args:
        previous: Current statistics, or None for a never-used pattern.
        similarity: How closely the output reused the pattern, in [0, 1].
        quality: Quality assessment of the output.
        now: Event time.
        features_used: Pattern features observed in the output.
        success_threshold: Similarity strictly above which a use is successful.
        direct_reuse_threshold: Similarity strictly above which a use is direct.

    Raises:
        ValueError: If similarity is outside [0, 1].
    """
    if not 0.0 <= similarity <= 1.0:
        raise ValueError(f"similarity must be in [0, 1], got {similarity}")

    stats = previous or ModelUsageStats()
    total_uses = stats.total_uses + 1
    average = (stats.average_similarity * stats.total_uses + similarity) / total_uses

    usage_stats = ModelUsageStats(
        total_uses=total_uses,
        successful_uses=stats.successful_uses + (1 if similarity > success_threshold else 0),
        average_similarity=min(1.0, max(0.0, average)),
        last_used=now,
    )
    last_usage = ModelLastUsage(
        direct_reuse=similarity > direct_reuse_threshold,
        structural_similarity=similarity,
        feature_adoption=list(dict.fromkeys(features_used)),
        timestamp=now,
    )
    return ModelUsageUpdate(
        effectiveness_score=compute_effectiveness_score(quality),
        usage_stats=usage_stats,
        last_usage=last_usage,
    )


# =============================================================================
# Tracker
# =============================================================================


class EffectivenessTracker:
    """Apply usage events to stored patterns."""

    def __init__(
        self, store: ProtocolPatternStore, settings: Settings | None = None
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()

    async def track_usage(
        self, event: ModelUsageEvent, now: datetime | None = None
    ) -> ModelUsageUpdate:
        """Apply one usage event and persist the result.

        Raises:
            PatternNotFoundError: If the pattern does not exist.
            PatternStoreError: If the store fails.
        """
        pattern = await self._store.get_pattern(event.pattern_id)
        if pattern is None:
            raise PatternNotFoundError(event.pattern_id)

        update = apply_usage_event(
            previous=pattern.usage_stats,
            similarity=event.similarity,
            quality=event.quality,
            now=now or datetime.now(UTC),
            features_used=event.features_used,
            success_threshold=self._settings.success_similarity_threshold,
            direct_reuse_threshold=self._settings.direct_reuse_threshold,
        )
        await self._store.update_usage(
            pattern_id=event.pattern_id,
            effectiveness_score=update.effectiveness_score,
            usage_stats=update.usage_stats,
            last_usage=update.last_usage,
        )
        logger.info(
            f"Tracked usage of pattern {event.pattern_id}",
            extra={
                "pattern_id": event.pattern_id,
                "similarity": event.similarity,
                "effectiveness_score": update.effectiveness_score,
                "total_uses": update.usage_stats.total_uses,
            },
        )
        return update

    async def track_generation(
        self,
        matches: Iterable[ModelPatternMatch],
        quality: ModelQualityAssessment,
        now: datetime | None = None,
    ) -> dict[str, ModelUsageUpdate]:
        """Track every pattern that was offered to a generation.

        Patterns deleted since retrieval are logged and skipped.

        Returns:
            Updates keyed by pattern id.
        """
        updates: dict[str, ModelUsageUpdate] = {}
        for match in matches:
            event = ModelUsageEvent(
                pattern_id=match.pattern.id,
                similarity=match.similarity,
                quality=quality,
            )
            try:
                updates[match.pattern.id] = await self.track_usage(event, now=now)
            except PatternNotFoundError:
                logger.warning(
                    f"Pattern {match.pattern.id} disappeared before tracking, skipping"
                )
        return updates

    async def track_verified_usage(
        self,
        check: ModelUsageCheck,
        quality: ModelQualityAssessment,
        now: datetime | None = None,
    ) -> ModelUsageUpdate:
        """Track a usage measured by the reuse verifier.

        The usage percentage becomes the similarity and the labels of the
        snippets found in the output become the adopted features.
        """
        event = ModelUsageEvent(
            pattern_id=check.pattern_id,
            similarity=check.usage_percentage / 100.0,
            quality=quality,
            features_used=[s.context for s in check.snippets if s.found],
        )
        return await self.track_usage(event, now=now)


__all__ = [
    "EffectivenessTracker",
    "ModelQualityAssessment",
    "ModelUsageEvent",
    "ModelUsageUpdate",
    "QUALITY_WEIGHTS",
    "apply_usage_event",
    "compute_effectiveness_score",
]
