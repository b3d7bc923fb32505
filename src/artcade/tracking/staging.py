# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Staging area for candidate patterns awaiting approval.

Candidates are held in memory until approved (embedded, tagged and written
to the store) or rejected. Every transition is appended to a per-candidate
history. ``learn_from_feedback`` stages a candidate and approves it at once
when its feedback score reaches the auto-approval threshold.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from artcade.config.settings import Settings, get_settings
from artcade.embeddings.client import compose_pattern_text
from artcade.embeddings.protocols import ProtocolEmbeddingProvider
from artcade.lib.errors import PatternNotFoundError
from artcade.patterns.models import ModelPattern, ModelPatternMetadata, parse_pattern
from artcade.patterns.tag_extractor import prepare_pattern_for_storage
from artcade.storage.protocols import ProtocolPatternStore
from artcade.tracking.auto_approval import (
    ModelPatternFeedback,
    calculate_feedback_score,
    infer_pattern_kind,
)

logger = logging.getLogger(__name__)


def _candidate_markup(payload: Mapping[str, Any]) -> str:
    content = payload.get("content")
    if not isinstance(content, Mapping):
        return ""
    return "\n".join(str(content.get(part) or "") for part in ("html", "css", "js"))


class EnumStagingAction(str, Enum):
    """Transitions recorded in a staged pattern's history."""

    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"


class ModelSourceLocation(BaseModel):
    """Where a candidate pattern was found."""

    model_config = ConfigDict(frozen=True)

    file: str
    start_line: int = Field(ge=1)
    end_line: int = Field(ge=1)


class ModelStagedPattern(BaseModel):
    """A candidate pattern waiting for a decision."""

    model_config = ConfigDict(frozen=True)

    staging_id: str
    pattern: ModelPattern
    staged_at: datetime
    evolution_source: str
    location: ModelSourceLocation | None = None


class ModelStagingHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    staging_id: str
    action: EnumStagingAction
    timestamp: datetime
    details: dict[str, Any] = Field(default_factory=dict)


class ModelLearningOutcome(BaseModel):
    """Result of learning from user feedback."""

    model_config = ConfigDict(frozen=True)

    staging_id: str
    feedback_score: float = Field(ge=0.0, le=1.0)
    approved: bool
    pattern_id: str | None = None


class PatternStagingService:
    """Stage, approve and reject candidate patterns."""

    def __init__(
        self,
        store: ProtocolPatternStore,
        embedder: ProtocolEmbeddingProvider,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._settings = settings or get_settings()
        self._staged: dict[str, ModelStagedPattern] = {}
        self._history: dict[str, list[ModelStagingHistoryEntry]] = {}

    def _record(
        self, staging_id: str, action: EnumStagingAction, **details: Any
    ) -> None:
        entry = ModelStagingHistoryEntry(
            id=str(uuid4()),
            staging_id=staging_id,
            action=action,
            timestamp=datetime.now(UTC),
            details={k: v for k, v in details.items() if v is not None},
        )
        self._history.setdefault(staging_id, []).append(entry)

    def _require_staged(self, staging_id: str) -> ModelStagedPattern:
        staged = self._staged.get(staging_id)
        if staged is None:
            raise PatternNotFoundError(staging_id)
        return staged

    def stage_pattern(
        self,
        pattern: ModelPattern | Mapping[str, Any],
        source: str,
        location: ModelSourceLocation | None = None,
    ) -> str:
        """Hold a candidate pattern for review.

        The candidate's score and usage counters start at zero.

        Returns:
            The staging id.

        Raises:
            PatternValidationError: If the candidate is not well-formed.
        """
        candidate = parse_pattern(pattern).model_copy(
            update={"effectiveness_score": 0.0, "usage_count": 0, "usage_stats": None}
        )
        staging_id = str(uuid4())
        self._staged[staging_id] = ModelStagedPattern(
            staging_id=staging_id,
            pattern=candidate,
            staged_at=datetime.now(UTC),
            evolution_source=source,
            location=location,
        )
        self._record(
            staging_id,
            EnumStagingAction.CREATED,
            source_file=location.file if location else None,
            line_range=(
                {"start": location.start_line, "end": location.end_line}
                if location
                else None
            ),
        )
        logger.debug(
            f"Pattern staged: {staging_id}",
            extra={"pattern_type": candidate.kind.value, "source": source},
        )
        return staging_id

    async def approve_pattern(
        self,
        staging_id: str,
        reason: str,
        approver: str | None = None,
        quality_notes: str | None = None,
    ) -> str:
        """Tag, embed and store a staged pattern, then remove it from staging.

        If storing fails the candidate stays staged and the error propagates.

        Returns:
            The stored pattern id.

        Raises:
            PatternNotFoundError: If nothing is staged under this id.
        """
        staged = self._require_staged(staging_id)
        approval = {
            "reason": reason,
            "approver": approver,
            "quality_notes": quality_notes,
            "approved_at": datetime.now(UTC).isoformat(),
        }
        metadata = ModelPatternMetadata.model_validate(
            {
                **staged.pattern.content.metadata.model_dump(exclude_none=True),
                "approval": {k: v for k, v in approval.items() if v is not None},
            }
        )
        approved = prepare_pattern_for_storage(
            staged.pattern.model_copy(
                update={
                    "content": staged.pattern.content.model_copy(
                        update={"metadata": metadata}
                    )
                }
            )
        )
        try:
            embedding = await self._embedder.embed(compose_pattern_text(approved))
            pattern_id = await self._store.insert_pattern(approved, embedding)
        except Exception as e:
            logger.error(
                f"Failed to approve pattern {staging_id}: {e}",
                extra={"staging_id": staging_id, "pattern_type": approved.kind.value},
            )
            raise

        self._record(
            staging_id, EnumStagingAction.APPROVED, approver=approver, reason=reason
        )
        del self._staged[staging_id]
        logger.info(
            f"Pattern {staging_id} approved and stored",
            extra={"pattern_id": pattern_id, "reason": reason},
        )
        return pattern_id

    def reject_pattern(self, staging_id: str, reason: str) -> None:
        """Discard a staged pattern.

        Raises:
            PatternNotFoundError: If nothing is staged under this id.
        """
        self._require_staged(staging_id)
        self._record(staging_id, EnumStagingAction.REJECTED, reason=reason)
        del self._staged[staging_id]
        logger.debug(f"Pattern {staging_id} rejected")

    def list_staged(self) -> list[ModelStagedPattern]:
        return list(self._staged.values())

    def get_staged(self, staging_id: str) -> ModelStagedPattern | None:
        return self._staged.get(staging_id)

    def get_history(self, staging_id: str) -> list[ModelStagingHistoryEntry]:
        return list(self._history.get(staging_id, []))

    def clear(self) -> None:
        """Drop every staged pattern. History is kept."""
        self._staged.clear()
        logger.debug("Pattern staging cleared")

    async def learn_from_feedback(
        self,
        pattern: ModelPattern | Mapping[str, Any],
        feedback: ModelPatternFeedback,
        source: str = "user_feedback",
        location: ModelSourceLocation | None = None,
    ) -> ModelLearningOutcome:
        """Stage a candidate and auto-approve it when feedback is strong enough.

        A payload without a ``type`` gets one inferred from its markup and the
        feedback categories.
        """
        if isinstance(pattern, Mapping) and "type" not in pattern and "kind" not in pattern:
            kind = infer_pattern_kind(_candidate_markup(pattern), feedback)
            pattern = {**pattern, "type": kind.value}
            logger.debug(f"Inferred pattern type {kind.value} from feedback candidate")
        score = calculate_feedback_score(feedback)
        staging_id = self.stage_pattern(pattern, source, location)
        if score < self._settings.auto_approval_threshold:
            logger.info(
                f"Feedback score {score:.2f} below auto-approval threshold, "
                f"pattern {staging_id} left for review"
            )
            return ModelLearningOutcome(
                staging_id=staging_id, feedback_score=score, approved=False
            )

        pattern_id = await self.approve_pattern(
            staging_id,
            reason="High effectiveness score from user feedback",
            quality_notes=feedback.natural_language_feedback or None,
        )
        return ModelLearningOutcome(
            staging_id=staging_id,
            feedback_score=score,
            approved=True,
            pattern_id=pattern_id,
        )


__all__ = [
    "EnumStagingAction",
    "ModelLearningOutcome",
    "ModelSourceLocation",
    "ModelStagedPattern",
    "ModelStagingHistoryEntry",
    "PatternStagingService",
]
