# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Tests for PatternStagingService."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from artcade.config.settings import Settings
from artcade.embeddings.client import compose_pattern_text
from artcade.lib.errors import (
    EmbeddingProviderError,
    PatternNotFoundError,
    PatternValidationError,
)
from artcade.patterns.models import EnumPatternKind, ModelPattern, ModelUsageStats
from artcade.tracking.auto_approval import ModelPatternFeedback
from artcade.tracking.staging import (
    EnumStagingAction,
    ModelSourceLocation,
    PatternStagingService,
)
from tests.conftest import make_pattern, make_settings

pytestmark = pytest.mark.unit


@pytest.fixture
def staging(
    mock_store: AsyncMock, mock_embedder: AsyncMock, settings: Settings
) -> PatternStagingService:
    return PatternStagingService(mock_store, mock_embedder, settings)


class TestStagePattern:
    """Tests for stage_pattern()."""

    def test_resets_score_and_usage(self, staging: PatternStagingService) -> None:
        candidate = make_pattern(
            effectiveness_score=0.9,
            usage_count=12,
            usage_stats=ModelUsageStats(total_uses=12),
        )

        staging_id = staging.stage_pattern(candidate, source="evolution")

        staged = staging.get_staged(staging_id)
        assert staged is not None
        assert staged.pattern.effectiveness_score == 0.0
        assert staged.pattern.usage_count == 0
        assert staged.pattern.usage_stats is None
        assert staged.evolution_source == "evolution"

    def test_records_creation_with_location(
        self, staging: PatternStagingService
    ) -> None:
        location = ModelSourceLocation(
            file="games/racer.html", start_line=10, end_line=42
        )

        staging_id = staging.stage_pattern(make_pattern(), "import", location)

        history = staging.get_history(staging_id)
        assert [entry.action for entry in history] == [EnumStagingAction.CREATED]
        assert history[0].details == {
            "source_file": "games/racer.html",
            "line_range": {"start": 10, "end": 42},
        }

    def test_invalid_candidate_is_rejected(self, staging: PatternStagingService) -> None:
        with pytest.raises(PatternValidationError):
            staging.stage_pattern({"id": "x", "type": "style"}, "import")

        assert staging.list_staged() == []


class TestApprovePattern:
    """Tests for approve_pattern()."""

    @pytest.mark.asyncio
    async def test_tags_embeds_and_stores(
        self,
        staging: PatternStagingService,
        mock_store: AsyncMock,
        mock_embedder: AsyncMock,
    ) -> None:
        candidate = make_pattern(
            pattern_name="Advanced Vehicle Movement System",
            context="A racing game with physics-based vehicle controls",
        )
        staging_id = staging.stage_pattern(candidate, "evolution")

        pattern_id = await staging.approve_pattern(
            staging_id, reason="looks good", approver="reviewer"
        )

        assert pattern_id == candidate.id
        stored: ModelPattern = mock_store.insert_pattern.call_args[0][0]
        assert stored.semantic_id is not None
        assert stored.semantic_id.startswith("racing_g-")
        approval = stored.content.metadata.model_dump()["approval"]
        assert approval["reason"] == "looks good"
        assert approval["approver"] == "reviewer"
        mock_embedder.embed.assert_awaited_once_with(compose_pattern_text(stored))
        assert mock_store.insert_pattern.call_args[0][1] == [0.1, 0.2, 0.3]

    @pytest.mark.asyncio
    async def test_approved_pattern_leaves_staging(
        self, staging: PatternStagingService
    ) -> None:
        staging_id = staging.stage_pattern(make_pattern(), "evolution")

        await staging.approve_pattern(staging_id, reason="ok")

        assert staging.get_staged(staging_id) is None
        actions = [entry.action for entry in staging.get_history(staging_id)]
        assert actions == [EnumStagingAction.CREATED, EnumStagingAction.APPROVED]

    @pytest.mark.asyncio
    async def test_failure_keeps_candidate_staged(
        self, staging: PatternStagingService, mock_embedder: AsyncMock
    ) -> None:
        mock_embedder.embed.side_effect = EmbeddingProviderError("down")
        staging_id = staging.stage_pattern(make_pattern(), "evolution")

        with pytest.raises(EmbeddingProviderError):
            await staging.approve_pattern(staging_id, reason="ok")

        assert staging.get_staged(staging_id) is not None
        assert len(staging.get_history(staging_id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_staging_id(self, staging: PatternStagingService) -> None:
        with pytest.raises(PatternNotFoundError):
            await staging.approve_pattern("nope", reason="ok")


class TestRejectAndClear:
    """Tests for reject_pattern() and clear()."""

    def test_reject_records_reason(self, staging: PatternStagingService) -> None:
        staging_id = staging.stage_pattern(make_pattern(), "evolution")

        staging.reject_pattern(staging_id, reason="duplicate")

        assert staging.get_staged(staging_id) is None
        last = staging.get_history(staging_id)[-1]
        assert last.action is EnumStagingAction.REJECTED
        assert last.details == {"reason": "duplicate"}

    def test_reject_unknown(self, staging: PatternStagingService) -> None:
        with pytest.raises(PatternNotFoundError):
            staging.reject_pattern("nope", reason="duplicate")

    def test_clear_keeps_history(self, staging: PatternStagingService) -> None:
        staging_id = staging.stage_pattern(make_pattern(), "evolution")

        staging.clear()

        assert staging.list_staged() == []
        assert len(staging.get_history(staging_id)) == 1


class TestLearnFromFeedback:
    """Tests for learn_from_feedback()."""

    @pytest.mark.asyncio
    async def test_strong_feedback_auto_approves(
        self, staging: PatternStagingService, mock_store: AsyncMock
    ) -> None:
        feedback = ModelPatternFeedback(
            visual_appeal={"color": 9},
            gameplay_elements={"fun": 8},
            natural_language_feedback="Great controls",
        )
        candidate = make_pattern()

        outcome = await staging.learn_from_feedback(candidate, feedback)

        assert outcome.approved is True
        assert outcome.pattern_id == candidate.id
        assert outcome.feedback_score == pytest.approx(0.85)
        stored: ModelPattern = mock_store.insert_pattern.call_args[0][0]
        approval = stored.content.metadata.model_dump()["approval"]
        assert approval["quality_notes"] == "Great controls"

    @pytest.mark.asyncio
    async def test_weak_feedback_stays_staged(
        self, staging: PatternStagingService, mock_store: AsyncMock
    ) -> None:
        feedback = ModelPatternFeedback(visual_appeal={"color": 5})

        outcome = await staging.learn_from_feedback(make_pattern(), feedback)

        assert outcome.approved is False
        assert outcome.pattern_id is None
        assert staging.get_staged(outcome.staging_id) is not None
        mock_store.insert_pattern.assert_not_called()

    @pytest.mark.asyncio
    async def test_threshold_comes_from_settings(
        self, mock_store: AsyncMock, mock_embedder: AsyncMock
    ) -> None:
        staging = PatternStagingService(
            mock_store, mock_embedder, make_settings(auto_approval_threshold=0.5)
        )
        feedback = ModelPatternFeedback(visual_appeal={"color": 5})

        outcome = await staging.learn_from_feedback(make_pattern(), feedback)

        assert outcome.approved is True

    @pytest.mark.asyncio
    async def test_missing_type_is_inferred(
        self, staging: PatternStagingService
    ) -> None:
        payload = make_pattern(
            html="<style>@keyframes pulse { to { opacity: 0; } }</style>", js=None
        ).model_dump(mode="json", by_alias=True)
        del payload["type"]
        feedback = ModelPatternFeedback(visual_appeal={"color": 5})

        outcome = await staging.learn_from_feedback(payload, feedback)

        staged = staging.get_staged(outcome.staging_id)
        assert staged is not None
        assert staged.pattern.kind is EnumPatternKind.ANIMATION

    @pytest.mark.asyncio
    async def test_controls_feedback_infers_interaction(
        self, staging: PatternStagingService
    ) -> None:
        payload = make_pattern(html="<div></div>", js=None).model_dump(
            mode="json", by_alias=True
        )
        del payload["type"]
        feedback = ModelPatternFeedback(interactivity={"controls": 4})

        outcome = await staging.learn_from_feedback(payload, feedback)

        staged = staging.get_staged(outcome.staging_id)
        assert staged is not None
        assert staged.pattern.kind is EnumPatternKind.INTERACTION

    @pytest.mark.asyncio
    async def test_declared_kind_is_kept(self, staging: PatternStagingService) -> None:
        feedback = ModelPatternFeedback(interactivity={"controls": 4})

        outcome = await staging.learn_from_feedback(make_pattern(), feedback)

        staged = staging.get_staged(outcome.staging_id)
        assert staged is not None
        assert staged.pattern.kind is EnumPatternKind.GAME_MECHANIC
