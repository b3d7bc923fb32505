# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Tests for PatternStore.

Unit tests for the PostgreSQL + pgvector storage adapter for patterns.
All database interactions are mocked via asyncpg mock objects.

Test Categories:
    - Initialization: Pool creation, closure, state management
    - Row Conversion: Row to model mapping, vector literals
    - Patterns: Insert, get, list, nearest-neighbor match
    - Usage: Atomic increment, statistics update, stale cleanup
    - Prompt Records: Insert and outcome update
    - Errors: Driver error wrapping
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest
from pydantic import SecretStr

from artcade.lib.errors import (
    EnumPatternErrorCode,
    PatternNotFoundError,
    PatternStoreError,
    PatternValidationError,
)
from artcade.patterns.models import (
    EnumPatternKind,
    ModelLastUsage,
    ModelSemanticTags,
    ModelUsageStats,
)
from artcade.storage import ConfigPatternStorage, ModelPromptRecord, PatternStore
from artcade.storage.pattern_store import format_vector, row_to_match, row_to_pattern
from tests.conftest import make_pattern

pytestmark = pytest.mark.unit

PATTERN_ID = "3f0e9a52-8d4c-4b1a-9a55-0f8e6e1c2b7d"


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def config() -> ConfigPatternStorage:
    """Create a test configuration with 3-dimensional vectors."""
    return ConfigPatternStorage(
        _env_file=None,
        postgres_host="localhost",
        postgres_port=5432,
        postgres_database="test_db",
        postgres_user="test_user",
        postgres_password=SecretStr("test_password"),
        pool_min_size=1,
        pool_max_size=5,
        connect_timeout_seconds=5.0,
        command_timeout_seconds=10.0,
        embedding_dimensions=3,
    )


@pytest.fixture
def store(config: ConfigPatternStorage) -> PatternStore:
    """Create an uninitialized store instance."""
    return PatternStore(config)


@pytest.fixture
def mock_pool() -> AsyncMock:
    pool = AsyncMock()
    pool.close = AsyncMock()
    return pool


@pytest.fixture
def mock_connection() -> AsyncMock:
    conn = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock()
    conn.fetchval = AsyncMock()
    conn.execute = AsyncMock()
    return conn


@pytest.fixture
def ready_store(
    store: PatternStore, mock_pool: AsyncMock, mock_connection: AsyncMock
) -> PatternStore:
    """Store with a mocked pool already attached."""
    setup_pool_with_connection(mock_pool, mock_connection)
    store._pool = mock_pool
    return store


def setup_pool_with_connection(pool: AsyncMock, conn: AsyncMock) -> None:
    """Configure pool.acquire() to return connection via async context manager."""

    @asynccontextmanager
    async def mock_acquire() -> AsyncGenerator[AsyncMock, None]:
        yield conn

    pool.acquire = mock_acquire


def create_pattern_row(**overrides: Any) -> dict[str, Any]:
    """Build a vector_patterns row as asyncpg returns it (jsonb as text)."""
    row: dict[str, Any] = {
        "id": PATTERN_ID,
        "type": "game_mechanic",
        "pattern_name": "Car Movement",
        "content": json.dumps(
            {
                "html": '<canvas id="game"></canvas>',
                "js": "car.x += speed;",
                "context": "Top-down racing car",
                "metadata": {"interaction_type": "keyboard"},
            }
        ),
        "effectiveness_score": 0.75,
        "usage_count": 4,
        "semantic_id": "racing_g-game-keyb-0000-000000000000",
        "usage_stats": json.dumps(
            {
                "total_uses": 4,
                "successful_uses": 3,
                "average_similarity": 0.82,
                "last_used": "2025-01-10T12:00:00+00:00",
            }
        ),
        "last_usage": None,
        "created_at": datetime(2025, 1, 1, tzinfo=UTC),
        "last_used": datetime(2025, 1, 10, tzinfo=UTC),
    }
    row.update(overrides)
    return row


# =============================================================================
# Initialization Tests
# =============================================================================


class TestInitialization:
    """Tests for store initialization and lifecycle."""

    def test_store_starts_uninitialized(self, store: PatternStore) -> None:
        assert store.is_initialized is False

    @pytest.mark.asyncio
    async def test_initialize_uses_config(
        self, store: PatternStore, config: ConfigPatternStorage
    ) -> None:
        mock_pool = AsyncMock()

        with patch(
            "artcade.storage.pattern_store.asyncpg.create_pool",
            new_callable=AsyncMock,
            return_value=mock_pool,
        ) as mock_create:
            await store.initialize()

        call_kwargs = mock_create.call_args[1]
        assert call_kwargs["dsn"] == config.dsn
        assert call_kwargs["min_size"] == 1
        assert call_kwargs["max_size"] == 5
        assert call_kwargs["timeout"] == 5.0
        assert call_kwargs["command_timeout"] == 10
        assert store.is_initialized is True

    @pytest.mark.asyncio
    async def test_initialize_skips_if_already_initialized(
        self, store: PatternStore
    ) -> None:
        with patch(
            "artcade.storage.pattern_store.asyncpg.create_pool",
            new_callable=AsyncMock,
            return_value=AsyncMock(),
        ) as mock_create:
            await store.initialize()
            await store.initialize()

        assert mock_create.call_count == 1

    @pytest.mark.asyncio
    async def test_initialize_wraps_connection_failure(self, store: PatternStore) -> None:
        with patch(
            "artcade.storage.pattern_store.asyncpg.create_pool",
            new_callable=AsyncMock,
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(PatternStoreError) as exc_info:
                await store.initialize()

        assert exc_info.value.code is EnumPatternErrorCode.STORE_UNAVAILABLE
        assert store.is_initialized is False

    @pytest.mark.asyncio
    async def test_context_manager_closes_pool(self, store: PatternStore) -> None:
        mock_pool = AsyncMock()

        with patch(
            "artcade.storage.pattern_store.asyncpg.create_pool",
            new_callable=AsyncMock,
            return_value=mock_pool,
        ):
            async with store as opened:
                assert opened.is_initialized is True

        mock_pool.close.assert_awaited_once()
        assert store.is_initialized is False

    @pytest.mark.asyncio
    async def test_close_is_idempotent(
        self, ready_store: PatternStore, mock_pool: AsyncMock
    ) -> None:
        await ready_store.close()
        await ready_store.close()

        mock_pool.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_operations_require_initialize(self, store: PatternStore) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get_pattern(PATTERN_ID)

    def test_repr_hides_password(self, config: ConfigPatternStorage) -> None:
        assert "test_password" not in repr(config)
        assert "***" in config.dsn_safe


# =============================================================================
# Row Conversion Tests
# =============================================================================


class TestRowConversion:
    """Tests for row_to_pattern(), row_to_match() and format_vector()."""

    def test_row_to_pattern_decodes_json_columns(self) -> None:
        pattern = row_to_pattern(create_pattern_row())

        assert pattern.id == PATTERN_ID
        assert pattern.kind is EnumPatternKind.GAME_MECHANIC
        assert pattern.content.metadata.interaction_type == "keyboard"
        assert pattern.usage_stats is not None
        assert pattern.usage_stats.successful_uses == 3

    def test_row_to_pattern_accepts_decoded_json(self) -> None:
        row = create_pattern_row(
            content={"html": "<div></div>", "context": "Plain"},
            usage_stats={},
        )

        pattern = row_to_pattern(row)

        assert pattern.content.html == "<div></div>"
        assert pattern.usage_stats is None

    def test_invalid_row_raises_validation_error(self) -> None:
        with pytest.raises(PatternValidationError):
            row_to_pattern(create_pattern_row(type="widget"))

    def test_row_to_match_clamps_similarity(self) -> None:
        match = row_to_match(create_pattern_row(similarity=1.0000002))

        assert match.similarity == 1.0
        assert match.raw_similarity == 1.0
        assert match.semantic_boost == 0.0

    def test_format_vector(self) -> None:
        assert format_vector([0.5, 1, -2.25]) == "[0.5,1.0,-2.25]"


# =============================================================================
# Pattern Tests
# =============================================================================


class TestInsertPattern:
    """Tests for insert_pattern()."""

    @pytest.mark.asyncio
    async def test_insert_returns_stored_id(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.return_value = PATTERN_ID
        pattern = make_pattern(
            pattern_id=PATTERN_ID, semantic_id="abc-0000-0000-0000-000000000000"
        )

        result = await ready_store.insert_pattern(pattern, [0.1, 0.2, 0.3])

        assert result == PATTERN_ID
        args = mock_connection.fetchval.call_args[0]
        sql = args[0]
        assert "INSERT INTO vector_patterns" in sql
        assert "ON CONFLICT (id) DO UPDATE" in sql
        assert args[1] == PATTERN_ID
        assert args[2] == "game_mechanic"
        assert json.loads(args[4])["context"] == pattern.content.context
        assert args[5] == "[0.1,0.2,0.3]"
        assert args[8] == "abc-0000-0000-0000-000000000000"

    @pytest.mark.asyncio
    async def test_insert_accepts_raw_mapping(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.return_value = PATTERN_ID
        payload = {
            "id": PATTERN_ID,
            "type": "style",
            "pattern_name": "Neon Button",
            "content": {"html": "<button></button>", "context": "Glowing button"},
        }

        assert await ready_store.insert_pattern(payload, [0.0, 0.0, 1.0]) == PATTERN_ID

    @pytest.mark.asyncio
    async def test_invalid_pattern_blocks_persistence(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        payload = {"id": PATTERN_ID, "type": "style", "pattern_name": "Broken"}

        with pytest.raises(PatternValidationError):
            await ready_store.insert_pattern(payload, [0.0, 0.0, 1.0])

        mock_connection.fetchval.assert_not_called()

    @pytest.mark.asyncio
    async def test_dimension_mismatch_blocks_persistence(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        with pytest.raises(PatternStoreError, match="expected 3"):
            await ready_store.insert_pattern(make_pattern(), [0.1, 0.2])

        mock_connection.fetchval.assert_not_called()

    @pytest.mark.asyncio
    async def test_driver_error_is_wrapped_with_context(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.side_effect = asyncpg.PostgresError("duplicate")

        with pytest.raises(PatternStoreError) as exc_info:
            await ready_store.insert_pattern(
                make_pattern(pattern_id=PATTERN_ID), [0.1, 0.2, 0.3]
            )

        assert exc_info.value.operation == "insert_pattern"
        assert exc_info.value.pattern_id == PATTERN_ID
        assert exc_info.value.code is EnumPatternErrorCode.STORE_ERROR


class TestReadPatterns:
    """Tests for get_pattern() and list_patterns()."""

    @pytest.mark.asyncio
    async def test_get_pattern_found(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchrow.return_value = create_pattern_row()

        pattern = await ready_store.get_pattern(PATTERN_ID)

        assert pattern is not None
        assert pattern.pattern_name == "Car Movement"

    @pytest.mark.asyncio
    async def test_get_pattern_missing_returns_none(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchrow.return_value = None

        assert await ready_store.get_pattern(PATTERN_ID) is None

    @pytest.mark.asyncio
    async def test_list_patterns_filters_by_kind(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetch.return_value = [create_pattern_row()]

        patterns = await ready_store.list_patterns(
            kind=EnumPatternKind.GAME_MECHANIC, limit=10
        )

        assert len(patterns) == 1
        args = mock_connection.fetch.call_args[0]
        assert "ORDER BY effectiveness_score DESC" in args[0]
        assert args[1:] == ("game_mechanic", 10)

    @pytest.mark.asyncio
    async def test_list_patterns_without_kind(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetch.return_value = []

        assert await ready_store.list_patterns() == []
        assert mock_connection.fetch.call_args[0][1] is None


class TestMatchPatterns:
    """Tests for match_patterns()."""

    @pytest.mark.asyncio
    async def test_calls_match_function_with_vector_literal(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetch.return_value = [
            create_pattern_row(similarity=0.91),
            create_pattern_row(id="0b6e2c1a-0000-4000-8000-000000000002", similarity=0.7),
        ]

        matches = await ready_store.match_patterns(
            query_embedding=[0.1, 0.2, 0.3],
            query_text="racing car",
            match_threshold=0.6,
            match_count=6,
        )

        args = mock_connection.fetch.call_args[0]
        assert args[0] == "SELECT * FROM match_patterns($1::vector, $2, $3, $4)"
        assert args[1:] == ("[0.1,0.2,0.3]", "racing car", 0.6, 6)
        assert [m.similarity for m in matches] == [0.91, 0.7]

    @pytest.mark.asyncio
    async def test_rejects_wrong_dimension_query(self, ready_store: PatternStore) -> None:
        with pytest.raises(PatternStoreError):
            await ready_store.match_patterns([0.1], "racing", 0.6, 3)

    @pytest.mark.asyncio
    async def test_wraps_driver_errors(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetch.side_effect = asyncpg.InterfaceError("pool is closed")

        with pytest.raises(PatternStoreError) as exc_info:
            await ready_store.match_patterns([0.1, 0.2, 0.3], "racing", 0.6, 3)

        assert exc_info.value.operation == "match_patterns"


# =============================================================================
# Usage Tests
# =============================================================================


class TestUsage:
    """Tests for usage bookkeeping writes."""

    @pytest.mark.asyncio
    async def test_update_usage_writes_single_statement(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.execute.return_value = "UPDATE 1"
        now = datetime(2025, 2, 1, tzinfo=UTC)
        stats = ModelUsageStats(
            total_uses=1, successful_uses=1, average_similarity=0.9, last_used=now
        )
        last_usage = ModelLastUsage(
            direct_reuse=False, structural_similarity=0.9, timestamp=now
        )

        await ready_store.update_usage(PATTERN_ID, 0.9, stats, last_usage)

        mock_connection.execute.assert_awaited_once()
        args = mock_connection.execute.call_args[0]
        assert "usage_count = usage_count + 1" in args[0]
        assert args[1] == PATTERN_ID
        assert args[2] == 0.9
        assert json.loads(args[3])["total_uses"] == 1
        assert json.loads(args[4])["structural_similarity"] == 0.9
        assert args[5] == now

    @pytest.mark.asyncio
    async def test_update_usage_missing_pattern(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.execute.return_value = "UPDATE 0"

        with pytest.raises(PatternNotFoundError):
            await ready_store.update_usage(PATTERN_ID, 0.5, ModelUsageStats())

    @pytest.mark.asyncio
    async def test_delete_stale_patterns_returns_count(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.execute.return_value = "DELETE 3"

        deleted = await ready_store.delete_stale_patterns(cutoff_days=45)

        assert deleted == 3
        args = mock_connection.execute.call_args[0]
        assert "usage_count = 0" in args[0]
        assert args[1] == 45

    @pytest.mark.asyncio
    async def test_delete_stale_patterns_rejects_bad_cutoff(
        self, ready_store: PatternStore
    ) -> None:
        with pytest.raises(ValueError):
            await ready_store.delete_stale_patterns(cutoff_days=0)


# =============================================================================
# Prompt Record Tests
# =============================================================================


class TestPromptRecords:
    """Tests for store_prompt() and update_prompt_outcome()."""

    @pytest.mark.asyncio
    async def test_store_prompt(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.return_value = "prompt-1"
        record = ModelPromptRecord(
            user_id="user-1",
            prompt="racing game",
            embedding=[0.1, 0.2, 0.3],
            matched_pattern_ids=[PATTERN_ID],
            semantic_tags=ModelSemanticTags(use_cases=["racing_game"]),
        )

        prompt_id = await ready_store.store_prompt(record)

        assert prompt_id == "prompt-1"
        args = mock_connection.fetchval.call_args[0]
        assert "INSERT INTO prompt_embeddings" in args[0]
        assert args[3] == "[0.1,0.2,0.3]"
        assert args[4] == [PATTERN_ID]
        assert json.loads(args[10])["use_cases"] == ["racing_game"]

    @pytest.mark.asyncio
    async def test_update_prompt_outcome(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.execute.return_value = "UPDATE 1"

        await ready_store.update_prompt_outcome("prompt-1", PATTERN_ID, 0.8, "great")

        args = mock_connection.execute.call_args[0]
        assert args[1:] == ("prompt-1", PATTERN_ID, 0.8, "great")

    @pytest.mark.asyncio
    async def test_update_prompt_outcome_missing(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.execute.return_value = "UPDATE 0"

        with pytest.raises(PatternNotFoundError):
            await ready_store.update_prompt_outcome("prompt-x", None, 0.1)


# =============================================================================
# Health Tests
# =============================================================================


class TestHealthCheck:
    """Tests for health_check()."""

    @pytest.mark.asyncio
    async def test_uninitialized_store_is_unhealthy(self, store: PatternStore) -> None:
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_healthy(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.return_value = 1

        assert await ready_store.health_check() is True

    @pytest.mark.asyncio
    async def test_driver_failure_is_unhealthy(
        self, ready_store: PatternStore, mock_connection: AsyncMock
    ) -> None:
        mock_connection.fetchval.side_effect = OSError("network down")

        assert await ready_store.health_check() is False
