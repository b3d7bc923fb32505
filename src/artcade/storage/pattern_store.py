# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL + pgvector storage adapter for patterns.

Table Schema:
    - vector_patterns: Patterns with content, embedding, score and usage stats
    - prompt_embeddings: User requests with their embedding and outcome

Functions:
    - match_patterns(query_embedding, query_text, match_threshold, match_count)

See sql/migrations/ for the full schema. Embeddings are sent as pgvector
text literals ('[0.1,0.2,...]') and cast server-side, so no client-side
vector codec is needed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import asyncpg

from artcade.lib.errors import (
    EnumPatternErrorCode,
    PatternNotFoundError,
    PatternStoreError,
)
from artcade.patterns.models import (
    EnumPatternKind,
    ModelLastUsage,
    ModelPattern,
    ModelPatternMatch,
    ModelUsageStats,
    parse_pattern,
)
from artcade.storage.config import ConfigPatternStorage
from artcade.storage.models import ModelPromptRecord

if TYPE_CHECKING:
    from asyncpg import Pool

logger = logging.getLogger(__name__)

_PATTERN_COLUMNS = """
    id::text AS id, type, pattern_name, content, effectiveness_score,
    usage_count, semantic_id, usage_stats, last_usage, created_at, last_used
"""


# =============================================================================
# Row Conversion
# =============================================================================


def format_vector(values: Sequence[float]) -> str:
    """Render a vector as a pgvector text literal."""
    return "[" + ",".join(repr(float(value)) for value in values) + "]"


def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status like 'DELETE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


def row_to_pattern(row: Mapping[str, Any]) -> ModelPattern:
    """Convert a vector_patterns row into a ModelPattern.

    Raises:
        PatternValidationError: If the stored row does not form a valid pattern.
    """
    data = dict(row)
    return parse_pattern(
        {
            "id": str(data["id"]),
            "type": data["type"],
            "pattern_name": data["pattern_name"],
            "content": _load_json(data["content"]) or {},
            "effectiveness_score": data.get("effectiveness_score") or 0.0,
            "usage_count": data.get("usage_count") or 0,
            "semantic_id": data.get("semantic_id"),
            "usage_stats": _load_json(data.get("usage_stats")) or None,
            "last_usage": _load_json(data.get("last_usage")) or None,
            "created_at": data.get("created_at"),
            "last_used": data.get("last_used"),
        }
    )


def row_to_match(row: Mapping[str, Any]) -> ModelPatternMatch:
    """Convert a match_patterns row; similarity is clamped to [0, 1]."""
    similarity = min(1.0, max(0.0, float(row["similarity"])))
    return ModelPatternMatch(
        pattern=row_to_pattern(row),
        similarity=similarity,
        raw_similarity=similarity,
    )


@contextmanager
def _store_errors(operation: str, pattern_id: str | None = None) -> Iterator[None]:
    """Translate driver and connection errors into PatternStoreError."""
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error(
            f"Pattern store operation {operation} failed: {e}",
            extra={"operation": operation, "pattern_id": pattern_id},
        )
        code = (
            EnumPatternErrorCode.STORE_UNAVAILABLE
            if isinstance(e, OSError)
            else EnumPatternErrorCode.STORE_ERROR
        )
        raise PatternStoreError(operation, str(e), pattern_id, code=code) from e


# =============================================================================
# Store
# =============================================================================


class PatternStore:
    """PostgreSQL storage for patterns and prompt records.

    Thread Safety:
        The asyncpg pool handles connection management. Read-modify-write
        sequences performed by callers (effectiveness tracking) are not
        atomic across calls.

    Example:
        >>> config = ConfigPatternStorage(database_url=SecretStr("postgresql://..."))
        >>> async with PatternStore(config) as store:
        ...     pattern = await store.get_pattern(pattern_id)
    """

    def __init__(self, config: ConfigPatternStorage) -> None:
        self._config = config
        self._pool: Pool | None = None

    @property
    def is_initialized(self) -> bool:
        """Check if the store is initialized and ready for use."""
        return self._pool is not None

    async def initialize(self) -> None:
        """Create the connection pool. Must be called before any other operation.

        Raises:
            PatternStoreError: If the database cannot be reached.
        """
        if self._pool is not None:
            logger.warning("PatternStore already initialized, skipping")
            return

        with _store_errors("initialize"):
            self._pool = await asyncpg.create_pool(
                dsn=self._config.dsn,
                min_size=self._config.pool_min_size,
                max_size=self._config.pool_max_size,
                timeout=self._config.connect_timeout_seconds,
                command_timeout=self._config.command_timeout_seconds,
            )
        logger.info(
            "PatternStore initialized",
            extra={
                "dsn": self._config.dsn_safe,
                "pool_min_size": self._config.pool_min_size,
                "pool_max_size": self._config.pool_max_size,
            },
        )

    async def close(self) -> None:
        """Close the connection pool. Safe to call multiple times."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PatternStore closed")

    async def __aenter__(self) -> PatternStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _require_pool(self) -> Pool:
        """Get pool or raise if not initialized.

        Raises:
            RuntimeError: If store not initialized.
        """
        if self._pool is None:
            raise RuntimeError("PatternStore not initialized. Call initialize() first.")
        return self._pool

    def _check_dimensions(self, embedding: Sequence[float], operation: str) -> None:
        try:
            self._config.check_dimensions(embedding)
        except ValueError as e:
            raise PatternStoreError(operation, str(e)) from e

    # =========================================================================
    # Patterns
    # =========================================================================

    async def insert_pattern(
        self, pattern: ModelPattern | Mapping[str, Any], embedding: list[float]
    ) -> str:
        """Insert a pattern, or replace its content if the id already exists.

        Score and usage counters of an existing row are left untouched.

        Returns:
            The stored pattern id.

        Raises:
            PatternValidationError: If the pattern is not well-formed.
            PatternStoreError: On dimension mismatch or database failure.
        """
        pattern = parse_pattern(pattern)
        self._check_dimensions(embedding, "insert_pattern")
        pool = self._require_pool()

        content = pattern.content.model_dump(mode="json", exclude_none=True)
        usage_stats = (
            pattern.usage_stats.model_dump(mode="json") if pattern.usage_stats else {}
        )
        with _store_errors("insert_pattern", pattern.id):
            async with pool.acquire() as conn:
                stored_id = await conn.fetchval(
                    """
                    INSERT INTO vector_patterns (
                        id, type, pattern_name, content, embedding,
                        effectiveness_score, usage_count, semantic_id,
                        usage_stats, created_at
                    )
                    VALUES (
                        $1::uuid, $2, $3, $4::jsonb, $5::vector,
                        $6, $7, $8, $9::jsonb, COALESCE($10, now())
                    )
                    ON CONFLICT (id) DO UPDATE SET
                        type = EXCLUDED.type,
                        pattern_name = EXCLUDED.pattern_name,
                        content = EXCLUDED.content,
                        embedding = EXCLUDED.embedding,
                        semantic_id = EXCLUDED.semantic_id
                    RETURNING id::text
                    """,
                    pattern.id,
                    pattern.kind.value,
                    pattern.pattern_name,
                    json.dumps(content),
                    format_vector(embedding),
                    pattern.effectiveness_score,
                    pattern.usage_count,
                    pattern.semantic_id,
                    json.dumps(usage_stats),
                    pattern.created_at,
                )
        logger.debug(
            "Stored pattern",
            extra={"pattern_id": stored_id, "pattern_type": pattern.kind.value},
        )
        return str(stored_id)

    async def get_pattern(self, pattern_id: str) -> ModelPattern | None:
        """Get a pattern by id, or None if it does not exist."""
        pool = self._require_pool()
        with _store_errors("get_pattern", pattern_id):
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_PATTERN_COLUMNS} FROM vector_patterns WHERE id = $1::uuid",
                    pattern_id,
                )
        if row is None:
            logger.debug("Pattern not found", extra={"pattern_id": pattern_id})
            return None
        return row_to_pattern(row)

    async def list_patterns(
        self, kind: EnumPatternKind | None = None, limit: int = 100
    ) -> list[ModelPattern]:
        """List patterns, most effective first."""
        pool = self._require_pool()
        with _store_errors("list_patterns"):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_PATTERN_COLUMNS}
                    FROM vector_patterns
                    WHERE ($1::text IS NULL OR type = $1::text)
                    ORDER BY effectiveness_score DESC, pattern_name ASC
                    LIMIT $2
                    """,
                    kind.value if kind else None,
                    limit,
                )
        return [row_to_pattern(row) for row in rows]

    async def match_patterns(
        self,
        query_embedding: list[float],
        query_text: str,
        match_threshold: float,
        match_count: int,
    ) -> list[ModelPatternMatch]:
        """Run the match_patterns nearest-neighbor search.

        Results carry raw vector similarity; boosting and final threshold
        filtering happen in the retrieval service.
        """
        self._check_dimensions(query_embedding, "match_patterns")
        pool = self._require_pool()
        with _store_errors("match_patterns"):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM match_patterns($1::vector, $2, $3, $4)",
                    format_vector(query_embedding),
                    query_text,
                    match_threshold,
                    match_count,
                )
        logger.debug(
            f"match_patterns returned {len(rows)} rows",
            extra={"match_threshold": match_threshold, "match_count": match_count},
        )
        return [row_to_match(row) for row in rows]

    async def update_usage(
        self,
        pattern_id: str,
        effectiveness_score: float,
        usage_stats: ModelUsageStats,
        last_usage: ModelLastUsage | None = None,
    ) -> None:
        """Write score, statistics and last usage in a single UPDATE.

        Raises:
            PatternNotFoundError: If no row has this id.
            PatternStoreError: On database failure.
        """
        pool = self._require_pool()
        last_used = usage_stats.last_used or datetime.now(UTC)
        with _store_errors("update_usage", pattern_id):
            async with pool.acquire() as conn:
                status = await conn.execute(
                    """
                    UPDATE vector_patterns SET
                        effectiveness_score = $2,
                        usage_stats = $3::jsonb,
                        last_usage = COALESCE($4::jsonb, last_usage),
                        usage_count = usage_count + 1,
                        last_used = $5
                    WHERE id = $1::uuid
                    """,
                    pattern_id,
                    effectiveness_score,
                    json.dumps(usage_stats.model_dump(mode="json")),
                    json.dumps(last_usage.model_dump(mode="json")) if last_usage else None,
                    last_used,
                )
        if _affected_rows(status) == 0:
            raise PatternNotFoundError(pattern_id)

    async def delete_stale_patterns(self, cutoff_days: int = 30) -> int:
        """Delete never-used patterns older than the cutoff.

        Returns:
            Number of deleted patterns.
        """
        if cutoff_days < 1:
            raise ValueError("cutoff_days must be >= 1")
        pool = self._require_pool()
        with _store_errors("delete_stale_patterns"):
            async with pool.acquire() as conn:
                status = await conn.execute(
                    """
                    DELETE FROM vector_patterns
                    WHERE usage_count = 0
                      AND COALESCE(last_used, created_at) < now() - make_interval(days => $1)
                    """,
                    cutoff_days,
                )
        deleted = _affected_rows(status)
        logger.info(
            f"Deleted {deleted} stale patterns", extra={"cutoff_days": cutoff_days}
        )
        return deleted

    # =========================================================================
    # Prompt Records
    # =========================================================================

    async def store_prompt(self, record: ModelPromptRecord) -> str:
        """Insert a prompt record and return its id."""
        self._check_dimensions(record.embedding, "store_prompt")
        pool = self._require_pool()
        with _store_errors("store_prompt"):
            async with pool.acquire() as conn:
                prompt_id = await conn.fetchval(
                    """
                    INSERT INTO prompt_embeddings (
                        user_id, prompt, embedding, matched_pattern_ids,
                        selected_pattern_id, success_score, user_feedback,
                        session_id, project_context, semantic_tags, response_time_ms
                    )
                    VALUES (
                        $1, $2, $3::vector, $4::uuid[], $5::uuid, $6, $7,
                        $8::uuid, $9, $10::jsonb, $11
                    )
                    RETURNING id::text
                    """,
                    record.user_id,
                    record.prompt,
                    format_vector(record.embedding),
                    record.matched_pattern_ids,
                    record.selected_pattern_id,
                    record.success_score,
                    record.user_feedback,
                    record.session_id,
                    record.project_context,
                    json.dumps(record.semantic_tags.model_dump()),
                    record.response_time_ms,
                )
        return str(prompt_id)

    async def update_prompt_outcome(
        self,
        prompt_id: str,
        selected_pattern_id: str | None,
        success_score: float,
        user_feedback: str | None = None,
    ) -> None:
        """Record which pattern a prompt ended up using and how well it went."""
        pool = self._require_pool()
        with _store_errors("update_prompt_outcome", selected_pattern_id):
            async with pool.acquire() as conn:
                status = await conn.execute(
                    """
                    UPDATE prompt_embeddings SET
                        selected_pattern_id = $2::uuid,
                        success_score = $3,
                        user_feedback = COALESCE($4, user_feedback)
                    WHERE id = $1::uuid
                    """,
                    prompt_id,
                    selected_pattern_id,
                    success_score,
                    user_feedback,
                )
        if _affected_rows(status) == 0:
            raise PatternNotFoundError(prompt_id)

    # =========================================================================
    # Health
    # =========================================================================

    async def health_check(self) -> bool:
        """Return True when the database answers a trivial query."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.warning(f"Pattern store health check failed: {e}")
            return False


__all__ = [
    "PatternStore",
    "format_vector",
    "row_to_match",
    "row_to_pattern",
]
