# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol for pattern store backends.

Retrieval, tracking and staging depend on this protocol rather than on the
asyncpg implementation, so tests can substitute an in-memory fake.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from artcade.patterns.models import (
    EnumPatternKind,
    ModelLastUsage,
    ModelPattern,
    ModelPatternMatch,
    ModelUsageStats,
)
from artcade.storage.models import ModelPromptRecord


@runtime_checkable
class ProtocolPatternStore(Protocol):
    """Persistence operations the library needs from its store."""

    async def insert_pattern(
        self, pattern: ModelPattern, embedding: list[float]
    ) -> str: ...

    async def get_pattern(self, pattern_id: str) -> ModelPattern | None: ...

    async def list_patterns(
        self, kind: EnumPatternKind | None = None, limit: int = 100
    ) -> list[ModelPattern]: ...

    async def match_patterns(
        self,
        query_embedding: list[float],
        query_text: str,
        match_threshold: float,
        match_count: int,
    ) -> list[ModelPatternMatch]:
        """Nearest-neighbor search; results carry raw vector similarity."""
        ...

    async def update_usage(
        self,
        pattern_id: str,
        effectiveness_score: float,
        usage_stats: ModelUsageStats,
        last_usage: ModelLastUsage | None = None,
    ) -> None:
        """Persist score and statistics, incrementing usage_count, in one statement."""
        ...

    async def delete_stale_patterns(self, cutoff_days: int = 30) -> int: ...

    async def store_prompt(self, record: ModelPromptRecord) -> str: ...

    async def update_prompt_outcome(
        self,
        prompt_id: str,
        selected_pattern_id: str | None,
        success_score: float,
        user_feedback: str | None = None,
    ) -> None: ...

    async def health_check(self) -> bool: ...


__all__ = ["ProtocolPatternStore"]
