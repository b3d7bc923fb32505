# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Shared fixtures and factories for the pattern library tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from artcade.config.settings import Settings, clear_settings_cache
from artcade.patterns.models import (
    EnumPatternKind,
    ModelPattern,
    ModelPatternMatch,
    ModelUsageStats,
)

# =============================================================================
# Shared test data factories
# =============================================================================

RACING_JS = """
document.addEventListener('keydown', (e) => {
  if (e.key === 'ArrowUp') car.speed += 1;
});
"""


def make_pattern(
    pattern_id: str | None = None,
    kind: EnumPatternKind = EnumPatternKind.GAME_MECHANIC,
    pattern_name: str = "Car Movement",
    html: str = '<canvas id="game"></canvas>',
    css: str | None = None,
    js: str | None = RACING_JS,
    context: str = "Top-down vehicle driving with physics for a racing game",
    metadata: dict[str, Any] | None = None,
    effectiveness_score: float = 0.5,
    usage_count: int = 0,
    usage_stats: ModelUsageStats | None = None,
    semantic_id: str | None = None,
) -> ModelPattern:
    """Create a pattern with defaults."""
    return ModelPattern(
        id=pattern_id or str(uuid4()),
        kind=kind,
        pattern_name=pattern_name,
        content={
            "html": html,
            "css": css,
            "js": js,
            "context": context,
            "metadata": metadata or {},
        },
        effectiveness_score=effectiveness_score,
        usage_count=usage_count,
        usage_stats=usage_stats,
        semantic_id=semantic_id,
    )


def make_match(
    pattern: ModelPattern | None = None,
    similarity: float = 0.8,
    **pattern_kwargs: Any,
) -> ModelPatternMatch:
    """Create a match as the store returns it (raw similarity only)."""
    return ModelPatternMatch(
        pattern=pattern or make_pattern(**pattern_kwargs),
        similarity=similarity,
        raw_similarity=similarity,
    )


def make_settings(**overrides: Any) -> Settings:
    """Create settings that ignore any .env file on the test machine."""
    return Settings(_env_file=None, **overrides)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_cache() -> Iterator[None]:
    """Reset the settings singleton around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def mock_store() -> AsyncMock:
    """Store double with every protocol method as an AsyncMock."""
    store = AsyncMock()
    store.match_patterns.return_value = []
    store.get_pattern.return_value = None
    store.update_usage.return_value = None
    store.insert_pattern.side_effect = lambda pattern, embedding: pattern.id
    return store


@pytest.fixture
def mock_embedder() -> AsyncMock:
    embedder = AsyncMock()
    embedder.embed.return_value = [0.1, 0.2, 0.3]
    return embedder
