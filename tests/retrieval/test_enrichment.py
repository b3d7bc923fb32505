# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Tests for prompt enrichment with pattern examples.

A token counter keyed on pattern names is injected so these tests never
load a tokenizer.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from artcade.retrieval.enrichment import (
    NO_PATTERNS_TEXT,
    PromptEnricher,
    format_pattern_example,
)
from tests.conftest import make_match, make_pattern, make_settings

pytestmark = pytest.mark.unit

TEMPLATE = "Examples:\n{{pattern_examples}}\nRequest: {{user_prompt}}"

TOKENS_BY_NAME = {"Top": 50, "Big": 80, "Small": 10, "Huge": 150}


def name_token_counter(text: str) -> int:
    for name, tokens in TOKENS_BY_NAME.items():
        if f": {name}\n" in text:
            return tokens
    return 1


@pytest.fixture
def retrieval() -> AsyncMock:
    service = AsyncMock()
    service.find_similar.return_value = []
    return service


def make_enricher(retrieval: AsyncMock, max_tokens: int = 100) -> PromptEnricher:
    return PromptEnricher(
        retrieval,
        template=TEMPLATE,
        settings=make_settings(enrichment_max_tokens=max_tokens),
        token_counter=name_token_counter,
    )


class TestFormatPatternExample:
    """Tests for format_pattern_example()."""

    def test_renders_fenced_sections(self) -> None:
        pattern = make_pattern(
            pattern_name="Top",
            css=".car { left: 0; }",
            js="car.x += 1;",
            effectiveness_score=0.876,
        )

        example = format_pattern_example(pattern)

        assert example.startswith(
            "Here's a highly effective game_mechanic pattern (score: 0.88): Top"
        )
        assert "```html\n" in example
        assert "```css\n.car { left: 0; }\n```" in example
        assert "```javascript\ncar.x += 1;\n```" in example

    def test_skips_missing_sections(self) -> None:
        example = format_pattern_example(make_pattern(css=None, js=None))

        assert "```css" not in example
        assert "```javascript" not in example


class TestEnrich:
    """Tests for PromptEnricher.enrich()."""

    @pytest.mark.asyncio
    async def test_orders_examples_by_effectiveness(self, retrieval: AsyncMock) -> None:
        retrieval.find_similar.return_value = [
            make_match(similarity=0.95, pattern_name="Small", effectiveness_score=0.4),
            make_match(similarity=0.7, pattern_name="Top", effectiveness_score=0.9),
        ]

        enriched = await make_enricher(retrieval).enrich("racing game")

        assert [m.pattern.pattern_name for m in enriched.patterns] == ["Top", "Small"]
        assert enriched.prompt.index(": Top") < enriched.prompt.index(": Small")
        assert enriched.prompt.endswith("Request: racing game")
        assert enriched.example_tokens == 60

    @pytest.mark.asyncio
    async def test_uses_best_effort_retrieval(self, retrieval: AsyncMock) -> None:
        await make_enricher(retrieval).enrich("racing game", threshold=0.7, limit=2)

        retrieval.find_similar.assert_awaited_once_with(
            "racing game", threshold=0.7, limit=2, best_effort=True
        )

    @pytest.mark.asyncio
    async def test_no_patterns_note(self, retrieval: AsyncMock) -> None:
        enriched = await make_enricher(retrieval).enrich("racing game")

        assert NO_PATTERNS_TEXT in enriched.prompt
        assert enriched.patterns == []
        assert enriched.example_tokens == 0

    @pytest.mark.asyncio
    async def test_first_oversized_example_ends_selection(
        self, retrieval: AsyncMock
    ) -> None:
        retrieval.find_similar.return_value = [
            make_match(pattern_name="Top", effectiveness_score=0.9),
            make_match(pattern_name="Big", effectiveness_score=0.8),
            make_match(pattern_name="Small", effectiveness_score=0.5),
        ]

        enriched = await make_enricher(retrieval, max_tokens=100).enrich("racing game")

        assert [m.pattern.pattern_name for m in enriched.patterns] == ["Top"]
        assert enriched.example_tokens == 50

    @pytest.mark.asyncio
    async def test_nothing_fits(self, retrieval: AsyncMock) -> None:
        retrieval.find_similar.return_value = [
            make_match(pattern_name="Huge", effectiveness_score=0.8)
        ]

        enriched = await make_enricher(retrieval, max_tokens=100).enrich("x")

        assert enriched.patterns == []
        assert NO_PATTERNS_TEXT in enriched.prompt


class TestTemplate:
    """Tests for template validation."""

    def test_template_requires_user_prompt(self, retrieval: AsyncMock) -> None:
        with pytest.raises(ValueError, match="user_prompt"):
            PromptEnricher(retrieval, template="{{pattern_examples}} only")
