# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Best-effort prompt enrichment with retrieved pattern examples.

Retrieved patterns are ordered by effectiveness score and rendered as
fenced code examples. Examples are added in that order until the token
budget is reached; the first example that does not fit ends selection, so
a high-scoring example is never displaced by a smaller, weaker one.
Retrieval failures never block generation: the prompt falls back to a
"no patterns" note.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable

import tiktoken
from pydantic import BaseModel, ConfigDict, Field

from artcade.config.settings import Settings, get_settings
from artcade.patterns.models import ModelPattern, ModelPatternMatch
from artcade.retrieval.service import PatternRetrievalService

logger = logging.getLogger(__name__)

NO_PATTERNS_TEXT = "No relevant patterns found."

DEFAULT_PROMPT_TEMPLATE: str = (
    "Build a self-contained HTML experience for the request below.\n"
    "\n"
    "## Reference Patterns\n"
    "\n"
    "{{pattern_examples}}\n"
    "\n"
    "## Request\n"
    "\n"
    "{{user_prompt}}\n"
)


@functools.lru_cache(maxsize=1)
def _get_tokenizer() -> tiktoken.Encoding:
    """Get the tokenizer (cached singleton)."""
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens in text using cl100k_base encoding."""
    return len(_get_tokenizer().encode(text, disallowed_special=()))


def format_pattern_example(pattern: ModelPattern) -> str:
    """Render one pattern as a scored example with fenced code blocks."""
    content = pattern.content
    blocks = [
        f"Here's a highly effective {pattern.kind.value} pattern "
        f"(score: {pattern.effectiveness_score:.2f}): {pattern.pattern_name}",
        f"```html\n{content.html}\n```",
    ]
    if content.css:
        blocks.append(f"```css\n{content.css}\n```")
    if content.js:
        blocks.append(f"```javascript\n{content.js}\n```")
    return "\n".join(blocks)


class ModelEnrichedPrompt(BaseModel):
    """An assembled prompt and the patterns that went into it."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    patterns: list[ModelPatternMatch] = Field(default_factory=list)
    example_tokens: int = Field(default=0, ge=0)


class PromptEnricher:
    """Assemble generation prompts with retrieved pattern examples."""

    def __init__(
        self,
        retrieval: PatternRetrievalService,
        template: str = DEFAULT_PROMPT_TEMPLATE,
        settings: Settings | None = None,
        token_counter: Callable[[str], int] = count_tokens,
    ) -> None:
        if "{{user_prompt}}" not in template:
            raise ValueError("template must contain {{user_prompt}}")
        self._retrieval = retrieval
        self._template = template
        self._settings = settings or get_settings()
        self._count_tokens = token_counter

    def _render(self, user_prompt: str, examples: str) -> str:
        return self._template.replace("{{pattern_examples}}", examples).replace(
            "{{user_prompt}}", user_prompt
        )

    def select_examples(
        self, matches: list[ModelPatternMatch], max_tokens: int
    ) -> tuple[list[ModelPatternMatch], list[str], int]:
        """Pick examples by effectiveness score within the token budget."""
        ordered = sorted(
            matches, key=lambda m: m.pattern.effectiveness_score, reverse=True
        )
        selected: list[ModelPatternMatch] = []
        rendered: list[str] = []
        used = 0
        for match in ordered:
            example = format_pattern_example(match.pattern)
            tokens = self._count_tokens(example)
            if used + tokens > max_tokens:
                logger.debug(
                    f"Token budget reached at pattern {match.pattern.id}",
                    extra={"used_tokens": used, "max_tokens": max_tokens},
                )
                break
            selected.append(match)
            rendered.append(example)
            used += tokens
        return selected, rendered, used

    async def enrich(
        self,
        user_prompt: str,
        threshold: float | None = None,
        limit: int | None = None,
    ) -> ModelEnrichedPrompt:
        """Build the generation prompt for a request. Never raises on retrieval failure."""
        matches = await self._retrieval.find_similar(
            user_prompt, threshold=threshold, limit=limit, best_effort=True
        )
        selected, rendered, used = self.select_examples(
            matches, self._settings.enrichment_max_tokens
        )
        examples = "\n\n".join(rendered) if rendered else NO_PATTERNS_TEXT
        logger.info(
            f"Enriched prompt with {len(selected)} pattern examples",
            extra={
                "pattern_ids": [m.pattern.id for m in selected],
                "example_tokens": used,
            },
        )
        return ModelEnrichedPrompt(
            prompt=self._render(user_prompt, examples),
            patterns=selected,
            example_tokens=used,
        )


__all__ = [
    "DEFAULT_PROMPT_TEMPLATE",
    "ModelEnrichedPrompt",
    "NO_PATTERNS_TEXT",
    "PromptEnricher",
    "count_tokens",
    "format_pattern_example",
]
