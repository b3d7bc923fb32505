# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Semantic tag extraction for patterns and free-text queries.

Each tag category is filled independently from an ordered chain of sources.
The first source that yields at least one tag wins for that category:

    1. Tags declared in ``content.metadata.semantic_tags``
    2. Keyword inference over the pattern name, description and script
    3. Declared metadata (``interaction_type``, ``visual_type``,
       ``game_mechanics``) where the category has such a field

Keyword matching is lowercase substring containment. Extraction never
raises; a pattern with nothing to infer from yields empty categories.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from artcade.patterns.models import (
    SEMANTIC_TAG_CATEGORIES,
    EnumPatternKind,
    ModelPattern,
    ModelSemanticTags,
)
from artcade.patterns.semantic_id import encode_semantic_id

logger = logging.getLogger(__name__)


class EnumTagSource(str, Enum):
    """Which text a keyword rule inspects."""

    NAME = "name"
    DESCRIPTION = "description"
    SCRIPT = "script"


@dataclass(frozen=True)
class TagRule:
    """Emit ``tag`` into ``category`` when any keyword occurs in ``source``."""

    category: str
    source: EnumTagSource
    keywords: tuple[str, ...]
    tag: str

    def __post_init__(self) -> None:
        if self.category not in SEMANTIC_TAG_CATEGORIES:
            raise ValueError(f"Unknown semantic tag category: {self.category}")
        if not self.keywords:
            raise ValueError("TagRule requires at least one keyword")

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


# =============================================================================
# Rule Table
# =============================================================================

# Order matters: tags are emitted in table order within a category.
TAG_RULES: tuple[TagRule, ...] = (
    # mechanics from the pattern name
    TagRule("mechanics", EnumTagSource.NAME, ("movement",), "movement"),
    TagRule("mechanics", EnumTagSource.NAME, ("physics",), "physics"),
    TagRule("mechanics", EnumTagSource.NAME, ("collision",), "collision"),
    TagRule("mechanics", EnumTagSource.NAME, ("jump",), "jumping"),
    TagRule("mechanics", EnumTagSource.NAME, ("shoot", "projectile"), "shooting"),
    # mechanics from the description
    TagRule("mechanics", EnumTagSource.DESCRIPTION, ("vehicle",), "vehicle_control"),
    TagRule("mechanics", EnumTagSource.DESCRIPTION, ("physics",), "physics"),
    TagRule("mechanics", EnumTagSource.DESCRIPTION, ("collision",), "collision"),
    # use cases from the description
    TagRule("use_cases", EnumTagSource.DESCRIPTION, ("racing",), "racing_game"),
    TagRule(
        "use_cases", EnumTagSource.DESCRIPTION, ("driving",), "driving_simulation"
    ),
    TagRule("use_cases", EnumTagSource.DESCRIPTION, ("platformer",), "platformer"),
    TagRule("use_cases", EnumTagSource.DESCRIPTION, ("puzzle",), "puzzle_game"),
    TagRule("use_cases", EnumTagSource.DESCRIPTION, ("shooter",), "shooter_game"),
    # interactions from script idioms
    TagRule(
        "interactions",
        EnumTagSource.SCRIPT,
        ("keydown", "keyup"),
        "keyboard_control",
    ),
    TagRule(
        "interactions",
        EnumTagSource.SCRIPT,
        ("mousemove", "click"),
        "mouse_control",
    ),
    TagRule(
        "interactions",
        EnumTagSource.SCRIPT,
        ("touchstart", "touchmove"),
        "touch_control",
    ),
    # visual style from script idioms
    TagRule(
        "visual_style",
        EnumTagSource.SCRIPT,
        ("animation", "requestanimationframe"),
        "animated",
    ),
)


# =============================================================================
# Sources
# =============================================================================


@dataclass(frozen=True)
class _PatternText:
    """Lowercased text views of a pattern, computed once per extraction."""

    pattern: ModelPattern
    name: str
    description: str
    script: str

    @classmethod
    def of(cls, pattern: ModelPattern) -> _PatternText:
        metadata = pattern.content.metadata
        description = " ".join(
            part for part in (pattern.content.context, metadata.description) if part
        )
        return cls(
            pattern=pattern,
            name=pattern.pattern_name.lower(),
            description=description.lower(),
            script=(pattern.content.js or "").lower(),
        )

    def text_for(self, source: EnumTagSource) -> str:
        if source is EnumTagSource.NAME:
            return self.name
        if source is EnumTagSource.DESCRIPTION:
            return self.description
        return self.script


_Source = Callable[[_PatternText], list[str]]


def _apply_rules(
    category: str, texts: dict[EnumTagSource, str], sources: Iterable[EnumTagSource]
) -> list[str]:
    wanted = set(sources)
    return [
        rule.tag
        for rule in TAG_RULES
        if rule.category == category
        and rule.source in wanted
        and rule.matches(texts[rule.source])
    ]


def _explicit(category: str) -> _Source:
    def source(view: _PatternText) -> list[str]:
        declared = view.pattern.content.metadata.semantic_tags
        return declared.category(category) if declared else []

    return source


def _keywords(category: str, *sources: EnumTagSource) -> _Source:
    def source(view: _PatternText) -> list[str]:
        texts = {src: view.text_for(src) for src in sources}
        return _apply_rules(category, texts, sources)

    return source


def _inferred_mechanics(view: _PatternText) -> list[str]:
    seed = (
        ["game_mechanic"]
        if view.pattern.kind is EnumPatternKind.GAME_MECHANIC
        else []
    )
    return seed + _keywords(
        "mechanics", EnumTagSource.NAME, EnumTagSource.DESCRIPTION
    )(view)


def _declared_mechanics(view: _PatternText) -> list[str]:
    mechanics = view.pattern.content.metadata.game_mechanics or []
    return [mechanic.type for mechanic in mechanics if mechanic.type]


def _declared_interaction(view: _PatternText) -> list[str]:
    value = view.pattern.content.metadata.interaction_type
    return [value] if value else []


def _declared_visual(view: _PatternText) -> list[str]:
    value = view.pattern.content.metadata.visual_type
    return [value] if value else []


CATEGORY_SOURCES: dict[str, tuple[_Source, ...]] = {
    "use_cases": (
        _explicit("use_cases"),
        _keywords("use_cases", EnumTagSource.DESCRIPTION),
    ),
    "mechanics": (
        _explicit("mechanics"),
        _inferred_mechanics,
        _declared_mechanics,
    ),
    "interactions": (
        _explicit("interactions"),
        _declared_interaction,
        _keywords("interactions", EnumTagSource.SCRIPT),
    ),
    "visual_style": (
        _explicit("visual_style"),
        _declared_visual,
        _keywords("visual_style", EnumTagSource.SCRIPT),
    ),
}


# =============================================================================
# Public API
# =============================================================================


def dedupe(tags: Iterable[str]) -> list[str]:
    """Drop repeated tags, keeping first-seen order."""
    return list(dict.fromkeys(tags))


def extract_semantic_tags(pattern: ModelPattern) -> ModelSemanticTags:
    """Derive semantic tags for a pattern.

    Args:
        pattern: Pattern to inspect.

    Returns:
        Tags for all four categories; a category may be empty.
    """
    view = _PatternText.of(pattern)
    categories: dict[str, list[str]] = {}
    for category, sources in CATEGORY_SOURCES.items():
        found: list[str] = []
        for source in sources:
            found = source(view)
            if found:
                break
        categories[category] = dedupe(found)
    logger.debug(
        f"Extracted semantic tags for pattern {pattern.id}",
        extra={"pattern_id": pattern.id, "tags": categories},
    )
    return ModelSemanticTags(**categories)


def extract_query_tags(prompt: str) -> ModelSemanticTags:
    """Derive semantic tags from a free-text request.

    A prompt plays every textual role at once (name, description and script),
    so all keyword rules are applied to it.
    """
    text = prompt.lower()
    texts = {source: text for source in EnumTagSource}
    return ModelSemanticTags(
        **{
            category: dedupe(_apply_rules(category, texts, EnumTagSource))
            for category in SEMANTIC_TAG_CATEGORIES
        }
    )


def prepare_pattern_for_storage(pattern: ModelPattern) -> ModelPattern:
    """Return a copy of the pattern with its semantic id computed from its tags."""
    return pattern.model_copy(
        update={"semantic_id": encode_semantic_id(extract_semantic_tags(pattern))}
    )


__all__ = [
    "CATEGORY_SOURCES",
    "EnumTagSource",
    "TAG_RULES",
    "TagRule",
    "dedupe",
    "extract_query_tags",
    "extract_semantic_tags",
    "prepare_pattern_for_storage",
]
