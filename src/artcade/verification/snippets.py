# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Kind-aware extraction of distinctive snippets from a pattern.

Each pattern kind maps to a table of snippet families (collision, grid,
keyframes, ...). A family is one or more matchers, each bound to a content
section (html, css or js). A set of supplementary matchers runs for every
kind and picks up state objects, gameplay statements, keyframe blocks,
compound selectors, data attributes and multi-class lists.

Snippets are whitespace-normalized, deduplicated within their family and
labeled ``"<family> (<kind>)"``. Looking up a kind with no table raises
KeyError.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

from artcade.patterns.models import EnumContentType, EnumPatternKind, ModelPattern
from artcade.verification.models import ModelGeneratedOutput, ModelSnippet

HTML = EnumContentType.HTML
CSS = EnumContentType.CSS
JS = EnumContentType.JS

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim the ends."""
    return _WHITESPACE.sub(" ", text).strip()


# =============================================================================
# Matchers
# =============================================================================


@dataclass(frozen=True)
class RegexSnippetMatcher:
    """Extract every regex match from one content section.

    If the regex defines a ``snippet`` group, that group is the snippet;
    otherwise the whole match is.
    """

    family: str
    content_type: EnumContentType
    regex: re.Pattern[str]
    accept: Callable[[str], bool] | None = field(default=None, compare=False)

    def extract(self, text: str) -> Iterator[str]:
        use_group = "snippet" in self.regex.groupindex
        for match in self.regex.finditer(text):
            snippet = match.group("snippet") if use_group else match.group(0)
            if snippet and (self.accept is None or self.accept(snippet)):
                yield snippet


def balanced_blocks(start: re.Pattern[str], text: str) -> Iterator[str]:
    """Extend every ``start`` match to the brace that closes it.

    ``start`` must end on the opening brace. Unterminated blocks are skipped.
    """
    for match in start.finditer(text):
        depth = 0
        for index in range(match.end() - 1, len(text)):
            char = text[index]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    yield text[match.start() : index + 1]
                    break


@dataclass(frozen=True)
class KeyframeBlockMatcher:
    """Extract complete ``@keyframes name { ... }`` blocks, nested braces included."""

    family: str = "keyframe-block"
    content_type: EnumContentType = CSS

    _START = re.compile(r"@(?:-webkit-)?keyframes\s+[\w-]+\s*\{")

    def extract(self, text: str) -> Iterator[str]:
        return balanced_blocks(self._START, text)


@dataclass(frozen=True)
class StateObjectMatcher:
    """Extract ``name = { ... }`` object literals, nested objects included."""

    family: str = "state-object"
    content_type: EnumContentType = JS

    _START = re.compile(r"\b\w+\s*=\s*\{")

    def extract(self, text: str) -> Iterator[str]:
        return balanced_blocks(self._START, text)


SnippetMatcher = RegexSnippetMatcher | KeyframeBlockMatcher | StateObjectMatcher


def _rx(pattern: str, flags: int = re.IGNORECASE) -> re.Pattern[str]:
    return re.compile(pattern, flags)


def _matcher(family: str, content_type: EnumContentType, pattern: str) -> RegexSnippetMatcher:
    return RegexSnippetMatcher(family, content_type, _rx(pattern))


# Assignment that is not a comparison: =, +=, -=, *=, /= but not == or ===.
_ASSIGN = r"\s*[-+*/]?=(?!=)[^;\n]*"
_DECLARATION = (
    r"(?:\bclass\s+[A-Za-z_$][\w$]*"
    r"|\b(?:async\s+)?function\s*\*?\s*[A-Za-z_$][\w$]*\s*\([^)]*\)"
    r"|\b(?:const|let|var)\s+[A-Za-z_$][\w$]*\s*=\s*(?:async\s+)?"
    r"(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*=>)"
)


# =============================================================================
# Family Tables
# =============================================================================

GAME_MECHANIC_FAMILIES: tuple[SnippetMatcher, ...] = (
    _matcher(
        "collision",
        JS,
        r"\b(?:function\s+)?\w*(?:collision|collide|intersect|overlap)\w*\s*\([^()]*\)",
    ),
    _matcher(
        "movement",
        JS,
        r"\b[\w.]*\.(?:x|y)\b" + _ASSIGN + r"|\b\w*(?:velocity|speed|direction)\w*" + _ASSIGN,
    ),
    _matcher(
        "shooting",
        JS,
        r"\b(?:function\s+)?\w*(?:shoot|fire|bullet|projectile)\w*\s*\([^()]*\)",
    ),
    _matcher(
        "game-loop",
        JS,
        r"\brequestAnimationFrame\s*\(\s*[\w.]+\s*\)"
        r"|\bfunction\s+(?:gameLoop|loop|update|render|draw|tick)\s*\([^()]*\)",
    ),
    _matcher(
        "physics",
        JS,
        r"\b[\w.]*(?:gravity|friction|acceleration|bounce|mass)\w*" + _ASSIGN,
    ),
    _matcher(
        "input",
        JS,
        r"\baddEventListener\s*\(\s*['\"](?:key\w+|mouse\w+|click|touch\w+|pointer\w+)['\"]"
        r"|\b(?:e|ev|evt|event)\.(?:key|code|keyCode)\s*===?\s*['\"]?[\w ]+['\"]?",
    ),
)

LAYOUT_FAMILIES: tuple[SnippetMatcher, ...] = (
    _matcher(
        "grid",
        CSS,
        r"display\s*:\s*(?:inline-)?grid\b|grid-template-(?:columns|rows|areas)\s*:[^;}]+",
    ),
    _matcher(
        "flex",
        CSS,
        r"display\s*:\s*(?:inline-)?flex\b"
        r"|\b(?:flex-direction|flex-wrap|justify-content|align-items)\s*:[^;}]+",
    ),
    _matcher("responsive", CSS, r"@media[^{]+"),
    _matcher("positioning", CSS, r"\bposition\s*:\s*(?:absolute|relative|fixed|sticky)\b"),
    _matcher(
        "container",
        HTML,
        r"<(?:div|section|main|header|footer|nav|aside|article)\b[^>]*"
        r"\bclass\s*=\s*['\"][^'\"]*(?:container|wrapper|grid|row|col|layout)[^'\"]*['\"][^>]*>",
    ),
)

ANIMATION_FAMILIES: tuple[SnippetMatcher, ...] = (
    _matcher("keyframes", CSS, r"@(?:-webkit-)?keyframes\s+[\w-]+"),
    _matcher("transition", CSS, r"\btransition(?:-[\w-]+)?\s*:[^;}]+"),
    _matcher("transform", CSS, r"\btransform\s*:[^;}]+"),
    _matcher("transform", JS, r"\.style\.transform\s*=[^;\n]+"),
    _matcher("animation", CSS, r"\banimation(?:-[\w-]+)?\s*:[^;}]+"),
    _matcher("timing", CSS, r"\b(?:cubic-bezier|steps)\([^)]*\)"),
    _matcher("timing", JS, r"\b(?:setTimeout|setInterval)\s*\(\s*[\w.]+"),
)

INTERACTION_FAMILIES: tuple[SnippetMatcher, ...] = (
    _matcher("event", JS, r"\baddEventListener\s*\(\s*['\"][\w-]+['\"]"),
    _matcher(
        "event",
        HTML,
        r"\bon(?:click|input|change|submit|keydown|keyup|mouseover|mouseout)\s*=\s*['\"][^'\"]*['\"]",
    ),
    _matcher(
        "state",
        JS,
        r"\b(?:let|const|var)\s+\w*(?:state|active|selected|open|enabled|visible)\w*\s*=[^;\n]+"
        r"|\.classList\.(?:add|remove|toggle)\s*\([^)]*\)",
    ),
    _matcher(
        "handler",
        JS,
        r"\bfunction\s+(?:handle|on)\w*\s*\([^)]*\)"
        r"|\b(?:const|let|var)\s+(?:handle|on)\w*\s*=\s*(?:\([^)]*\)|\w+)\s*=>",
    ),
    _matcher("validation", JS, r"\b\w*(?:validate|isValid|checkValidity)\w*\s*\([^()]*\)"),
    _matcher("validation", HTML, r"\bpattern\s*=\s*['\"][^'\"]+['\"]"),
    _matcher("feedback", CSS, r"[\w.#-]+:(?:hover|focus|active|disabled)\b"),
    _matcher("feedback", JS, r"\.(?:textContent|innerText|innerHTML)\s*=[^;\n]+"),
)

GENERIC_FAMILIES: tuple[SnippetMatcher, ...] = (
    _matcher(
        "structure",
        HTML,
        r"<[a-z][\w-]*\b[^>]*\b(?:id|class)\s*=\s*['\"][^'\"]+['\"][^>]*>",
    ),
    RegexSnippetMatcher(
        "style",
        CSS,
        _rx(r"(?P<snippet>[^{}@\s;][^{}@;]*\{[^{}]*\})", 0),
    ),
    RegexSnippetMatcher("behavior", JS, _rx(_DECLARATION, 0)),
)

SNIPPET_FAMILIES: Mapping[EnumPatternKind, tuple[SnippetMatcher, ...]] = {
    EnumPatternKind.GAME_MECHANIC: GAME_MECHANIC_FAMILIES,
    EnumPatternKind.LAYOUT: LAYOUT_FAMILIES,
    EnumPatternKind.ANIMATION: ANIMATION_FAMILIES,
    EnumPatternKind.INTERACTION: INTERACTION_FAMILIES,
    EnumPatternKind.STYLE: GENERIC_FAMILIES,
}


def _has_many_classes(class_value: str) -> bool:
    return len(class_value.split()) > 2


SUPPLEMENTARY_MATCHERS: tuple[SnippetMatcher, ...] = (
    StateObjectMatcher(),
    RegexSnippetMatcher(
        "gameplay-element",
        JS,
        _rx(
            r"\b(?:score|time|timer|position|width|height|speed|level|lives)\b"
            r"\s*[-+*/]?=(?!=)[^;\n]*;",
            0,
        ),
    ),
    KeyframeBlockMatcher(),
    RegexSnippetMatcher(
        "compound-selector",
        CSS,
        _rx(r"\.[a-zA-Z_][\w-]*(?:\.[a-zA-Z_][\w-]*)+", 0),
    ),
    RegexSnippetMatcher(
        "data-attribute",
        HTML,
        _rx(r"\bdata-[\w-]+\s*=\s*['\"][^'\"]*['\"]", 0),
    ),
    RegexSnippetMatcher(
        "class-list",
        HTML,
        _rx(r"\bclass\s*=\s*['\"](?P<snippet>[^'\"]+)['\"]", 0),
        accept=_has_many_classes,
    ),
)


# =============================================================================
# Extraction
# =============================================================================


def families_for(kind: EnumPatternKind) -> tuple[SnippetMatcher, ...]:
    """Return the family table for a kind.

    Raises:
        KeyError: If the kind has no table.
    """
    return SNIPPET_FAMILIES[kind]


def pattern_sections(pattern: ModelPattern) -> ModelGeneratedOutput:
    content = pattern.content
    return ModelGeneratedOutput.from_parts(content.html, content.css, content.js)


def extract_snippets(pattern: ModelPattern) -> list[ModelSnippet]:
    """Extract the distinctive snippets of a pattern.

    Raises:
        KeyError: If the pattern's kind has no family table.
    """
    matchers = families_for(pattern.kind) + SUPPLEMENTARY_MATCHERS
    sections = pattern_sections(pattern)
    seen: set[tuple[str, str]] = set()
    snippets: list[ModelSnippet] = []
    for matcher in matchers:
        for raw in matcher.extract(sections.section(matcher.content_type)):
            snippet = normalize_whitespace(raw)
            key = (matcher.family, snippet)
            if not snippet or key in seen:
                continue
            seen.add(key)
            snippets.append(
                ModelSnippet(
                    snippet=snippet,
                    content_type=matcher.content_type,
                    context=f"{matcher.family} ({pattern.kind.value})",
                )
            )
    return snippets


__all__ = [
    "GENERIC_FAMILIES",
    "KeyframeBlockMatcher",
    "RegexSnippetMatcher",
    "SNIPPET_FAMILIES",
    "SUPPLEMENTARY_MATCHERS",
    "StateObjectMatcher",
    "balanced_blocks",
    "extract_snippets",
    "families_for",
    "normalize_whitespace",
    "pattern_sections",
]
