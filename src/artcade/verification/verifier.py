# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Measure how much of a retrieved pattern ended up in generated output.

For each candidate pattern the verifier extracts distinctive snippets and
checks whether the output contains them:

    - html and css snippets: whitespace-normalized substring containment
      against the same output section
    - js snippets shaped like a declaration (class, function, method,
      arrow function): the output must declare the same name with the same
      shape, bodies may differ
    - other js snippets: substring containment

``usage_percentage = found / total * 100`` (0 when there are no snippets).
Verification is advisory and never raises; a pattern that cannot be
checked gets an all-zero result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from artcade.config.settings import Settings, get_settings
from artcade.patterns.models import EnumContentType, ModelPattern
from artcade.verification.models import (
    ModelGeneratedOutput,
    ModelSnippet,
    ModelSnippetMatch,
    ModelUsageCheck,
    ModelVerificationReport,
)
from artcade.verification.snippets import extract_snippets, normalize_whitespace

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z_$][\w$]*"
_NOT_METHOD_NAMES = frozenset({"if", "for", "while", "switch", "catch", "function", "return"})


@dataclass(frozen=True)
class DeclarationShape:
    """A js declaration form: how to read it from a snippet and find it in output."""

    name: str
    snippet_regex: re.Pattern[str]
    output_template: str

    def declared_name(self, snippet: str) -> str | None:
        match = self.snippet_regex.match(snippet)
        if match is None:
            return None
        name = match.group("name")
        if self.name == "method" and name in _NOT_METHOD_NAMES:
            return None
        return name

    def output_regex(self, name: str) -> re.Pattern[str]:
        return re.compile(self.output_template.format(name=re.escape(name)))


DECLARATION_SHAPES: tuple[DeclarationShape, ...] = (
    DeclarationShape(
        "class",
        re.compile(rf"class\s+(?P<name>{_IDENT})"),
        r"\bclass\s+{name}(?![\w$])",
    ),
    DeclarationShape(
        "function",
        re.compile(rf"(?:async\s+)?function\s*\*?\s*(?P<name>{_IDENT})\s*\("),
        r"\bfunction\s*\*?\s*{name}\s*\(",
    ),
    DeclarationShape(
        "arrow",
        re.compile(
            rf"(?:const|let|var)\s+(?P<name>{_IDENT})\s*=\s*(?:async\s+)?"
            rf"(?:\([^)]*\)|{_IDENT})\s*=>"
        ),
        r"\b(?:const|let|var)\s+{name}\s*=\s*(?:async\s+)?(?:\([^)]*\)|[\w$]+)\s*=>",
    ),
    DeclarationShape(
        "method",
        re.compile(rf"(?:async\s+)?(?P<name>{_IDENT})\s*\([^)]*\)\s*\{{"),
        r"(?<![\w$.]){name}\s*\([^)]*\)\s*\{{",
    ),
)


def declaration_of(snippet: str) -> tuple[DeclarationShape, str] | None:
    """Return the declaration shape and name of a js snippet, if it is one."""
    for shape in DECLARATION_SHAPES:
        name = shape.declared_name(snippet)
        if name is not None:
            return shape, name
    return None


def snippet_found(snippet: ModelSnippet, output: ModelGeneratedOutput) -> bool:
    """Check one normalized snippet against the matching output section."""
    section = normalize_whitespace(output.section(snippet.content_type))
    if snippet.content_type is EnumContentType.JS:
        declaration = declaration_of(snippet.snippet)
        if declaration is not None:
            shape, name = declaration
            return shape.output_regex(name).search(section) is not None
    return snippet.snippet in section


class ReuseVerifier:
    """Check candidate patterns against generated output."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def reuse_threshold(self) -> float:
        return self._settings.meaningful_reuse_percentage

    def check_pattern(
        self, pattern: ModelPattern, output: ModelGeneratedOutput
    ) -> ModelUsageCheck:
        """Compute the usage check for one pattern.

        Raises:
            KeyError: If the pattern's kind has no snippet family table.
        """
        results = [
            ModelSnippetMatch(**snippet.model_dump(), found=snippet_found(snippet, output))
            for snippet in extract_snippets(pattern)
        ]
        total = len(results)
        found = sum(1 for result in results if result.found)
        percentage = (found / total * 100.0) if total else 0.0
        return ModelUsageCheck(
            pattern_id=pattern.id,
            pattern_name=pattern.pattern_name,
            snippets=results,
            total_snippets=total,
            usage_percentage=percentage,
        )

    def verify(
        self, patterns: Iterable[ModelPattern], output: ModelGeneratedOutput
    ) -> ModelVerificationReport:
        """Check every candidate pattern; never raises."""
        checks: list[ModelUsageCheck] = []
        for pattern in patterns:
            try:
                check = self.check_pattern(pattern, output)
            except Exception as e:
                logger.error(
                    f"Reuse verification failed for pattern {pattern.id}: {e}",
                    exc_info=True,
                )
                check = ModelUsageCheck(
                    pattern_id=pattern.id, pattern_name=pattern.pattern_name
                )
            logger.debug(
                f"Pattern {pattern.id} usage {check.usage_percentage:.1f}%",
                extra={
                    "pattern_id": pattern.id,
                    "found": len(check.found_snippets),
                    "total": check.total_snippets,
                },
            )
            checks.append(check)

        meaningful = any(c.usage_percentage >= self.reuse_threshold for c in checks)
        if checks and not meaningful:
            logger.warning(
                f"No pattern reached {self.reuse_threshold:.0f}% reuse in generated output",
                extra={"pattern_ids": [c.pattern_id for c in checks]},
            )
        return ModelVerificationReport(
            checks=checks,
            meaningful_reuse=meaningful,
            reuse_threshold=self.reuse_threshold,
        )

    def verify_document(
        self, patterns: Iterable[ModelPattern], document: str
    ) -> ModelVerificationReport:
        """Verify against a single-file HTML document."""
        return self.verify(patterns, ModelGeneratedOutput.from_document(document))


__all__ = [
    "DECLARATION_SHAPES",
    "DeclarationShape",
    "ReuseVerifier",
    "declaration_of",
    "snippet_found",
]
