# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Models for reuse verification."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from artcade.patterns.models import EnumContentType

_STYLE_BLOCK = re.compile(r"<style\b[^>]*>(.*?)</style\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_BLOCK = re.compile(
    r"<script\b(?![^>]*\bsrc\s*=)[^>]*>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL
)


class ModelGeneratedOutput(BaseModel):
    """Markup, style and script sections of a piece of code."""

    model_config = ConfigDict(frozen=True)

    html: str = ""
    css: str = ""
    js: str = ""

    @classmethod
    def from_parts(
        cls, html: str, css: str | None = None, js: str | None = None
    ) -> ModelGeneratedOutput:
        """Build sections, pulling inline <style>/<script> bodies out of the
        markup for any section that was not given separately."""
        if not css:
            css = "\n".join(_STYLE_BLOCK.findall(html))
        if not js:
            js = "\n".join(_SCRIPT_BLOCK.findall(html))
        return cls(html=html, css=css, js=js)

    @classmethod
    def from_document(cls, document: str) -> ModelGeneratedOutput:
        """Split a single-file HTML document into its sections."""
        return cls.from_parts(document)

    def section(self, content_type: EnumContentType) -> str:
        return getattr(self, content_type.value)


class ModelSnippet(BaseModel):
    """A distinctive, whitespace-normalized fragment of a pattern."""

    model_config = ConfigDict(frozen=True)

    snippet: str = Field(min_length=1)
    content_type: EnumContentType
    context: str = Field(description="Family label, e.g. 'collision (game_mechanic)'")


class ModelSnippetMatch(ModelSnippet):
    """A snippet and whether the output contains it."""

    found: bool


class ModelUsageCheck(BaseModel):
    """How much of one pattern shows up in one output."""

    model_config = ConfigDict(frozen=True)

    pattern_id: str
    pattern_name: str
    snippets: list[ModelSnippetMatch] = Field(default_factory=list)
    total_snippets: int = Field(default=0, ge=0)
    usage_percentage: float = Field(default=0.0, ge=0.0, le=100.0)

    @property
    def found_snippets(self) -> list[ModelSnippetMatch]:
        return [s for s in self.snippets if s.found]

    @property
    def missing_snippets(self) -> list[ModelSnippetMatch]:
        return [s for s in self.snippets if not s.found]


class ModelVerificationReport(BaseModel):
    """Usage checks for every candidate pattern against one output."""

    model_config = ConfigDict(frozen=True)

    checks: list[ModelUsageCheck] = Field(default_factory=list)
    meaningful_reuse: bool = Field(
        description="True when at least one pattern reached the reuse threshold"
    )
    reuse_threshold: float = Field(ge=0.0, le=100.0)

    @property
    def best(self) -> ModelUsageCheck | None:
        if not self.checks:
            return None
        return max(self.checks, key=lambda check: check.usage_percentage)


__all__ = [
    "ModelGeneratedOutput",
    "ModelSnippet",
    "ModelSnippetMatch",
    "ModelUsageCheck",
    "ModelVerificationReport",
]
