# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Reuse verification of patterns in generated output."""

from __future__ import annotations

from .models import (
    ModelGeneratedOutput,
    ModelSnippet,
    ModelSnippetMatch,
    ModelUsageCheck,
    ModelVerificationReport,
)
from .snippets import SNIPPET_FAMILIES, extract_snippets
from .verifier import ReuseVerifier

__all__ = [
    "ModelGeneratedOutput",
    "ModelSnippet",
    "ModelSnippetMatch",
    "ModelUsageCheck",
    "ModelVerificationReport",
    "ReuseVerifier",
    "SNIPPET_FAMILIES",
    "extract_snippets",
]
