# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pattern retrieval, prompt bookkeeping and prompt enrichment."""

from __future__ import annotations

from .enrichment import ModelEnrichedPrompt, PromptEnricher
from .prompt_feedback import PromptFeedbackRecorder
from .service import PatternRetrievalService, RetrievalOptions

__all__ = [
    "ModelEnrichedPrompt",
    "PatternRetrievalService",
    "PromptEnricher",
    "PromptFeedbackRecorder",
    "RetrievalOptions",
]
