# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Effectiveness tracking, auto-approval and pattern staging."""

from __future__ import annotations

from .auto_approval import (
    ModelPatternFeedback,
    calculate_feedback_score,
    should_auto_approve,
)
from .effectiveness import (
    EffectivenessTracker,
    ModelQualityAssessment,
    ModelUsageEvent,
    ModelUsageUpdate,
    apply_usage_event,
    compute_effectiveness_score,
)
from .staging import PatternStagingService

__all__ = [
    "EffectivenessTracker",
    "ModelPatternFeedback",
    "ModelQualityAssessment",
    "ModelUsageEvent",
    "ModelUsageUpdate",
    "PatternStagingService",
    "apply_usage_event",
    "calculate_feedback_score",
    "compute_effectiveness_score",
    "should_auto_approve",
]
