# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Storage adapters for patterns and prompt records."""

from __future__ import annotations

from .config import ConfigPatternStorage
from .models import ModelPromptRecord
from .pattern_store import PatternStore
from .protocols import ProtocolPatternStore

__all__ = [
    "ConfigPatternStorage",
    "ModelPromptRecord",
    "PatternStore",
    "ProtocolPatternStore",
]
