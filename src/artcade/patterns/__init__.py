# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pattern data model, semantic tagging, identifier codec and boost."""

from __future__ import annotations

from .models import (
    EnumContentType,
    EnumPatternKind,
    ModelPattern,
    ModelPatternContent,
    ModelPatternMatch,
    ModelPatternMetadata,
    ModelSemanticTags,
    ModelUsageStats,
    parse_pattern,
    validate_pattern_payload,
)
from .semantic_boost import CATEGORY_WEIGHTS, calculate_semantic_boost
from .semantic_id import (
    ALL_ZERO_SEMANTIC_ID,
    decode_semantic_id,
    encode_semantic_id,
    try_decode_semantic_id,
)
from .tag_extractor import (
    extract_query_tags,
    extract_semantic_tags,
    prepare_pattern_for_storage,
)

__all__ = [
    "ALL_ZERO_SEMANTIC_ID",
    "CATEGORY_WEIGHTS",
    "EnumContentType",
    "EnumPatternKind",
    "ModelPattern",
    "ModelPatternContent",
    "ModelPatternMatch",
    "ModelPatternMetadata",
    "ModelSemanticTags",
    "ModelUsageStats",
    "calculate_semantic_boost",
    "decode_semantic_id",
    "encode_semantic_id",
    "extract_query_tags",
    "extract_semantic_tags",
    "parse_pattern",
    "prepare_pattern_for_storage",
    "try_decode_semantic_id",
    "validate_pattern_payload",
]
