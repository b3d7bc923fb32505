# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Encode semantic tags into a compact UUID-shaped identifier.

Layout (hyphen separated, 8-4-4-4-12):

    <use_cases>-<mechanics>-<interactions>-<visual_style>-000000000000

Each category is its tags joined with ``_`` and truncated to the segment
width; an empty category becomes a run of zeros. The trailing block is
always twelve zeros.

The encoding is lossy. Truncation can cut a tag mid-word or drop later
tags, so ``decode(encode(tags)) == tags`` holds only when every category is
non-empty, contains no ``-``, and its joined text fits its segment width.
Short segments are not padded, so the result is not always 36 characters
long. Both behaviors are kept for compatibility with stored identifiers.
"""

from __future__ import annotations

from artcade.patterns.models import SEMANTIC_TAG_CATEGORIES, ModelSemanticTags

TAG_SEPARATOR = "_"
SEGMENT_SEPARATOR = "-"

# Width of each category segment, in category order.
SEGMENT_WIDTHS: tuple[int, ...] = (8, 4, 4, 4)
TRAILING_BLOCK = "0" * 12

ALL_ZERO_SEMANTIC_ID = SEGMENT_SEPARATOR.join(
    ["0" * width for width in SEGMENT_WIDTHS] + [TRAILING_BLOCK]
)


def _placeholder(width: int) -> str:
    return "0" * width


def encode_semantic_id(tags: ModelSemanticTags) -> str:
    """Encode tags into the 8-4-4-4-12 identifier.

    Example:
        >>> encode_semantic_id(ModelSemanticTags())
        '00000000-0000-0000-0000-000000000000'
    """
    segments = []
    for category, width in zip(SEMANTIC_TAG_CATEGORIES, SEGMENT_WIDTHS, strict=True):
        joined = TAG_SEPARATOR.join(getattr(tags, category))
        segments.append((joined or _placeholder(width))[:width])
    segments.append(TRAILING_BLOCK)
    return SEGMENT_SEPARATOR.join(segments)


def decode_semantic_id(value: str) -> ModelSemanticTags:
    """Decode an identifier back into tags.

    Only the first four segments are read; a segment equal to its zero
    placeholder decodes to an empty category.

    Raises:
        ValueError: If the value has fewer than four segments.
    """
    parts = value.split(SEGMENT_SEPARATOR)
    if len(parts) < len(SEGMENT_WIDTHS):
        raise ValueError(
            f"Semantic id must have at least {len(SEGMENT_WIDTHS)} segments: {value!r}"
        )
    categories: dict[str, list[str]] = {}
    for category, width, segment in zip(
        SEMANTIC_TAG_CATEGORIES, SEGMENT_WIDTHS, parts, strict=False
    ):
        if segment == _placeholder(width):
            categories[category] = []
        else:
            categories[category] = segment.split(TAG_SEPARATOR)
    return ModelSemanticTags(**categories)


def try_decode_semantic_id(value: str | None) -> ModelSemanticTags:
    """Decode an identifier, returning empty tags for missing or malformed values."""
    if not value:
        return ModelSemanticTags()
    try:
        return decode_semantic_id(value)
    except ValueError:
        return ModelSemanticTags()


__all__ = [
    "ALL_ZERO_SEMANTIC_ID",
    "SEGMENT_WIDTHS",
    "decode_semantic_id",
    "encode_semantic_id",
    "try_decode_semantic_id",
]
