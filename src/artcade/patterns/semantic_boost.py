# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Tag-overlap boost between a candidate pattern and a query.

For each category with overlap, the boost adds the category weight times
the fraction of the candidate's tags that the query shares. The fraction is
normalized by the candidate's tag count, so the boost is not commutative.
"""

from __future__ import annotations

from artcade.patterns.models import ModelSemanticTags

CATEGORY_WEIGHTS: dict[str, float] = {
    "use_cases": 0.4,
    "mechanics": 0.3,
    "interactions": 0.2,
    "visual_style": 0.1,
}


def calculate_semantic_boost(
    candidate: ModelSemanticTags, query: ModelSemanticTags
) -> float:
    """Return the overlap boost in [0, 1]; exactly 0.0 when nothing overlaps."""
    boost = 0.0
    for category, weight in CATEGORY_WEIGHTS.items():
        candidate_tags = set(getattr(candidate, category))
        if not candidate_tags:
            continue
        shared = candidate_tags & set(getattr(query, category))
        if shared:
            boost += weight * (len(shared) / len(candidate_tags))
    return min(boost, 1.0)


__all__ = ["CATEGORY_WEIGHTS", "calculate_semantic_boost"]
