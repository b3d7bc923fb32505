# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pattern retrieval by semantic similarity.

Pipeline for a request:

    1. Embed the request text through the embedding provider
    2. Ask the store for nearest neighbors (twice the limit when filtering
       by kind, so local filtering still leaves enough candidates)
    3. Drop candidates of the wrong kind
    4. Optionally add the tag-overlap boost, comparing query tags and the
       candidate's decoded semantic id after identical truncation:
       ``similarity = min(1.0, raw + boost_weight * boost)``
    5. Keep candidates at or above the threshold, sort by similarity
       (stable, descending) and truncate to the limit

In best-effort mode any failure is logged and an empty list is returned;
otherwise store and provider errors propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from artcade.config.settings import Settings, get_settings
from artcade.embeddings.client import compose_query_descriptor
from artcade.embeddings.protocols import ProtocolEmbeddingProvider
from artcade.patterns.models import (
    EnumPatternKind,
    ModelPattern,
    ModelPatternMatch,
    ModelSemanticTags,
)
from artcade.patterns.semantic_boost import calculate_semantic_boost
from artcade.patterns.semantic_id import encode_semantic_id, try_decode_semantic_id
from artcade.patterns.tag_extractor import extract_query_tags, extract_semantic_tags
from artcade.storage.protocols import ProtocolPatternStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievalOptions:
    """Tunables for a retrieval service instance."""

    boost_enabled: bool = True
    boost_weight: float = 0.2

    def __post_init__(self) -> None:
        if not 0.0 <= self.boost_weight <= 1.0:
            raise ValueError(f"boost_weight must be in [0, 1], got {self.boost_weight}")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetrievalOptions:
        return cls(
            boost_enabled=settings.semantic_boost_enabled,
            boost_weight=settings.semantic_boost_weight,
        )


def identifier_tags(tags: ModelSemanticTags) -> ModelSemanticTags:
    """Truncate tags the way the semantic identifier does.

    Candidate tags are recovered from stored identifiers, so query tags must
    pass through the same encoding before the two sides can overlap.
    """
    return try_decode_semantic_id(encode_semantic_id(tags))


def apply_semantic_boost(
    match: ModelPatternMatch, query_tags: ModelSemanticTags, boost_weight: float
) -> ModelPatternMatch:
    """Return the match with its similarity raised by the tag-overlap boost.

    ``query_tags`` must already be in identifier form (see identifier_tags).
    """
    raw = match.raw_similarity if match.raw_similarity is not None else match.similarity
    candidate_tags = try_decode_semantic_id(match.pattern.semantic_id)
    boost = calculate_semantic_boost(candidate_tags, query_tags)
    return match.model_copy(
        update={
            "similarity": min(1.0, raw + boost_weight * boost),
            "raw_similarity": raw,
            "semantic_boost": boost,
        }
    )


def rank_matches(
    matches: list[ModelPatternMatch], threshold: float, limit: int
) -> list[ModelPatternMatch]:
    """Filter by threshold, order by similarity descending and truncate."""
    kept = [match for match in matches if match.similarity >= threshold]
    kept.sort(key=lambda match: match.similarity, reverse=True)
    return kept[:limit]


class PatternRetrievalService:
    """Find stored patterns similar to a request or to another pattern.

    Example:
        >>> service = PatternRetrievalService(store, embedder)
        >>> matches = await service.find_similar("racing game with drifting")
    """

    def __init__(
        self,
        store: ProtocolPatternStore,
        embedder: ProtocolEmbeddingProvider,
        options: RetrievalOptions | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._settings = settings or get_settings()
        self._options = options or RetrievalOptions.from_settings(self._settings)

    async def find_similar(
        self,
        prompt: str,
        threshold: float | None = None,
        kind: EnumPatternKind | None = None,
        limit: int | None = None,
        best_effort: bool = False,
    ) -> list[ModelPatternMatch]:
        """Find patterns similar to a free-text request.

        Args:
            prompt: The request text.
            threshold: Minimum final similarity. Defaults to settings.
            kind: Only return patterns of this kind.
            limit: Maximum number of results. Defaults to settings.
            best_effort: Log failures and return [] instead of raising.

        Raises:
            ValueError: If threshold or limit are out of range.
            PatternLibraryError: On store or provider failure, unless best_effort.
        """
        return await self._search(
            search_text=prompt,
            query_tags=extract_query_tags(prompt),
            threshold=threshold,
            kind=kind,
            limit=limit,
            best_effort=best_effort,
        )

    async def find_similar_to_pattern(
        self,
        pattern: ModelPattern,
        threshold: float | None = None,
        kind: EnumPatternKind | None = None,
        limit: int | None = None,
        best_effort: bool = False,
    ) -> list[ModelPatternMatch]:
        """Find patterns similar to a reference pattern.

        The reference pattern itself is excluded from the results.
        """
        tags = extract_semantic_tags(pattern)
        resolved_limit = self._settings.result_limit if limit is None else limit
        if resolved_limit < 1:
            raise ValueError(f"limit must be >= 1, got {resolved_limit}")
        matches = await self._search(
            search_text=compose_query_descriptor(pattern, tags),
            query_tags=tags,
            threshold=threshold,
            kind=kind,
            limit=resolved_limit + 1,
            best_effort=best_effort,
        )
        return [m for m in matches if m.pattern.id != pattern.id][:resolved_limit]

    async def _search(
        self,
        search_text: str,
        query_tags: ModelSemanticTags,
        threshold: float | None,
        kind: EnumPatternKind | None,
        limit: int | None,
        best_effort: bool,
    ) -> list[ModelPatternMatch]:
        threshold = self._settings.similarity_threshold if threshold is None else threshold
        limit = self._settings.result_limit if limit is None else limit
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        try:
            embedding = await self._embedder.embed(search_text)
            candidates = await self._store.match_patterns(
                query_embedding=embedding,
                query_text=search_text,
                match_threshold=threshold,
                match_count=limit * 2 if kind is not None else limit,
            )
        except Exception as e:
            if not best_effort:
                raise
            logger.warning(f"Pattern retrieval failed, continuing without patterns: {e}")
            return []

        if kind is not None:
            candidates = [m for m in candidates if m.pattern.kind is kind]

        if self._options.boost_enabled:
            comparable = identifier_tags(query_tags)
            candidates = [
                apply_semantic_boost(m, comparable, self._options.boost_weight)
                for m in candidates
            ]

        ranked = rank_matches(candidates, threshold, limit)
        logger.debug(
            f"Retrieved {len(ranked)} patterns",
            extra={
                "threshold": threshold,
                "limit": limit,
                "kind": kind.value if kind else None,
                "candidates": len(candidates),
            },
        )
        return ranked


__all__ = [
    "PatternRetrievalService",
    "RetrievalOptions",
    "apply_semantic_boost",
    "identifier_tags",
    "rank_matches",
]
