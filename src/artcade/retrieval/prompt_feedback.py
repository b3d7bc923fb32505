# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Prompt bookkeeping for later analysis.

Records each request with its embedding and the patterns it matched, and
later records which pattern was selected and how well it worked. Both
writes are write-and-forget: failures are logged and never reach the
request path.
"""

from __future__ import annotations

import logging

from artcade.patterns.models import ModelPatternMatch
from artcade.patterns.tag_extractor import extract_query_tags
from artcade.storage.models import ModelPromptRecord
from artcade.storage.protocols import ProtocolPatternStore

logger = logging.getLogger(__name__)


class PromptFeedbackRecorder:
    """Write-and-forget recorder for prompt_embeddings rows."""

    def __init__(self, store: ProtocolPatternStore) -> None:
        self._store = store

    async def record_prompt(
        self,
        prompt: str,
        embedding: list[float],
        user_id: str,
        matches: list[ModelPatternMatch] | None = None,
        session_id: str | None = None,
        project_context: str | None = None,
        response_time_ms: int | None = None,
    ) -> str | None:
        """Store a prompt and the patterns it matched.

        Returns:
            The new prompt record id, or None if recording failed.
        """
        try:
            record = ModelPromptRecord(
                user_id=user_id,
                prompt=prompt,
                embedding=embedding,
                matched_pattern_ids=[m.pattern.id for m in matches or []],
                session_id=session_id,
                project_context=project_context,
                semantic_tags=extract_query_tags(prompt),
                response_time_ms=response_time_ms,
            )
            prompt_id = await self._store.store_prompt(record)
        except Exception as e:
            logger.warning(
                f"Failed to record prompt: {e}",
                extra={"user_id": user_id, "session_id": session_id},
            )
            return None
        logger.debug("Recorded prompt", extra={"prompt_id": prompt_id})
        return prompt_id

    async def record_outcome(
        self,
        prompt_id: str,
        selected_pattern_id: str | None,
        success_score: float,
        user_feedback: str | None = None,
    ) -> bool:
        """Attach the selected pattern and its success score to a prompt.

        Returns:
            True if the outcome was stored, False otherwise.
        """
        if not 0.0 <= success_score <= 1.0:
            logger.warning(
                f"Ignoring out-of-range success score {success_score}",
                extra={"prompt_id": prompt_id},
            )
            return False
        try:
            await self._store.update_prompt_outcome(
                prompt_id=prompt_id,
                selected_pattern_id=selected_pattern_id,
                success_score=success_score,
                user_feedback=user_feedback,
            )
        except Exception as e:
            logger.warning(
                f"Failed to record prompt outcome: {e}",
                extra={"prompt_id": prompt_id},
            )
            return False
        return True


__all__ = ["PromptFeedbackRecorder"]
