# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Models for prompt bookkeeping rows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from artcade.patterns.models import ModelSemanticTags


class ModelPromptRecord(BaseModel):
    """A user request as stored in the prompt_embeddings table."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    embedding: list[float] = Field(repr=False)
    matched_pattern_ids: list[str] = Field(default_factory=list)
    selected_pattern_id: str | None = None
    success_score: float = Field(default=0.0, ge=0.0, le=1.0)
    user_feedback: str | None = None
    session_id: str | None = None
    project_context: str | None = None
    semantic_tags: ModelSemanticTags = Field(default_factory=ModelSemanticTags)
    response_time_ms: int | None = Field(default=None, ge=0)


__all__ = ["ModelPromptRecord"]
