# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artcade settings for retrieval, tracking and enrichment.

Values load from environment variables with the ARTCADE_ prefix or from a
.env file found in the current directory or one of its parents. Store and
embedding-provider connection settings live beside their adapters
(artcade.storage.config, artcade.embeddings.config) so each adapter can be
configured on its own.

Example .env:

    ARTCADE_SIMILARITY_THRESHOLD=0.6
    ARTCADE_RESULT_LIMIT=3
    ARTCADE_SEMANTIC_BOOST_ENABLED=true
    ARTCADE_SEMANTIC_BOOST_WEIGHT=0.2
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_and_load_env() -> None:
    """Load the nearest .env file walking up from the working directory."""
    from dotenv import load_dotenv

    current = Path.cwd().resolve()
    for _ in range(10):
        env_file = current / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)
            return
        parent = current.parent
        if parent == current:
            break
        current = parent


_find_and_load_env()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings for pattern retrieval and effectiveness tracking."""

    model_config = SettingsConfigDict(
        env_prefix="ARTCADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # RETRIEVAL
    # =========================================================================
    similarity_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum similarity a retrieved pattern must reach",
    )
    result_limit: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Maximum number of patterns returned per query",
    )
    semantic_boost_enabled: bool = Field(
        default=True,
        description="Blend tag-overlap boost into vector similarity",
    )
    semantic_boost_weight: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Multiplier applied to the tag-overlap boost before adding it",
    )

    # =========================================================================
    # EFFECTIVENESS TRACKING
    # =========================================================================
    success_similarity_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Similarity above which a reuse counts as successful",
    )
    direct_reuse_threshold: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Similarity above which a reuse is recorded as direct reuse",
    )
    auto_approval_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Normalized feedback score at which staged patterns auto-approve",
    )
    stale_pattern_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Age in days after which unused patterns may be removed",
    )

    # =========================================================================
    # VERIFICATION / ENRICHMENT
    # =========================================================================
    meaningful_reuse_percentage: float = Field(
        default=30.0,
        ge=0.0,
        le=100.0,
        description="Usage percentage a pattern must reach to count as reused",
    )
    enrichment_max_tokens: int = Field(
        default=4000,
        ge=100,
        le=100000,
        description="Token budget for pattern examples injected into a prompt",
    )

    def validate_required_services(self) -> list[str]:
        """Validate cross-field consistency.

        Returns:
            List of validation error messages. Empty list means valid.
        """
        errors: list[str] = []
        if self.direct_reuse_threshold < self.success_similarity_threshold:
            errors.append(
                "ARTCADE_DIRECT_REUSE_THRESHOLD must be >= "
                "ARTCADE_SUCCESS_SIMILARITY_THRESHOLD."
            )
        if self.semantic_boost_enabled and self.semantic_boost_weight == 0.0:
            errors.append(
                "ARTCADE_SEMANTIC_BOOST_WEIGHT is 0 while boosting is enabled. "
                "Set ARTCADE_SEMANTIC_BOOST_ENABLED=false instead."
            )
        return errors

    def log_validation_warnings(self) -> None:
        """Log each consistency problem at WARNING level."""
        for error in self.validate_required_services():
            logger.warning(f"Configuration warning: {error}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get singleton settings instance.

    Note:
        For test isolation, use `clear_settings_cache()` to reset the
        singleton before each test that needs fresh settings.
    """
    instance = Settings()
    instance.log_validation_warnings()
    return instance


def clear_settings_cache() -> None:
    """Clear the settings singleton cache for test isolation."""
    get_settings.cache_clear()


__all__ = ["Settings", "clear_settings_cache", "get_settings"]
