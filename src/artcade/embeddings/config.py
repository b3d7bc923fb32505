# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Configuration for the embedding provider.

Loads from environment variables with ARTCADE_EMBEDDING_ prefix.
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigEmbeddingProvider(BaseSettings):
    """Configuration for an OpenAI-compatible embeddings endpoint.

    Environment variables use the ARTCADE_EMBEDDING_ prefix.
    Example: ARTCADE_EMBEDDING_BASE_URL=https://api.openai.com/v1
    """

    model_config = SettingsConfigDict(
        env_prefix="ARTCADE_EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the embeddings API (without /embeddings)",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token - set via ARTCADE_EMBEDDING_API_KEY env var",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        le=8192,
        description="Expected vector length; must match the store's vector column",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="HTTP timeout per embedding request",
    )

    @property
    def embeddings_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/embeddings"

    def __repr__(self) -> str:
        """Safe string representation that doesn't expose the API key."""
        return (
            f"ConfigEmbeddingProvider(base_url={self.base_url!r}, "
            f"model={self.model!r}, dimensions={self.dimensions})"
        )
