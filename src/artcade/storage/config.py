# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Connection and schema settings for the pattern store.

The store is reached either through one ``ARTCADE_STORAGE_DATABASE_URL`` or
through the individual ``ARTCADE_STORAGE_POSTGRES_*`` parts; the URL wins
when both are set. The embedding width is shared with the embedding
provider: ``ARTCADE_EMBEDDING_DIMENSIONS`` configures both unless
``ARTCADE_STORAGE_EMBEDDING_DIMENSIONS`` overrides it here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Self
from urllib.parse import urlsplit, urlunsplit

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Width of the vector(N) columns created by sql/migrations/001 and 003.
SCHEMA_EMBEDDING_DIMENSIONS = 1536


def mask_password(dsn: str) -> str:
    """Replace the password of a postgres URL with ``***``."""
    parts = urlsplit(dsn)
    if not parts.password:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


class ConfigPatternStorage(BaseSettings):
    """Settings for PatternStore.

    Example:
        ARTCADE_STORAGE_DATABASE_URL=postgresql://artcade:secret@db:5432/artcade
    """

    model_config = SettingsConfigDict(
        env_prefix="ARTCADE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: SecretStr | None = Field(
        default=None,
        description="Full postgres URL; overrides the POSTGRES_* parts",
    )
    postgres_host: str = "localhost"
    postgres_port: int = Field(default=5432, ge=1, le=65535)
    postgres_database: str = "artcade"
    postgres_user: str = "postgres"
    postgres_password: SecretStr | None = None

    pool_min_size: int = Field(default=1, ge=1, le=100)
    pool_max_size: int = Field(default=5, ge=1, le=100)
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Time allowed to open one pool connection",
    )
    command_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Per-statement limit; vector searches run under it too",
    )

    embedding_dimensions: int = Field(
        default=SCHEMA_EMBEDDING_DIMENSIONS,
        ge=1,
        le=8192,
        validation_alias=AliasChoices(
            "ARTCADE_STORAGE_EMBEDDING_DIMENSIONS",
            "ARTCADE_EMBEDDING_DIMENSIONS",
        ),
        description="Length of the vector(N) columns",
    )

    @model_validator(mode="after")
    def _check_connection(self) -> Self:
        if self.database_url is None and self.postgres_password is None:
            raise ValueError(
                "set ARTCADE_STORAGE_DATABASE_URL or ARTCADE_STORAGE_POSTGRES_PASSWORD"
            )
        if self.pool_min_size > self.pool_max_size:
            raise ValueError(
                f"pool_min_size ({self.pool_min_size}) exceeds "
                f"pool_max_size ({self.pool_max_size})"
            )
        return self

    @property
    def dsn(self) -> str:
        if self.database_url is not None:
            return self.database_url.get_secret_value()
        password = (
            self.postgres_password.get_secret_value() if self.postgres_password else ""
        )
        return (
            f"postgresql://{self.postgres_user}:{password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"
        )

    @property
    def dsn_safe(self) -> str:
        return mask_password(self.dsn)

    def check_dimensions(self, embedding: Sequence[float]) -> None:
        """Reject vectors that do not fit the vector(N) columns.

        Raises:
            ValueError: If the length differs from ``embedding_dimensions``.
        """
        if len(embedding) != self.embedding_dimensions:
            raise ValueError(
                f"embedding has {len(embedding)} dimensions, "
                f"expected {self.embedding_dimensions}"
            )

    def __repr__(self) -> str:
        return (
            f"ConfigPatternStorage(dsn={self.dsn_safe!r}, "
            f"embedding_dimensions={self.embedding_dimensions})"
        )
