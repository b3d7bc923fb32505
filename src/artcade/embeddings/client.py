# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Async client for an OpenAI-compatible embeddings endpoint.

The library never computes embeddings itself; this adapter turns text into
a vector through the configured provider and checks the vector length
against the configured dimension.
"""

from __future__ import annotations

import json
import logging

import httpx

from artcade.embeddings.config import ConfigEmbeddingProvider
from artcade.lib.errors import EmbeddingProviderError
from artcade.patterns.models import ModelPattern, ModelSemanticTags

logger = logging.getLogger(__name__)


def compose_pattern_text(pattern: ModelPattern) -> str:
    """Build the text that is embedded when a pattern is stored."""
    content = pattern.content
    lines = [
        f"Pattern: {pattern.pattern_name}",
        f"Type: {pattern.kind.value}",
        f"Description: {content.context}",
        f"HTML: {content.html}",
    ]
    if content.css:
        lines.append(f"CSS: {content.css}")
    if content.js:
        lines.append(f"JS: {content.js}")
    metadata = content.metadata.model_dump(mode="json", exclude_none=True)
    lines.append(f"Metadata: {json.dumps(metadata, sort_keys=True)}")
    return "\n".join(lines)


def compose_query_descriptor(pattern: ModelPattern, tags: ModelSemanticTags) -> str:
    """Build the search text used to find patterns similar to a reference pattern."""
    tag_text = " ".join(
        tags.use_cases + tags.mechanics + tags.interactions + tags.visual_style
    )
    parts = [pattern.pattern_name, pattern.kind.value, pattern.description, tag_text]
    return " ".join(part for part in parts if part)


class EmbeddingClient:
    """Produce embedding vectors through an HTTP provider.

    Example:
        >>> client = EmbeddingClient(ConfigEmbeddingProvider())
        >>> vector = await client.embed("racing game with drifting")
    """

    def __init__(
        self,
        config: ConfigEmbeddingProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Provider configuration. Loaded from the environment if None.
            transport: Optional httpx transport, used to stub the provider in tests.
        """
        self._config = config or ConfigEmbeddingProvider()
        self._transport = transport

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self._config.api_key.get_secret_value()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for a piece of text.

        Raises:
            EmbeddingProviderError: On empty input, transport failure, a
                non-2xx response, a malformed body or a dimension mismatch.
        """
        if not text.strip():
            raise EmbeddingProviderError("Cannot embed empty text")

        payload = {
            "model": self._config.model,
            "input": text,
            "encoding_format": "float",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._config.embeddings_url,
                    json=payload,
                    headers=self._headers(),
                )
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Embedding request timed out: {e}")
            raise EmbeddingProviderError("Embedding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Embedding provider error {e.response.status_code}: {e.response.text}"
            )
            raise EmbeddingProviderError(
                f"Embedding provider returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingProviderError("Embedding provider returned invalid JSON") from e

        try:
            vector = [float(value) for value in body["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingProviderError(
                "Embedding response missing data[0].embedding"
            ) from e

        if len(vector) != self._config.dimensions:
            raise EmbeddingProviderError(
                f"Embedding has {len(vector)} dimensions, "
                f"expected {self._config.dimensions}"
            )
        logger.debug(f"Embedded {len(text)} chars with {self._config.model}")
        return vector

    async def embed_pattern(self, pattern: ModelPattern) -> list[float]:
        """Embed the canonical text for a pattern."""
        return await self.embed(compose_pattern_text(pattern))

    async def health_check(self) -> bool:
        """Return True when the provider answers a tiny embedding request."""
        try:
            await self.embed("health check")
        except EmbeddingProviderError as e:
            logger.warning(f"Embedding provider health check failed: {e}")
            return False
        return True


__all__ = ["EmbeddingClient", "compose_pattern_text", "compose_query_descriptor"]
