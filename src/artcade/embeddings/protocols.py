# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol for embedding providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProtocolEmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-length float vector."""

    async def embed(self, text: str) -> list[float]: ...


__all__ = ["ProtocolEmbeddingProvider"]
