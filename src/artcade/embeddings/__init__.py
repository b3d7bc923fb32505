# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Embedding provider adapter."""

from __future__ import annotations

from .client import EmbeddingClient, compose_pattern_text, compose_query_descriptor
from .config import ConfigEmbeddingProvider
from .protocols import ProtocolEmbeddingProvider

__all__ = [
    "ConfigEmbeddingProvider",
    "EmbeddingClient",
    "ProtocolEmbeddingProvider",
    "compose_pattern_text",
    "compose_query_descriptor",
]
