# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artcade pattern library.

Semantic retrieval, effectiveness tracking and reuse verification for
UI and game code patterns.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("artcade-patterns")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = ["__version__"]
