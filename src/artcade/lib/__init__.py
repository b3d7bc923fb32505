# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Shared library code for the pattern library."""
