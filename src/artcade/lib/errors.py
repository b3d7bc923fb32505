# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Error codes and exception classes for the pattern library.

Every failure the library raises derives from PatternLibraryError, which
carries a machine-readable code plus a details mapping for logging.
Graceful-degradation paths (best-effort retrieval, prompt bookkeeping,
reuse verification) catch these and log instead of propagating.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class EnumPatternErrorCode(str, Enum):
    """Error codes for pattern library operations."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    STORE_ERROR = "STORE_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    EMBEDDING_ERROR = "EMBEDDING_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class PatternLibraryError(Exception):
    """Base exception for pattern library operations.

    Attributes:
        code: Error code from EnumPatternErrorCode
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: EnumPatternErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code}, message={self.message!r}, "
            f"details={self.details})"
        )


class PatternValidationError(PatternLibraryError):
    """Raised when a pattern payload does not conform to the pattern shape.

    Attributes:
        errors: Every problem found, one human-readable line each
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        summary = "; ".join(self.errors) if self.errors else "invalid pattern"
        super().__init__(
            EnumPatternErrorCode.VALIDATION_FAILED,
            f"Pattern validation failed: {summary}",
            {"errors": self.errors},
        )


class PatternNotFoundError(PatternLibraryError):
    """Raised when a pattern (or staged pattern) id does not exist."""

    def __init__(self, pattern_id: str) -> None:
        self.pattern_id = pattern_id
        super().__init__(
            EnumPatternErrorCode.NOT_FOUND,
            f"Pattern not found: {pattern_id}",
            {"pattern_id": pattern_id},
        )


class PatternStoreError(PatternLibraryError):
    """Raised when a store operation fails.

    Attributes:
        operation: Store operation that failed (e.g. "match_patterns")
        pattern_id: Pattern involved, if any
    """

    def __init__(
        self,
        operation: str,
        message: str,
        pattern_id: str | None = None,
        code: EnumPatternErrorCode = EnumPatternErrorCode.STORE_ERROR,
    ) -> None:
        self.operation = operation
        self.pattern_id = pattern_id
        super().__init__(
            code,
            f"{operation} failed: {message}",
            {"operation": operation, "pattern_id": pattern_id},
        )


class EmbeddingProviderError(PatternLibraryError):
    """Raised when the embedding provider cannot produce a vector."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(
            EnumPatternErrorCode.EMBEDDING_ERROR,
            message,
            {"status_code": status_code},
        )


__all__ = [
    "EmbeddingProviderError",
    "EnumPatternErrorCode",
    "PatternLibraryError",
    "PatternNotFoundError",
    "PatternStoreError",
    "PatternValidationError",
]
