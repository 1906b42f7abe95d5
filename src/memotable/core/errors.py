"""
Core exception types raised while building cached functions and checking delegate output.

Provides typed exceptions for core-domain failures:
- CacheError as the common base carrying optional structured context.
- ConfigurationError for invalid wrap-time configuration (key spec, salt, prefix).
- ValidationError for delegate output that is not tabular or lacks the key column.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Store-facing failures (connection, query) live in memotable.io.errors and share
      the CacheError base so callers can catch everything from one place.

Examples:
    Catch a configuration failure.

    >>> from memotable.core.errors import ConfigurationError
    >>> try:
    ...     raise ConfigurationError("prefix must be a single token", {"prefix": "a b"})
    ... except ConfigurationError as e:
    ...     msg = str(e)
    >>> "prefix='a b'" in msg
    True
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "CacheError",
    "ConfigurationError",
    "ValidationError",
]


class CacheError(Exception):
    """
    Base class for all memotable errors.

    Attributes:
        message (str): Human-readable error message.
        context (dict[str, Any]): Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(CacheError, ValueError):
    """
    Raised when a cached function cannot be built from the given configuration.

    Examples:
        - Empty key spec or a multi-column key
        - Salt naming a parameter the delegate does not declare
        - Prefix that is not a single identifier-like token
    """


class ValidationError(CacheError, TypeError):
    """Raised when the delegate returns something other than a table, or omits the key column."""
