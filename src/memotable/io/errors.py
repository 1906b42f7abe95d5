"""
Custom exceptions for the memotable.io module.

Purpose
- Provide store-layer error types that map cleanly to responsibilities in memotable.io.
- Keep memotable.core as the source of truth for configuration/validation errors
  (see memotable.core.errors).

Source of truth and boundaries
- memotable.core.errors.ConfigurationError and ValidationError are raised while
  building a cached function and while checking delegate output.
- memotable.io raises Store* errors for connection and query concerns:
  - StoreConnectionError: a connection could not be established or re-established.
  - QueryError: a read or write against an established connection failed.

Notes
- These exceptions do not perform any IO and are stdlib-only.
- Driver exceptions (e.g. sqlite3.Error) are chained via ``raise ... from exc``.
"""

from __future__ import annotations

from memotable.core.errors import CacheError

__all__ = [
    "StoreError",
    "StoreConnectionError",
    "QueryError",
]


class StoreError(CacheError):
    """
    Base class for store-related errors in memotable.io.

    Notes:
        Use this as a catch-all for store-layer failures, distinct from core errors.
    """


class StoreConnectionError(StoreError, ConnectionError):
    """
    Raised when the store connection cannot be established or re-established.

    Examples:
        - Unreadable YAML database config or missing env section
        - A caller-supplied connection object that has been closed
        - sqlite3 failing to open the database file

    Notes:
        Fatal for the current call: no read or write is attempted.
    """


class QueryError(StoreError):
    """
    Raised when a read or write fails on an established connection.

    Examples:
        - A key value that cannot be rendered as an SQL literal
        - Writing columns the table (fixed by its first write) does not have
        - A column dtype with no SQL mapping (lists, structs, objects)
    """
