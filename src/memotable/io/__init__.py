"""
memotable.io — store layer for cached functions.

## Responsibilities
- CacheSettings: configuration with env > TOML > defaults precedence.
- Connections: Store protocol, SqliteStore, connect(), ConnectionManager (liveness + rebuild).
- Reads: filtered ``SELECT * ... WHERE key IN (...)`` with sanitized literals.
- Writes: create-if-absent append, replacing rows for the written keys.

## Import DAG discipline
- Depends on stdlib, polars, pydantic, pyyaml and memotable.core.
- MUST NOT import memotable.pipeline or memotable.cache.
"""

from __future__ import annotations

from .config import CacheSettings
from .connection import ConnectionManager, SqliteStore, Store, connect

__all__ = [
    "CacheSettings",
    "ConnectionManager",
    "SqliteStore",
    "Store",
    "connect",
]
