"""
memotable — record-level caching of table-returning functions in a relational store.

## Responsibilities
- Wrap a function that returns one or more rows per primary key so that keys computed
  before are read from a table and only new keys reach the function.
- Route calls to separate tables by "salt" arguments whose values change the output shape.
- Return cached and fresh rows together, in the order the keys were requested.

## Public API
- cache — build a CachedFunction (or use as a decorator factory).
- CachedFunction — the cached callable.
- CacheSettings — configuration (env > TOML > defaults).
- Errors: CacheError, ConfigurationError, ValidationError, StoreConnectionError, QueryError.

## Layout
- memotable.core — zero-IO contracts: errors, naming, key/salt spec, call descriptor.
- memotable.io — store layer: config, connections, SQL text, read, write.
- memotable.pipeline — partition, invoke, merge.

## Examples
```python
import polars as pl
from memotable import cache

def squares(id):
    return pl.DataFrame({"id": id, "square": [i * i for i in id]})

cached_squares = cache(squares, key="id", connection=":memory:")
cached_squares([3, 1, 2])  # rows for 3, 1, 2 in that order
```
"""

from __future__ import annotations

import logging

from .cache import CachedFunction, cache
from .core.errors import CacheError, ConfigurationError, ValidationError
from .io.config import CacheSettings
from .io.errors import QueryError, StoreConnectionError

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "cache",
    "CachedFunction",
    "CacheSettings",
    "CacheError",
    "ConfigurationError",
    "ValidationError",
    "StoreConnectionError",
    "QueryError",
]
