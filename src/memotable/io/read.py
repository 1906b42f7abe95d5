"""
Read cached rows for a subset of keys.

Overview
- read_cached(): filtered read ``SELECT * FROM table WHERE key IN (...)`` for the keys
  the partitioner found in the table.
- existing_keys(): distinct key values already present in a table.

Notes
- Empty key lists never reach the store.
- Row order from the store is unspecified; the merger reorders.
- A missing table reads as empty (the store contract tolerates it).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import polars as pl

from .connection import Store

logger = logging.getLogger(__name__)


def read_cached(store: Store, table: str, keys: Sequence[Any], column: str) -> pl.DataFrame:
    """
    Fetch every stored row whose key column is one of ``keys``.

    Args:
        store (Store): Live store.
        table (str): Resolved table name.
        keys (Sequence[Any]): Keys known to be cached.
        column (str): Output key column.

    Returns:
        pl.DataFrame: Stored rows (possibly empty), in no particular order.

    Raises:
        memotable.io.errors.QueryError: If the read fails.
    """
    if not keys:
        return pl.DataFrame()
    df = store.read(table, column, list(keys))
    logger.debug("read %d cached rows for %d keys from %s", df.height, len(keys), table)
    return df


def existing_keys(store: Store, table: str, keys: Sequence[Any], column: str) -> set[Any]:
    """
    Return the subset of ``keys`` already present in ``table``.

    Requested keys are compared after casting to the stored column's dtype, so ``"1"``
    matches a stored integer ``1`` the same way the store's filter does. The returned
    set holds the keys as requested.

    Raises:
        memotable.io.errors.QueryError: If the read fails.
    """
    if not keys:
        return set()
    df = store.read(table, column, list(keys), columns=[column])
    if column not in df.columns:
        return set()
    stored = df.get_column(column).drop_nulls()
    if stored.is_empty():
        return set()
    present = set(stored.unique().to_list())
    requested = list(keys)
    cast = pl.Series(column, requested, strict=False).cast(stored.dtype, strict=False)
    return {k for k, c in zip(requested, cast.to_list()) if c is not None and c in present}
