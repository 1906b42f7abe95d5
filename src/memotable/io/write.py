"""
Persist freshly computed rows.

Overview
- write_fresh(): append the delegate's rows to the resolved table, creating it from the
  frame's schema when absent. Existing rows for the written keys are replaced, so a
  forced recomputation leaves only the new values behind.

Notes
- No-op on empty frames (nothing is created for a delegate that returned no rows).
- The write is committed before returning, so the next call on the same connection
  sees the rows.
- The first write fixes the table's column set; later frames may omit columns (stored
  as NULL) but may not add new ones.
"""

from __future__ import annotations

import logging

import polars as pl

from .connection import Store

logger = logging.getLogger(__name__)


def write_fresh(store: Store, table: str, rows: pl.DataFrame, column: str) -> int:
    """
    Append delegate output to a table.

    Args:
        store (Store): Live store.
        table (str): Resolved table name.
        rows (pl.DataFrame): Delegate output for the uncached keys.
        column (str): Output key column.

    Returns:
        int: Rows written (0 for an empty frame).

    Raises:
        memotable.io.errors.QueryError: If the table cannot be created or written.
    """
    if rows.is_empty():
        return 0
    n = store.write(table, rows, column)
    logger.info("cached %d rows in %s", n, table)
    return n
