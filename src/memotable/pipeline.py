"""
Caching pipeline for one call of a cached function.

Per call:
    BUILD_DESCRIPTOR -> RESOLVE_TABLE -> ENSURE_CONNECTION -> PARTITION
    -> {READ_CACHED, INVOKE_DELEGATE} -> WRITE_FRESH -> MERGE -> RETURN

Responsibilities
- partition(): split requested keys into cached and uncached (distinct, first-occurrence order).
- invoke_delegate(): call the delegate with only the uncached keys and check it returned a table.
- merge(): union fresh and cached rows and put them in request order.
- run(): drive the steps above for a CallDescriptor.

Ordering rules (merge)
- Each distinct requested key contributes its rows once, at the position of its first
  occurrence in the request; repeated keys do not repeat rows.
- Several rows for one key keep their arrival order: fresh rows before cached rows,
  then the order the delegate or store produced them.
- Rows whose key was not requested (or is null) are dropped.

Notes
- Nothing is retried. A delegate that returns a non-table aborts the call before any
  write. A failed write either raises or is logged, per CacheSettings.on_write_error.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import polars as pl
import pyarrow as pa

from memotable.core.errors import ValidationError
from memotable.core.naming import resolve_table_name
from memotable.core.spec import CacheSpec, CallDescriptor
from memotable.io.config import CacheSettings
from memotable.io.connection import ConnectionManager, Store
from memotable.io.errors import QueryError
from memotable.io.read import existing_keys, read_cached
from memotable.io.write import write_fresh

__all__ = [
    "Partition",
    "partition",
    "coerce_tabular",
    "invoke_delegate",
    "merge",
    "run",
]

logger = logging.getLogger(__name__)

_POSITION = "__memotable_position__"
_ARRIVAL = "__memotable_arrival__"


@dataclass(frozen=True)
class Partition:
    """
    Requested keys split by whether the table already holds them.

    Attributes:
        cached (list[Any]): Keys to read from the store.
        uncached (list[Any]): Keys to compute with the delegate.
    """

    cached: list[Any] = field(default_factory=list)
    uncached: list[Any] = field(default_factory=list)


def _distinct(keys: Sequence[Any]) -> list[Any]:
    return list(dict.fromkeys(keys))


def partition(
    store: Store,
    table: str,
    keys: Sequence[Any],
    column: str,
    force: bool = False,
) -> Partition:
    """
    Split requested keys into cached and uncached subsets.

    Args:
        store (Store): Live store.
        table (str): Resolved table name (may not exist yet).
        keys (Sequence[Any]): Requested keys, duplicates allowed.
        column (str): Output key column.
        force (bool): Send every requested key to the delegate.

    Returns:
        Partition: Distinct keys in first-occurrence order. With ``force`` all of them
        are uncached; otherwise they are split by presence in the table.
    """
    distinct = _distinct(keys)
    if force:
        return Partition(cached=[], uncached=distinct)
    found = existing_keys(store, table, distinct, column)
    return Partition(
        cached=[k for k in distinct if k in found],
        uncached=[k for k in distinct if k not in found],
    )


def _is_pandas_frame(result: Any) -> bool:
    # pandas is optional; a delegate returning one has already imported it.
    pd = sys.modules.get("pandas")
    return pd is not None and isinstance(result, pd.DataFrame)


def coerce_tabular(result: Any) -> pl.DataFrame:
    """
    Accept polars, arrow and pandas tables as delegate output.

    Raises:
        ValidationError: For anything else.
    """
    if isinstance(result, pl.DataFrame):
        return result
    if isinstance(result, pl.LazyFrame):
        return result.collect()
    if isinstance(result, (pa.Table, pa.RecordBatch)):
        return pl.from_arrow(result)
    if _is_pandas_frame(result):
        return pl.from_pandas(result)
    raise ValidationError(
        "delegate must return tabular output", {"returned": type(result).__name__}
    )


def invoke_delegate(call: CallDescriptor, uncached: Sequence[Any]) -> pl.DataFrame:
    """
    Call the delegate once with ``uncached`` bound to its key argument.

    Args:
        call (CallDescriptor): Descriptor of the original call.
        uncached (Sequence[Any]): Keys to compute.

    Returns:
        pl.DataFrame: Delegate output; an empty frame (no columns) when there is
        nothing to compute, in which case the delegate is not called.

    Raises:
        ValidationError: If the output is not tabular or lacks the key column.
    """
    if not uncached:
        return pl.DataFrame()
    spec = call.spec
    args, kwargs = call.with_keys(list(uncached))
    logger.info("computing %d uncached keys with %s", len(uncached), spec.prefix)
    df = coerce_tabular(spec.func(*args, **kwargs))
    if spec.key.column not in df.columns:
        if df.is_empty():
            return pl.DataFrame()
        raise ValidationError(
            "delegate output is missing the key column",
            {"column": spec.key.column, "columns": df.columns},
        )
    return df


def merge(
    fresh: pl.DataFrame,
    cached: pl.DataFrame,
    keys: Sequence[Any],
    column: str,
) -> pl.DataFrame:
    """
    Union fresh and cached rows and order them like the request.

    Args:
        fresh (pl.DataFrame): Delegate output.
        cached (pl.DataFrame): Rows read from the store.
        keys (Sequence[Any]): Requested keys in caller order.
        column (str): Output key column.

    Returns:
        pl.DataFrame: Rows for requested keys only, in request order. Columns missing
        on one side are null-filled.
    """
    frames = [df for df in (fresh, cached) if df.width > 0]
    if not frames:
        return pl.DataFrame()
    data = frames[0] if len(frames) == 1 else pl.concat(frames, how="diagonal_relaxed")

    positions: dict[Any, int] = {}
    for k in keys:
        positions.setdefault(k, len(positions))
    order = pl.DataFrame(
        {column: list(positions), _POSITION: list(positions.values())},
        schema_overrides={_POSITION: pl.Int64},
    ).with_columns(pl.col(column).cast(data.schema[column], strict=False))

    return (
        data.with_row_index(_ARRIVAL)
        .join(order, on=column, how="inner")
        .sort([_POSITION, _ARRIVAL])
        .drop([_POSITION, _ARRIVAL])
    )


def run(
    spec: CacheSpec,
    connection: ConnectionManager,
    call: CallDescriptor,
    settings: CacheSettings,
) -> pl.DataFrame:
    """
    Serve one call: cached rows from the store, the rest from the delegate.

    Raises:
        memotable.io.errors.StoreConnectionError: No live store could be obtained.
        ValidationError: The delegate returned something other than a table.
        memotable.io.errors.QueryError: A read failed, or a write failed under the
            "raise" write-error policy.
    """
    column = spec.key.column
    table = resolve_table_name(spec.prefix, call.salt_values)
    store = connection.ensure()

    parts = partition(store, table, call.keys, column, force=spec.force)
    logger.debug(
        "%s: %d requested, %d cached, %d uncached",
        table,
        len(call.keys),
        len(parts.cached),
        len(parts.uncached),
    )

    fresh = invoke_delegate(call, parts.uncached)
    cached = read_cached(store, table, parts.cached, column)

    try:
        write_fresh(store, table, fresh, column)
    except QueryError:
        if settings.on_write_error == "raise":
            raise
        logger.warning("could not cache %d rows in %s", fresh.height, table, exc_info=True)

    return merge(fresh, cached, call.keys, column)
