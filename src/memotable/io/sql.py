"""
SQL text helpers for the store layer.

Purpose
- Render key values as SQL literals (numbers inlined, text quoted with embedded quotes
  doubled) so filtered reads cannot be malformed or injected.
- Quote identifiers, and build the generic statements the store needs: filtered
  select, create-if-absent, delete-by-keys.
- Map polars dtypes to declared SQL column types and back.

Notes
- sql_literal dispatches on the key's type (functools.singledispatch); register more
  types with ``@sql_literal.register``.
- Declared types are the ones SQLite accepts and reports back through
  ``PRAGMA table_info``; dates are stored as ISO text.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from functools import singledispatch
from numbers import Integral, Real
from typing import Any

import polars as pl

from .errors import QueryError

__all__ = [
    "sql_literal",
    "to_sql_value",
    "quote_identifier",
    "select_in_sql",
    "create_table_sql",
    "delete_in_sql",
    "insert_sql",
    "sql_type_for",
    "polars_dtype_for",
    "series_from_column",
]

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S%.f"


@singledispatch
def sql_literal(value: Any) -> str:
    """
    Render one key value as an SQL literal.

    Args:
        value: Key value.

    Returns:
        str: SQL literal text.

    Raises:
        QueryError: If the type has no literal form.

    Examples:
        >>> sql_literal(3), sql_literal(2.5), sql_literal("O'Brien")
        ('3', '2.5', "'O''Brien'")
    """
    raise QueryError(f"cannot render key of type {type(value).__name__} as an SQL literal", {"value": value})


@sql_literal.register(type(None))
def _(value: None) -> str:
    return "NULL"


@sql_literal.register
def _(value: bool) -> str:
    return "1" if value else "0"


@sql_literal.register
def _(value: Integral) -> str:
    return str(int(value))


@sql_literal.register
def _(value: Real) -> str:
    number = float(value)
    if not math.isfinite(number):
        raise QueryError("non-finite numbers cannot be used as keys", {"value": value})
    return repr(number)


@sql_literal.register
def _(value: Decimal) -> str:
    if not value.is_finite():
        raise QueryError("non-finite numbers cannot be used as keys", {"value": value})
    return str(value)


@sql_literal.register
def _(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


@sql_literal.register
def _(value: date) -> str:
    return sql_literal(to_sql_value(value))


def to_sql_value(value: Any) -> Any:
    """Convert a Python value to what the store persists (dates become ISO text)."""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def quote_identifier(name: str) -> str:
    """
    Quote a table or column name, doubling embedded double quotes.

    Examples:
        >>> quote_identifier('id')
        '"id"'
    """
    return '"' + str(name).replace('"', '""') + '"'


def _literal_list(values: Iterable[Any]) -> str:
    return ", ".join(sql_literal(v) for v in values)


def select_in_sql(
    table: str,
    column: str,
    values: Sequence[Any],
    columns: Sequence[str] | None = None,
) -> str:
    """
    Build ``SELECT * FROM table WHERE column IN (...)``.

    Args:
        table: Table name.
        column: Filter column.
        values: Non-empty sequence of key values.
        columns: Optional projection; all columns when None.
    """
    projection = "*" if not columns else ", ".join(quote_identifier(c) for c in columns)
    return (
        f"SELECT {projection} FROM {quote_identifier(table)} "
        f"WHERE {quote_identifier(column)} IN ({_literal_list(values)})"
    )


def delete_in_sql(table: str, column: str, values: Sequence[Any]) -> str:
    """Build ``DELETE FROM table WHERE column IN (...)``."""
    return (
        f"DELETE FROM {quote_identifier(table)} "
        f"WHERE {quote_identifier(column)} IN ({_literal_list(values)})"
    )


def insert_sql(table: str, columns: Sequence[str]) -> str:
    """Build a parameterized ``INSERT`` for the given columns."""
    names = ", ".join(quote_identifier(c) for c in columns)
    marks = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(table)} ({names}) VALUES ({marks})"


def sql_type_for(dtype: pl.DataType) -> str:
    """
    Map a polars dtype to a declared SQL column type.

    Raises:
        QueryError: For nested or object dtypes with no column mapping.
    """
    if dtype == pl.Boolean:
        return "BOOLEAN"
    if dtype.is_integer():
        return "INTEGER"
    if dtype.is_float() or dtype.is_decimal():
        return "REAL"
    if dtype in (pl.String, pl.Categorical) or isinstance(dtype, pl.Enum):
        return "TEXT"
    if dtype == pl.Datetime:
        return "TIMESTAMP"
    if dtype == pl.Date:
        return "DATE"
    if dtype == pl.Binary:
        return "BLOB"
    if dtype == pl.Null:
        # All-null column on first write; the type is unknown, so keep it as text.
        return "TEXT"
    raise QueryError(f"column dtype {dtype} cannot be stored in a table")


# Declared SQL type -> (dtype the driver returns, dtype to expose)
_READ_DTYPES: dict[str, tuple[pl.DataType, pl.DataType]] = {
    "INTEGER": (pl.Int64(), pl.Int64()),
    "REAL": (pl.Float64(), pl.Float64()),
    "TEXT": (pl.String(), pl.String()),
    "BOOLEAN": (pl.Int64(), pl.Boolean()),
    "DATE": (pl.String(), pl.Date()),
    "TIMESTAMP": (pl.String(), pl.Datetime("us")),
    "BLOB": (pl.Binary(), pl.Binary()),
}


def polars_dtype_for(declared: str) -> pl.DataType | None:
    """Dtype a column with the given declared SQL type is exposed as (None → infer)."""
    pair = _READ_DTYPES.get((declared or "").strip().upper())
    return pair[1] if pair else None


def series_from_column(name: str, values: Sequence[Any], declared: str) -> pl.Series:
    """
    Build a typed Series from raw driver values of one column.

    Notes:
        Values that do not fit the declared type become null (SQLite does not
        enforce column types).
    """
    pair = _READ_DTYPES.get((declared or "").strip().upper())
    if pair is None:
        return pl.Series(name, list(values))
    raw, exposed = pair
    s = pl.Series(name, list(values), dtype=raw, strict=False)
    if exposed == pl.Boolean:
        return s.cast(pl.Boolean)
    if exposed == pl.Date:
        return s.str.to_date("%Y-%m-%d", strict=False)
    if exposed == pl.Datetime:
        return s.str.to_datetime(_TIMESTAMP_FORMAT, time_unit="us", strict=False)
    return s


def create_table_sql(table: str, schema: pl.Schema | dict[str, pl.DataType]) -> str:
    """Build ``CREATE TABLE IF NOT EXISTS`` with columns inferred from a polars schema."""
    cols = ", ".join(f"{quote_identifier(name)} {sql_type_for(dtype)}" for name, dtype in schema.items())
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} ({cols})"
