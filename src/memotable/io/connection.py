"""
Store connections for cached functions.

Overview
- Store: the protocol a cached function talks to (liveness check, filtered read,
  create-if-absent append, close).
- SqliteStore: the shipped implementation on the stdlib sqlite3 driver.
- connect(): build a Store from a connection descriptor.
- ConnectionManager: one per cached function; holds the live store and rebuilds it from
  the descriptor when the liveness check fails.

Connection descriptors
- A Store instance (used as-is; it cannot be rebuilt once closed).
- A zero-argument callable returning a Store, including a Store class (called
  again on every rebuild).
- A mapping parsed as SqliteDescriptor ({"database": ..., "timeout": ...}).
- A path to a .yml/.yaml database config; the ``env`` section (default "default") is
  parsed as SqliteDescriptor.
- Any other str/PathLike: an SQLite database path (":memory:" allowed).

Notes
- Single connection per cached function, no pooling.
- Connections are opened with check_same_thread=False; callers serialize access
  (CachedFunction holds a lock around each call).
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable

import polars as pl
import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field

from memotable.core.constants import DEFAULT_ENV

from .config import CacheSettings
from .errors import QueryError, StoreConnectionError
from .sql import (
    create_table_sql,
    delete_in_sql,
    insert_sql,
    quote_identifier,
    select_in_sql,
    series_from_column,
    to_sql_value,
)

__all__ = [
    "Store",
    "SqliteDescriptor",
    "SqliteStore",
    "connect",
    "ConnectionManager",
]

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yml", ".yaml")


def _is_store_instance(obj: Any) -> bool:
    # Protocol isinstance checks also accept a Store class; classes are factories.
    return isinstance(obj, Store) and not isinstance(obj, type)


@runtime_checkable
class Store(Protocol):
    """Connection contract used by the caching pipeline."""

    def is_connected(self) -> bool: ...

    def read(
        self,
        table: str,
        column: str,
        values: Sequence[Any],
        columns: Sequence[str] | None = None,
    ) -> pl.DataFrame: ...

    def write(self, table: str, rows: pl.DataFrame, key_column: str) -> int: ...

    def close(self) -> None: ...


class SqliteDescriptor(BaseModel):
    """
    Parameters for opening an SQLite store.

    Attributes:
        adapter (Literal["sqlite", "sqlite3"]): Backend name (only SQLite ships).
        database (str): Database path or ":memory:".
        timeout (float): Seconds to wait on a locked database.
    """

    model_config = ConfigDict(extra="ignore")

    adapter: Literal["sqlite", "sqlite3"] = "sqlite"
    database: str
    timeout: float = Field(default=30.0, ge=0.0)


class SqliteStore:
    """
    SQLite-backed store holding one table per (prefix, salt) combination.

    Thread-safe only when callers serialize access; each cached function does.
    """

    def __init__(self, database: str, timeout: float = 30.0) -> None:
        """
        Open (and create, for file paths) an SQLite database.

        Args:
            database: Path to the database file, or ":memory:".
            timeout: Seconds sqlite3 waits on a locked database.

        Raises:
            StoreConnectionError: If the database cannot be opened.
        """
        self.database = database
        self._conn: sqlite3.Connection | None = None
        try:
            if database != ":memory:" and not database.startswith("file:"):
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(database, timeout=timeout, check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise StoreConnectionError(
                f"cannot open sqlite database: {exc}", {"database": database}
            ) from exc

    def __repr__(self) -> str:
        return f"SqliteStore({self.database!r})"

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreConnectionError("sqlite store is closed", {"database": self.database})
        return self._conn

    def is_connected(self) -> bool:
        """Run ``SELECT 1`` against the held connection."""
        if self._conn is None:
            return False
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def table_columns(self, table: str) -> dict[str, str]:
        """Return ``{column: declared type}`` for a table; empty if it does not exist."""
        conn = self._get_conn()
        try:
            info = conn.execute(f"PRAGMA table_info({quote_identifier(table)})").fetchall()
        except sqlite3.Error as exc:
            raise QueryError(f"cannot inspect table: {exc}", {"table": table}) from exc
        return {row[1]: row[2] for row in info}

    def read(
        self,
        table: str,
        column: str,
        values: Sequence[Any],
        columns: Sequence[str] | None = None,
    ) -> pl.DataFrame:
        """
        Select rows whose ``column`` is one of ``values``.

        Returns:
            pl.DataFrame: Matching rows typed from the table's declared column types.
            An empty frame without columns when the table does not exist.

        Raises:
            QueryError: If the query fails or a value has no literal form.
        """
        declared = self.table_columns(table)
        if not declared or not values:
            return pl.DataFrame()
        sql = select_in_sql(table, column, values, columns)
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql)
            rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise QueryError(f"read failed: {exc}", {"table": table}) from exc
        names = [d[0] for d in cursor.description]
        data = list(zip(*rows)) if rows else [() for _ in names]
        return pl.DataFrame(
            [series_from_column(n, vals, declared.get(n, "")) for n, vals in zip(names, data)]
        )

    def write(self, table: str, rows: pl.DataFrame, key_column: str) -> int:
        """
        Replace rows for the keys present in ``rows`` and append ``rows``.

        The table is created from the frame's schema on first write; afterwards its
        column set is fixed. Everything happens in one transaction.

        Returns:
            int: Number of rows inserted.

        Raises:
            QueryError: On unknown columns, unmappable dtypes, or driver failures.
        """
        if rows.is_empty():
            return 0
        declared = self.table_columns(table)
        if declared:
            unknown = [c for c in rows.columns if c not in declared]
            if unknown:
                raise QueryError(
                    "columns not present in existing table", {"table": table, "columns": unknown}
                )
        keys = rows.get_column(key_column).drop_nulls().unique(maintain_order=True).to_list()
        statements = []
        if not declared:
            statements.append(create_table_sql(table, rows.schema))
        if keys:
            statements.append(delete_in_sql(table, key_column, keys))
        payload = [tuple(to_sql_value(v) for v in row) for row in rows.iter_rows()]
        conn = self._get_conn()
        try:
            with conn:
                for stmt in statements:
                    conn.execute(stmt)
                conn.executemany(insert_sql(table, rows.columns), payload)
        except sqlite3.Error as exc:
            raise QueryError(f"write failed: {exc}", {"table": table}) from exc
        return len(payload)


def _load_yaml_descriptor(path: Path, env: str) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise StoreConnectionError(f"cannot read database config: {exc}", {"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise StoreConnectionError("database config must be a mapping", {"path": str(path)})
    section = data.get(env)
    if isinstance(section, dict):
        return section
    if "database" in data:
        return data
    raise StoreConnectionError("database config has no such env", {"path": str(path), "env": env})


def _open_sqlite(cfg: Mapping[str, Any], settings: CacheSettings) -> SqliteStore:
    try:
        desc = SqliteDescriptor.model_validate({"timeout": settings.sqlite_timeout, **cfg})
    except pydantic.ValidationError as exc:
        raise StoreConnectionError(f"invalid connection descriptor: {exc}") from exc
    return SqliteStore(desc.database, timeout=desc.timeout)


def connect(
    descriptor: Any,
    env: str | None = None,
    settings: CacheSettings | None = None,
) -> Store:
    """
    Build a Store from a connection descriptor.

    Args:
        descriptor: Store, zero-argument factory, mapping, YAML config path, or SQLite path.
        env: Section of a YAML config to use (falls back to settings.env, then "default").
        settings: CacheSettings supplying the default timeout and env.

    Returns:
        Store: A connected store.

    Raises:
        StoreConnectionError: If the descriptor is unusable or the store cannot be opened.
    """
    settings = settings or CacheSettings()
    if _is_store_instance(descriptor):
        return descriptor
    if isinstance(descriptor, Mapping):
        return _open_sqlite(descriptor, settings)
    if isinstance(descriptor, (str, os.PathLike)):
        path = Path(descriptor)
        if path.suffix.lower() in _YAML_SUFFIXES:
            section = env or settings.env or DEFAULT_ENV
            return _open_sqlite(_load_yaml_descriptor(path, section), settings)
        return _open_sqlite({"database": os.fspath(descriptor)}, settings)
    if callable(descriptor):
        store = descriptor()
        if not _is_store_instance(store):
            raise StoreConnectionError(
                "connection factory did not return a store", {"returned": type(store).__name__}
            )
        return store
    raise StoreConnectionError(
        "unsupported connection descriptor", {"type": type(descriptor).__name__}
    )


class ConnectionManager:
    """
    Owns the single live store of one cached function.

    Notes:
        ensure() runs the liveness check before every call and rebuilds the store from
        the descriptor when it is unset or dead. State is private to this instance.
    """

    def __init__(
        self,
        descriptor: Any,
        env: str | None = None,
        settings: CacheSettings | None = None,
    ) -> None:
        """Store the descriptor; no connection is opened until the first call."""
        self.descriptor = descriptor
        self.env = env
        self.settings = settings or CacheSettings()
        self._store: Store | None = None

    @property
    def store(self) -> Store | None:
        return self._store

    def ensure(self) -> Store:
        """
        Return a live store, reconnecting if needed.

        Raises:
            StoreConnectionError: If no live store can be obtained.
        """
        if self._store is not None and self._store.is_connected():
            return self._store
        if self._store is not None:
            if _is_store_instance(self.descriptor):
                raise StoreConnectionError("cannot re-establish database connection")
            logger.info("store connection lost; reconnecting")
        store = connect(self.descriptor, env=self.env, settings=self.settings)
        if not store.is_connected():
            raise StoreConnectionError("cannot re-establish database connection")
        self._store = store
        return store

    def close(self) -> None:
        """Close and drop the held store."""
        if self._store is not None:
            self._store.close()
            self._store = None
