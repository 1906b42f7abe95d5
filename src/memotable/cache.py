"""
Wrap a data-producing function with a record-level cache.

A cached function takes the same arguments as the function it wraps. Keys that have
been computed before are read from a table; only the rest are passed to the wrapped
function, whose output is stored for next time. The result is the union of both, in
the order the keys were requested, exactly as if the wrapped function had computed
everything.

Examples:
    ```python
    import polars as pl
    from memotable import cache

    def title_info(id, kind="filmography"):
        ...  # call a slow API, return one row per id with an "id" column

    cached_title_info = cache(title_info, key="id", salt=["kind"], connection="titles.db")
    cached_title_info([111161, 68646])  # computes both
    cached_title_info([68646, 71562])  # reads 68646, computes 71562
    ```

Salts
    Arguments listed in ``salt`` change the shape of the output, so each combination
    of their values gets its own table (``title_info_filmography``,
    ``title_info_reviews``). Keep salts to arguments with few distinct values.

Prefixes
    Table names start with ``prefix`` (defaults to the function's name). Give every
    cached function sharing a database its own prefix.
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable, Iterable
from typing import Any

import polars as pl

from memotable.core.naming import resolve_table_name
from memotable.core.spec import CacheSpec, CallDescriptor
from memotable.io.config import CacheSettings
from memotable.io.connection import ConnectionManager, Store
from memotable.pipeline import run

__all__ = [
    "CachedFunction",
    "cache",
]


class CachedFunction:
    """
    Callable returned by cache().

    Attributes:
        spec (CacheSpec): Frozen configuration (prefix, key, salt, delegate, force).

    Notes:
        - Exposes the delegate's signature, name and docstring.
        - Owns one store connection, opened on the first call and rebuilt from the
          connection descriptor whenever its liveness check fails.
        - Calls on one instance are serialized with a lock, so concurrent calls never
          compute the same key twice.
    """

    def __init__(
        self,
        spec: CacheSpec,
        connection: Any = None,
        env: str | None = None,
        settings: CacheSettings | None = None,
    ) -> None:
        """Bind configuration; performs no I/O."""
        self.spec = spec
        self._descriptor = connection
        self._env = env
        self._settings = settings
        self._connection: ConnectionManager | None = None
        self._lock = threading.RLock()
        functools.update_wrapper(self, spec.func)
        self.__signature__ = spec.signature

    def __repr__(self) -> str:
        return f"<CachedFunction {self.spec.prefix} key={self.spec.key.argument!r}>"

    @property
    def uncached(self) -> Callable[..., Any]:
        """The wrapped function."""
        return self.spec.func

    @property
    def settings(self) -> CacheSettings:
        """Settings given to cache(), else loaded (env > TOML > defaults) on first use."""
        if self._settings is None:
            self._settings = CacheSettings.load()
        return self._settings

    @property
    def store(self) -> Store | None:
        """Currently held store, or None before the first call."""
        return self._connection.store if self._connection is not None else None

    def _manager(self) -> ConnectionManager:
        if self._connection is None:
            descriptor = self._descriptor
            if descriptor is None:
                descriptor = self.settings.database
            self._connection = ConnectionManager(descriptor, env=self._env, settings=self.settings)
        return self._connection

    def table_for(self, *args: Any, **kwargs: Any) -> str:
        """Name of the table a call with these arguments reads and writes (no I/O)."""
        call = CallDescriptor.from_call(self.spec, args, kwargs)
        return resolve_table_name(self.spec.prefix, call.salt_values)

    def invoke(self, *args: Any, **kwargs: Any) -> pl.DataFrame:
        """
        Run one cached call.

        Returns:
            pl.DataFrame: Rows for the requested keys, in request order.

        Raises:
            TypeError: If the arguments do not bind to the delegate's signature.
            memotable.io.errors.StoreConnectionError: If no live store is available.
            memotable.core.errors.ValidationError: If the delegate returns a non-table.
            memotable.io.errors.QueryError: If a store read or write fails.
        """
        call = CallDescriptor.from_call(self.spec, args, kwargs)
        with self._lock:
            return run(self.spec, self._manager(), call, self.settings)

    def __call__(self, *args: Any, **kwargs: Any) -> pl.DataFrame:
        return self.invoke(*args, **kwargs)

    def close(self) -> None:
        """Close the held store connection; the next call reconnects."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()


def cache(
    func: Callable[..., Any] | None = None,
    key: Any = None,
    salt: Iterable[str] | str = (),
    connection: Any = None,
    prefix: str | None = None,
    force: bool = False,
    *,
    env: str | None = None,
    settings: CacheSettings | None = None,
) -> Any:
    """
    Build a cached version of ``func``.

    Args:
        func: Function returning a table with one or more rows per key. When omitted,
            cache() returns a decorator.
        key: Key argument name (also the output column), or ``{argument: column}``.
        salt: Argument name(s) whose values select a separate table.
        connection: Store, store factory, mapping, YAML config path or SQLite path.
            Defaults to CacheSettings.database.
        prefix: Table prefix; defaults to ``func.__name__``.
        force: Recompute and re-store every requested key on every call.
        env: Section of a YAML database config.
        settings: Explicit settings; loaded from env/TOML on first call otherwise.

    Returns:
        CachedFunction (or a decorator producing one).

    Raises:
        memotable.core.errors.ConfigurationError: Invalid key, salt, prefix or force.
    """
    if func is None:
        return functools.partial(
            cache,
            key=key,
            salt=salt,
            connection=connection,
            prefix=prefix,
            force=force,
            env=env,
            settings=settings,
        )
    spec = CacheSpec.build(func, key, salt=salt, prefix=prefix, force=force)
    return CachedFunction(spec, connection=connection, env=env, settings=settings)
