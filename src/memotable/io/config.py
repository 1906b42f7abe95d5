"""
Configuration for memotable.

Defines CacheSettings, a frozen dataclass carrying runtime configuration for cached
functions. Defaults are sourced from memotable.core.constants (the single source of
truth).

Source of truth
- memotable.core.constants.DEFAULT_DATABASE, DEFAULT_ENV, SQLITE_TIMEOUT, ENV_PREFIX

Notes
- Precedence: environment > TOML > defaults.
- TOML search order: ./memotable.toml ([cache] table or top-level keys), then
  ./pyproject.toml under [tool.memotable].
- on_write_error selects what happens when rows were computed but could not be
  persisted: "raise" propagates QueryError, "warn" logs and still returns them.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from memotable.core.constants import DEFAULT_DATABASE, ENV_PREFIX, SQLITE_TIMEOUT

WriteErrorPolicy = Literal["raise", "warn"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class CacheSettings:
    """
    Runtime settings for cached functions.

    Attributes:
        database (str): Default connection descriptor (SQLite path or YAML config path)
            used when cache(...) is given no connection.
        env (str | None): Section of a YAML database config to use (None → "default").
        sqlite_timeout (float): Seconds sqlite3 waits on a locked database.
        on_write_error (Literal["raise","warn"]): Policy when persisting fresh rows fails.
        log_level (str): Level applied by memotable.logging.setup_logging.

    Examples:
        >>> from memotable.io.config import CacheSettings
        >>> CacheSettings(database=":memory:", on_write_error="warn")  # doctest: +ELLIPSIS
        CacheSettings(...)
    """

    database: str = DEFAULT_DATABASE
    env: str | None = None
    sqlite_timeout: float = SQLITE_TIMEOUT
    on_write_error: WriteErrorPolicy = "raise"
    log_level: LogLevel = "WARNING"

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: CacheSettings, cfg: dict[str, Any] | None) -> CacheSettings:
        """Apply a loose config mapping onto CacheSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "database" in cfg and isinstance(cfg["database"], str) and cfg["database"]:
            s = replace(s, database=cfg["database"])

        if "env" in cfg and isinstance(cfg["env"], str) and cfg["env"]:
            s = replace(s, env=cfg["env"])

        if "sqlite_timeout" in cfg:
            try:
                timeout = float(cfg["sqlite_timeout"])
            except (TypeError, ValueError):
                timeout = s.sqlite_timeout
            if timeout >= 0:
                s = replace(s, sqlite_timeout=timeout)

        if "on_write_error" in cfg and isinstance(cfg["on_write_error"], str):
            policy = cfg["on_write_error"].strip().lower()
            if policy in ("raise", "warn"):
                s = replace(s, on_write_error=policy)  # type: ignore[arg-type]

        if "log_level" in cfg and isinstance(cfg["log_level"], str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)  # type: ignore[arg-type]

        return s

    @classmethod
    def from_env(cls, base: CacheSettings | None = None, prefix: str = ENV_PREFIX) -> CacheSettings:
        """
        Build CacheSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - MEMOTABLE_DATABASE
            - MEMOTABLE_ENV
            - MEMOTABLE_SQLITE_TIMEOUT
            - MEMOTABLE_ON_WRITE_ERROR ("raise" | "warn")
            - MEMOTABLE_LOG_LEVEL
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for field_name in ("database", "env", "sqlite_timeout", "on_write_error", "log_level"):
            v = os.getenv(prefix + field_name.upper())
            if v:
                mapping[field_name] = v

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> CacheSettings:
        """
        Build CacheSettings from a TOML file.

        Search order when `path` is None:
            1) ./memotable.toml (with either top-level [cache] or direct keys)
            2) ./pyproject.toml under [tool.memotable]

        Returns defaults if no file is present or the file cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "memotable.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("memotable") if isinstance(tool, dict) else None
            else:
                # memotable.toml - accept either [cache] table or top-level keys
                if "cache" in data and isinstance(data["cache"], dict):
                    cfg = data["cache"]
                else:
                    cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> CacheSettings:
        """
        Load CacheSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (memotable.toml, pyproject.toml).

        Returns:
            CacheSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
