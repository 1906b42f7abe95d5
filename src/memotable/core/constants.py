"""
memotable core defaults.

Defines naming and configuration defaults consumed by the settings loader and the
table resolver. This module is zero-IO and uses only the Python standard library.

Notes:
    - Table names are ``{prefix}`` or ``{prefix}_{token}_{token}...``.
    - Hashed salt tokens are ``x`` followed by HASHED_TOKEN_LENGTH hex characters.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DATABASE",
    "DEFAULT_ENV",
    "ENV_PREFIX",
    "HASHED_TOKEN_LENGTH",
    "SQLITE_TIMEOUT",
    "TABLE_SEPARATOR",
]

# SQLite file used when neither cache(..., connection=...) nor config names one.
DEFAULT_DATABASE: str = "memotable.db"

# Section read from a YAML database config when no env is given.
DEFAULT_ENV: str = "default"

# Environment variable prefix for CacheSettings.from_env.
ENV_PREFIX: str = "MEMOTABLE_"

# Seconds sqlite3 waits on a locked database before failing.
SQLITE_TIMEOUT: float = 30.0

TABLE_SEPARATOR: str = "_"

HASHED_TOKEN_LENGTH: int = 16
