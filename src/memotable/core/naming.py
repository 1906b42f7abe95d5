"""
Table naming for cached functions.

Overview
- A cached function without salt stores rows in a table named exactly ``prefix``.
- With salt, the table is ``{prefix}_{token1}_{token2}...`` with one token per salt
  value, in declared salt order.

Token rules
- Canonical JSON of the value when it is already ``[a-z0-9]+`` (non-negative ints,
  true, false, null).
- A string verbatim when it is ``[a-z][a-z0-9]*``, is not a JSON keyword, and does
  not look like a hashed token.
- Otherwise ``x`` + the first 16 hex chars of the SHA-256 of its canonical JSON.

Plain tokens never contain the separator and never collide with each other or with
hashed tokens, so for a fixed salt arity the table name is injective up to SHA-256
prefix collisions. Tokens are lowercase, which keeps names distinct on case-insensitive
SQL backends.

Notes
- Zero-IO: resolving a name never checks whether the table exists.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any, Final

from .constants import HASHED_TOKEN_LENGTH, TABLE_SEPARATOR
from .errors import ConfigurationError
from .hashing import hash_value, json_dumps_canonical

__all__ = [
    "validate_prefix",
    "salt_token",
    "resolve_table_name",
]

_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_JSON_TOKEN_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+$")
_TEXT_TOKEN_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9]*$")
_HASHED_TOKEN_RE: Final[re.Pattern[str]] = re.compile(
    rf"^x[0-9a-f]{{{HASHED_TOKEN_LENGTH}}}$"
)
_JSON_KEYWORDS: Final[frozenset[str]] = frozenset({"true", "false", "null"})


def validate_prefix(prefix: Any) -> str:
    """
    Validate that a prefix is a single identifier-like token.

    Args:
        prefix (Any): Proposed table prefix.

    Returns:
        str: Same value if valid.

    Raises:
        ConfigurationError: If prefix is not a non-empty ``[A-Za-z_][A-Za-z0-9_]*`` string.
    """
    if not isinstance(prefix, str) or not _PREFIX_RE.match(prefix):
        raise ConfigurationError(
            "prefix must be a single non-empty token matching [A-Za-z_][A-Za-z0-9_]*",
            {"prefix": prefix},
        )
    return prefix


def salt_token(value: Any) -> str:
    """
    Render one salt value as an identifier-safe token.

    Args:
        value (Any): Salt argument value as bound at call time.

    Returns:
        str: Lowercase ``[a-z0-9]+`` token.

    Examples:
        >>> salt_token(3), salt_token(True), salt_token("reviews")
        ('3', 'true', 'reviews')
        >>> salt_token("Reviews").startswith("x")
        True
    """
    if isinstance(value, str):
        if (
            _TEXT_TOKEN_RE.match(value)
            and value not in _JSON_KEYWORDS
            and not _HASHED_TOKEN_RE.match(value)
        ):
            return value
    else:
        encoded = json_dumps_canonical(value)
        if _JSON_TOKEN_RE.match(encoded):
            return encoded
    return "x" + hash_value(value)[:HASHED_TOKEN_LENGTH]


def resolve_table_name(prefix: str, salt_values: Sequence[Any] = ()) -> str:
    """
    Map a prefix and ordered salt values to a physical table name.

    Args:
        prefix (str): Table prefix (see validate_prefix).
        salt_values (Sequence[Any]): Salt values in declared salt order.

    Returns:
        str: ``prefix`` when there is no salt, else ``prefix_tok1_tok2...``.

    Examples:
        >>> resolve_table_name("imdb")
        'imdb'
        >>> resolve_table_name("imdb", ["filmography", 2])
        'imdb_filmography_2'
    """
    validate_prefix(prefix)
    if not salt_values:
        return prefix
    return TABLE_SEPARATOR.join([prefix, *(salt_token(v) for v in salt_values)])
