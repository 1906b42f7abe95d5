"""
Canonical JSON serialization and hashing helpers for salt values.

Provides a single canonical JSON policy and SHA-256 helpers so that the same salt
value always hashes to the same digest across runs and processes. This module is
zero-IO and uses only the Python standard library.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
    - Values JSON cannot represent (dates, tuples of those, arbitrary objects) are
      tagged with their type name before being stringified, so ``date(2020, 1, 1)``
      and ``"2020-01-01"`` serialize differently.
    - Python's builtin hash() is salted per process and is never used here.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

__all__ = [
    "json_dumps_canonical",
    "hash_value",
]


def _tagged(obj: Any) -> dict[str, str]:
    """Fallback for json.dumps: tag non-JSON values with their qualified type name."""
    cls = type(obj)
    return {"__type__": f"{cls.__module__}.{cls.__qualname__}", "value": str(obj)}


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): Value to serialize. Non-JSON values are type-tagged.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.

    Examples:
        >>> json_dumps_canonical({"b": 1, "a": [1, 2]})
        '{"a":[1,2],"b":1}'
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_tagged
    )


def _sha256_hexdigest(s: str) -> str:
    """Compute SHA-256 hex digest of a UTF-8 string."""
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def hash_value(value: Any) -> str:
    """
    Compute a stable hash for any value by hashing its canonical JSON.

    Args:
        value (Any): Value to hash.

    Returns:
        str: SHA-256 hex digest over the canonical JSON serialization.

    Examples:
        >>> hash_value({"a": 1, "b": 2}) == hash_value({"b": 2, "a": 1})
        True
    """
    return _sha256_hexdigest(json_dumps_canonical(value))
