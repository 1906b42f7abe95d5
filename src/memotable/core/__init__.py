"""
Core contracts for memotable (errors, table naming, key/salt spec, call descriptor).

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network/database IO.
- Table names are derived here and nowhere else (see naming).

## Downstream usage
- memotable.io — raises core errors' siblings (StoreConnectionError, QueryError).
- memotable.pipeline — consumes CacheSpec/CallDescriptor and resolve_table_name.
"""

from .errors import CacheError, ConfigurationError, ValidationError
from .naming import resolve_table_name
from .spec import CacheSpec, CallDescriptor, KeySpec

__all__ = [
    "CacheError",
    "ConfigurationError",
    "ValidationError",
    "resolve_table_name",
    "CacheSpec",
    "CallDescriptor",
    "KeySpec",
]
