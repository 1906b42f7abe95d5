"""
Pydantic v2 models describing a cached function and the per-call descriptor.

Responsibilities
- KeySpec: pair of delegate argument name and output column name.
- CacheSpec: frozen wrap-time configuration (prefix, key, salt, delegate, force),
  validated against the delegate's own signature.
- CallDescriptor: the bound arguments of one invocation, with the requested keys and
  salt values derived from them.

Notes
- Zero-IO (stdlib + pydantic only).
- Binding follows inspect.Signature.bind, so positional/keyword/default resolution is
  exactly what calling the delegate directly would do.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import cached_property
from numbers import Number
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .errors import ConfigurationError
from .naming import validate_prefix

__all__ = [
    "KeySpec",
    "CacheSpec",
    "CallDescriptor",
]

_SCALAR_KEY_TYPES = (str, bytes, Number)


class KeySpec(BaseModel):
    """
    Primary key of a cached function.

    Attributes:
        argument (str): Delegate parameter receiving the sequence of keys.
        column (str): Column of the delegate's output holding each row's key.

    Examples:
        >>> KeySpec.parse("id")
        KeySpec(argument='id', column='id')
        >>> KeySpec.parse({"ids": "title_id"})
        KeySpec(argument='ids', column='title_id')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    argument: str
    column: str

    @field_validator("argument", "column")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("key names must be non-empty")
        return v

    @classmethod
    def parse(cls, key: Any) -> KeySpec:
        """
        Normalize the accepted key spellings into a KeySpec.

        Args:
            key: ``"id"`` (argument and column share a name), ``{"ids": "id"}``,
                ``("id",)`` or an existing KeySpec.

        Raises:
            ConfigurationError: If the key is empty, names more than one column, or
                is not one of the accepted spellings.
        """
        if isinstance(key, KeySpec):
            return key
        if isinstance(key, Mapping):
            items = list(key.items())
        elif isinstance(key, str):
            items = [(key, key)]
        elif isinstance(key, Sequence):
            items = [(k, k) for k in key]
        else:
            raise ConfigurationError("key must be a name or an {argument: column} mapping")
        if not items:
            raise ConfigurationError("key spec must not be empty")
        if len(items) > 1:
            raise ConfigurationError(
                "only single-column keys are supported", {"key": [a for a, _ in items]}
            )
        argument, column = items[0]
        try:
            return cls(argument=argument, column=column)
        except pydantic.ValidationError as exc:
            raise ConfigurationError(f"invalid key spec: {exc}", {"key": key}) from exc


class CacheSpec(BaseModel):
    """
    Immutable configuration of one cached function.

    Attributes:
        prefix (str): Table prefix scoping this function's tables.
        key (KeySpec): Primary key argument/column pair.
        salt (tuple[str, ...]): Delegate parameters whose values select the table.
        func (Callable): The uncached delegate.
        force (bool): Recompute every requested key on every call.

    Raises:
        ConfigurationError: Via CacheSpec.build, for any invalid field or a key/salt
            name the delegate does not declare.

    Examples:
        >>> def titles(id, kind="film"): ...
        >>> spec = CacheSpec.build(titles, "id", salt=["kind"], prefix="titles")
        >>> spec.salt
        ('kind',)
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    prefix: str
    key: KeySpec
    salt: tuple[str, ...] = ()
    func: Callable[..., Any]
    force: bool = False

    @field_validator("prefix")
    @classmethod
    def _prefix_token(cls, v: str) -> str:
        return validate_prefix(v)

    @field_validator("force", mode="before")
    @classmethod
    def _strict_force(cls, v: Any) -> Any:
        if not isinstance(v, bool):
            raise ValueError("force must be a bool")
        return v

    @model_validator(mode="after")
    def _names_in_signature(self) -> CacheSpec:
        if len(set(self.salt)) != len(self.salt):
            raise ValueError(f"salt names must be unique: {list(self.salt)!r}")
        if self.key.argument in self.salt:
            raise ValueError(f"key argument {self.key.argument!r} cannot also be salt")
        params = self.signature.parameters
        open_kwargs = any(p.kind is p.VAR_KEYWORD for p in params.values())
        for name in (self.key.argument, *self.salt):
            param = params.get(name)
            if param is None:
                if not open_kwargs:
                    raise ValueError(f"{name!r} is not a parameter of {self.func!r}")
            elif param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise ValueError(f"{name!r} must be a named parameter, not *{name}")
        return self

    @cached_property
    def signature(self) -> inspect.Signature:
        """Signature of the delegate; the cached function exposes the same one."""
        return inspect.signature(self.func)

    @classmethod
    def build(
        cls,
        func: Callable[..., Any],
        key: Any,
        salt: Iterable[str] | str = (),
        prefix: str | None = None,
        force: bool = False,
    ) -> CacheSpec:
        """
        Validate wrap-time configuration and return a frozen CacheSpec.

        Args:
            func: Delegate to cache.
            key: Key spec (see KeySpec.parse).
            salt: Salt parameter name(s), in table-name order.
            prefix: Table prefix; defaults to ``func.__name__``.
            force: Recompute all keys on every call.

        Raises:
            ConfigurationError: On any invalid input. No I/O is performed.
        """
        if not callable(func):
            raise ConfigurationError("cached delegate must be callable", {"func": func})
        try:
            inspect.signature(func)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"cannot read delegate signature: {exc}") from exc
        key_spec = KeySpec.parse(key)
        if prefix is None:
            prefix = getattr(func, "__name__", None)
        salt_names = (salt,) if isinstance(salt, str) else tuple(salt)
        try:
            return cls(prefix=prefix, key=key_spec, salt=salt_names, func=func, force=force)
        except pydantic.ValidationError as exc:
            errors = "; ".join(str(e.get("msg", e)) for e in exc.errors())
            raise ConfigurationError(
                f"invalid cache configuration: {errors}", {"prefix": prefix}
            ) from exc


def _normalize_keys(value: Any) -> list[Any]:
    """Turn a bound key argument into a finite ordered list (scalars become one key)."""
    if value is None or isinstance(value, _SCALAR_KEY_TYPES):
        return [value]
    to_list = getattr(value, "to_list", None)
    if callable(to_list):
        return list(to_list())
    if isinstance(value, Iterable):
        return list(value)
    return [value]


@dataclass(frozen=True)
class CallDescriptor:
    """
    Bound arguments of one call to a cached function.

    Attributes:
        spec (CacheSpec): Configuration of the cached function.
        bound (inspect.BoundArguments): Arguments after binding and defaults.
        keys (list[Any]): Requested keys in caller order (duplicates kept).
        salt_values (tuple[Any, ...]): Salt argument values in salt order.
    """

    spec: CacheSpec
    bound: inspect.BoundArguments
    keys: list[Any]
    salt_values: tuple[Any, ...]

    @classmethod
    def from_call(cls, spec: CacheSpec, args: tuple[Any, ...], kwargs: dict[str, Any]) -> CallDescriptor:
        """
        Bind call arguments with the delegate's own rules.

        Raises:
            TypeError: If the arguments do not bind (same error a direct call raises),
                or the key argument is missing.
        """
        bound = spec.signature.bind(*args, **kwargs)
        bound.apply_defaults()
        if not _has_argument(bound, spec.key.argument):
            raise TypeError(f"missing required key argument {spec.key.argument!r}")
        keys = _normalize_keys(_get_argument(bound, spec.key.argument))
        salt_values = tuple(_get_argument(bound, name) for name in spec.salt)
        return cls(spec=spec, bound=bound, keys=keys, salt_values=salt_values)

    def with_keys(self, keys: list[Any]) -> tuple[tuple[Any, ...], dict[str, Any]]:
        """Return ``(args, kwargs)`` for calling the delegate with ``keys`` in place of the requested ones."""
        rebound = inspect.BoundArguments(self.bound.signature, dict(self.bound.arguments))
        _set_argument(rebound, self.spec.key.argument, list(keys))
        return rebound.args, rebound.kwargs


def _var_keyword_name(bound: inspect.BoundArguments) -> str | None:
    for param in bound.signature.parameters.values():
        if param.kind is param.VAR_KEYWORD:
            return param.name
    return None


def _has_argument(bound: inspect.BoundArguments, name: str) -> bool:
    if name in bound.signature.parameters:
        return name in bound.arguments
    extra = _var_keyword_name(bound)
    return extra is not None and name in bound.arguments.get(extra, {})


def _get_argument(bound: inspect.BoundArguments, name: str) -> Any:
    # Names absent from the signature arrive through **kwargs; unset salt resolves to None.
    if name in bound.signature.parameters:
        return bound.arguments.get(name)
    extra = _var_keyword_name(bound)
    return bound.arguments.get(extra, {}).get(name) if extra else None


def _set_argument(bound: inspect.BoundArguments, name: str, value: Any) -> None:
    if name in bound.signature.parameters:
        bound.arguments[name] = value
        return
    extra = _var_keyword_name(bound)
    if extra is None:
        raise TypeError(f"cannot rebind unknown argument {name!r}")
    bound.arguments[extra] = {**bound.arguments.get(extra, {}), name: value}
