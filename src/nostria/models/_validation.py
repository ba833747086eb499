"""Shared validation helpers for frozen dataclass models.

Private module -- not part of the public API. Used by ``__post_init__`` and
``from_dict`` methods in sibling model modules to enforce runtime type
constraints on data that arrives from untrusted relays.
"""

from __future__ import annotations

import string
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


_HEX_DIGITS = frozenset(string.hexdigits.lower())


def validate_int(value: Any, name: str, *, minimum: int = 0, maximum: int | None = None) -> None:
    """Raise if *value* is not an ``int`` within bounds (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got {value}")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    validate_str_no_null(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def validate_hex(value: Any, name: str, length: int) -> None:
    """Raise if *value* is not a lowercase hex string of exactly *length* chars."""
    validate_str_no_null(value, name)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} hex chars, got {len(value)}")
    if not _HEX_DIGITS.issuperset(value):
        raise ValueError(f"{name} must be lowercase hex")


def is_hex(value: str, length: int) -> bool:
    """Return True if *value* is a lowercase hex string of *length* chars."""
    return len(value) == length and _HEX_DIGITS.issuperset(value)


def deep_freeze(obj: Any) -> Any:
    """Recursively wrap dicts with ``MappingProxyType`` and lists as tuples."""
    if isinstance(obj, Mapping):
        return MappingProxyType({k: deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, list | tuple):
        return tuple(deep_freeze(item) for item in obj)
    return obj


def thaw(obj: Any) -> Any:
    """Inverse of [deep_freeze][nostria.models._validation.deep_freeze] for JSON output."""
    if isinstance(obj, Mapping):
        return {k: thaw(v) for k, v in obj.items()}
    if isinstance(obj, tuple):
        return [thaw(item) for item in obj]
    return obj
