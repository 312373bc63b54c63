"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by the ``from_dict``
constructors in sibling model modules to enforce the NIP-01 JSON shapes
of events, filters and queue wrappers before any field is trusted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def validate_int(value: Any, name: str) -> int:
    """Return *value* if it is an ``int`` (``bool`` excluded), else raise ``TypeError``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


def validate_timestamp(value: Any, name: str) -> int:
    """Return *value* if it is a non-negative ``int`` (``bool`` excluded)."""
    validate_int(value, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def validate_str_no_null(value: Any, name: str) -> str:
    """Return *value* if it is a ``str`` without null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")
    return value


def validate_mapping(value: Any, name: str) -> Mapping[str, Any]:
    """Return *value* if it is a ``Mapping``, else raise ``TypeError``."""
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} must be a Mapping, got {type(value).__name__}")
    return value


def validate_str_list(value: Any, name: str) -> tuple[str, ...]:
    """Return a tuple copy of a JSON list whose items are all strings."""
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    return tuple(validate_str_no_null(item, f"{name}[{i}]") for i, item in enumerate(value))


def validate_int_list(value: Any, name: str) -> tuple[int, ...]:
    """Return a tuple copy of a JSON list whose items are all ints."""
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    return tuple(validate_int(item, f"{name}[{i}]") for i, item in enumerate(value))
