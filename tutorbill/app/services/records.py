"""Helpers for reading loosely-shaped invoice records."""

from collections.abc import Mapping
from typing import Any


def nested(record, *keys) -> Any:
    """Walk ``keys`` through nested mappings, returning None at the first gap."""
    current = record
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def mapping_or_empty(value) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def mapping_items(value) -> list[Mapping]:
    """Return the mapping entries of a list-like value, dropping blanks and junk."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def as_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)
