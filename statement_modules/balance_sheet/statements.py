"""
Balance Sheet Documents -- pure conversion between value objects and JSON.

Responsibility
--------------
* ``render_to_dict``: dataclass tree -> plain dict (Decimal as str) for the
  snapshot's JSON columns and for API callers.
* ``section_from_dict``: the reverse, rebuilding frozen dataclasses from a
  stored document; unknown keys are ignored, missing leaves become zero.
* ``merge_patch`` / ``diff_documents``: support for draft edits and the
  field-level change record written to the audit trail.

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O.
"""

from __future__ import annotations

import dataclasses
import typing
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

T = TypeVar("T")


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any statement dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date/datetime -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


def section_from_dict(cls: type[T], data: dict[str, Any] | None) -> T:
    """
    Rebuild a section dataclass from its stored document.

    Raises:
        ValueError: If a leaf is present but not a number.
    """
    data = data or {}
    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name not in data:
            continue
        field_type = hints[f.name]
        value = data[f.name]
        if dataclasses.is_dataclass(field_type):
            kwargs[f.name] = section_from_dict(field_type, value)
        elif field_type is Decimal:
            kwargs[f.name] = _decimal(f.name, value)
        else:
            kwargs[f.name] = value
    return cls(**kwargs)


def _decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def merge_patch(document: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge patch into a copy of document."""
    merged = dict(document)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_patch(merged[key], value)
        else:
            merged[key] = value
    return merged


def diff_documents(
    before: dict[str, Any],
    after: dict[str, Any],
    prefix: str = "",
) -> dict[str, dict[str, Any]]:
    """Flattened {dotted.path: {"from": old, "to": new}} of changed leaves."""
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(before) | set(after)):
        path = f"{prefix}{key}"
        old, new = before.get(key), after.get(key)
        if isinstance(old, dict) and isinstance(new, dict):
            changes.update(diff_documents(old, new, prefix=f"{path}."))
        elif not _same(old, new):
            changes[path] = {"from": old, "to": new}
    return changes


def _same(old: Any, new: Any) -> bool:
    if isinstance(old, str) and isinstance(new, str):
        try:
            return Decimal(old) == Decimal(new)
        except InvalidOperation:
            return old == new
    return old == new
