"""Convert records to and from plain mappings using their field annotations."""

from __future__ import annotations

import dataclasses
import re
import types
import typing
from collections.abc import Mapping
from datetime import date, datetime
from functools import lru_cache
from typing import Any, TypeVar

from .datetime_utils import (
    parse_date,
    parse_datetime,
    serialize_date,
    serialize_datetime,
)
from .interfaces import ValidationError
from .models import Record

RecordT = TypeVar("RecordT", bound=Record)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@lru_cache(maxsize=None)
def field_types(record_type: type[Record]) -> dict[str, Any]:
    """Return ``{field name: resolved annotation}`` in declaration order."""
    hints = typing.get_type_hints(record_type)
    return {field.name: hints[field.name] for field in dataclasses.fields(record_type)}


def strip_optional(hint: Any) -> Any:
    """Return ``X`` for ``X | None`` annotations, else ``hint`` unchanged."""
    if isinstance(hint, types.UnionType) or typing.get_origin(hint) is typing.Union:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return hint


def coerce_value(hint: Any, value: Any) -> Any:
    """Convert a JSON-ish ``value`` to the Python type named by ``hint``."""
    base = strip_optional(hint)
    if typing.get_origin(base) is tuple:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"Expected a list, got {value!r}")
        return tuple(str(item) for item in value)
    if value is None:
        return None
    if base is datetime:
        return parse_datetime(value)
    if base is date:
        return parse_date(value)
    if base is bool:
        return _coerce_bool(value)
    if base is int and not isinstance(value, int):
        return int(value)
    return value


def _coerce_bool(value: Any) -> bool:
    # SQLite hands back 0/1; JSON clients may send "true"/"false".
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"Expected a boolean, got {value!r}")


def to_camel(name: str) -> str:
    """``delivery_on`` → ``deliveryOn``."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    """``deliveryOn`` → ``delivery_on``; snake case passes through."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def record_from_payload(
    record_type: type[RecordT], payload: Mapping[str, Any]
) -> RecordT:
    """Build a new record from an API payload with camelCase or snake_case keys.

    Ids are assigned by the store, so a payload carrying one is rejected.
    """
    hints = field_types(record_type)
    values: dict[str, Any] = {}
    for key, raw in payload.items():
        name = to_snake(key)
        if name not in hints:
            raise ValidationError(f"Unknown {record_type.kind} field '{key}'")
        values[name] = raw
    if values.get("id") is not None:
        raise ValidationError(f"A new {record_type.kind} cannot choose its id")
    values["id"] = None
    return record_type(**coerce_changes(record_type, values, require_all=True))


def coerce_changes(
    record_type: type[Record],
    changes: Mapping[str, Any],
    *,
    require_all: bool = False,
) -> dict[str, Any]:
    """Convert partial ``changes`` keyed by field name to typed values."""
    hints = field_types(record_type)
    if require_all:
        missing = [
            field.name
            for field in dataclasses.fields(record_type)
            if field.name not in changes
            and field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING
        ]
        if missing:
            raise ValidationError(
                f"{record_type.kind} is missing required field(s): {', '.join(missing)}"
            )
    try:
        return {
            to_snake(key): coerce_value(hints[to_snake(key)], value)
            for key, value in changes.items()
        }
    except KeyError as exc:
        raise ValidationError(f"Unknown {record_type.kind} field {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {record_type.kind} value: {exc}") from exc


def record_to_payload(record: Record) -> dict[str, Any]:
    """Return a JSON-ready mapping with camelCase keys and ISO dates."""
    payload: dict[str, Any] = {"kind": record.kind}
    for name in field_types(type(record)):
        value = getattr(record, name)
        if isinstance(value, datetime):
            value = serialize_datetime(value)
        elif isinstance(value, date):
            value = serialize_date(value)
        elif isinstance(value, tuple):
            value = list(value)
        payload[to_camel(name)] = value
    return payload


__all__ = [
    "coerce_changes",
    "coerce_value",
    "field_types",
    "record_from_payload",
    "record_to_payload",
    "strip_optional",
    "to_camel",
    "to_snake",
]
