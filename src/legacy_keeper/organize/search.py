"""Tag listing and free-text filtering over record collections."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from legacy_keeper.core.models import Record

ALL_CATEGORIES = "all"

RecordT = TypeVar("RecordT", bound=Record)


def distinct_tags(records: Iterable[Record]) -> list[str]:
    """Return every tag used by ``records`` once, in ascending order."""
    tags: set[str] = set()
    for record in records:
        tags.update(getattr(record, "tags", ()) or ())
    return sorted(tags)


def filter_records(
    records: Sequence[RecordT],
    query: str = "",
    category: str = ALL_CATEGORIES,
) -> list[RecordT]:
    """Return the records matching ``query`` and ``category``, order preserved.

    ``query`` is a case-insensitive substring tested against the record type's
    search fields; an empty query matches everything. Unless ``category`` is
    ``"all"`` the record's category field must equal it (or, for tuple fields
    such as tags, contain it).
    """
    needle = query.lower()
    return [
        record
        for record in records
        if _matches_query(record, needle) and _matches_category(record, category)
    ]


def _matches_query(record: Record, needle: str) -> bool:
    if not needle:
        return True
    for field_name in type(record).search_fields:
        value = getattr(record, field_name)
        if any(needle in text.lower() for text in _texts(value)):
            return True
    return False


def _matches_category(record: Record, category: str) -> bool:
    if category == ALL_CATEGORIES:
        return True
    field_name = type(record).category_field
    if field_name is None:
        return False
    value = getattr(record, field_name)
    if isinstance(value, tuple):
        return category in value
    return value == category


def _texts(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, tuple):
        return tuple(str(item) for item in value)
    return (str(value),)


__all__ = ["ALL_CATEGORIES", "distinct_tags", "filter_records"]
