"""Required-field and enum checks applied before records are stored."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import TypeVar

from legacy_keeper.core.interfaces import ValidationError
from legacy_keeper.core.models import (
    APPOINTMENT_STATUSES,
    LETTER_STATUSES,
    MEDICATION_FREQUENCIES,
    MEDICATION_STATUSES,
    NOTE_CATEGORIES,
    Appointment,
    DocumentChapter,
    DocumentPage,
    EmergencyContact,
    Immunization,
    JournalEntry,
    LegacyNote,
    Medication,
    Record,
    ScheduledMessage,
)

RecordT = TypeVar("RecordT", bound=Record)

_REQUIRED_FIELDS: Mapping[str, tuple[str, ...]] = {
    Appointment.kind: ("scheduled_at", "type"),
    Immunization.kind: ("vaccine_name", "administered_on"),
    Medication.kind: ("name", "dosage", "frequency"),
    EmergencyContact.kind: ("name", "relationship", "phone"),
    JournalEntry.kind: ("title", "content", "written_on"),
    LegacyNote.kind: ("title", "content", "written_on", "category"),
    ScheduledMessage.kind: ("recipient", "subject", "content", "authored_on"),
    DocumentChapter.kind: ("title",),
    DocumentPage.kind: ("title", "content", "occurred_on", "chapter_id"),
}

_ENUM_FIELDS: Mapping[str, Mapping[str, tuple[str, ...]]] = {
    Appointment.kind: {"status": APPOINTMENT_STATUSES},
    Medication.kind: {
        "status": MEDICATION_STATUSES,
        "frequency": MEDICATION_FREQUENCIES,
    },
    LegacyNote.kind: {"category": NOTE_CATEGORIES},
    ScheduledMessage.kind: {"status": LETTER_STATUSES},
}

_POSITIVE_FIELDS: Mapping[str, tuple[str, ...]] = {
    DocumentChapter.kind: ("order",),
    DocumentPage.kind: ("page_number",),
}


def require_fields(record: Record, field_names: tuple[str, ...]) -> None:
    """Raise :class:`ValidationError` naming every blank field."""
    missing = [name for name in field_names if _is_blank(getattr(record, name))]
    if missing:
        raise ValidationError(
            f"{record.kind} is missing required field(s): {', '.join(missing)}"
        )


def validate_record(record: RecordT) -> RecordT:
    """Return a cleaned copy of ``record`` or raise :class:`ValidationError`.

    Cleaning drops blank entries from tuple fields such as tags and images.
    """
    kind = record.kind
    require_fields(record, _REQUIRED_FIELDS.get(kind, ()))

    for field_name, allowed in _ENUM_FIELDS.get(kind, {}).items():
        value = getattr(record, field_name)
        if value not in allowed:
            raise ValidationError(
                f"Invalid {kind} {field_name} {value!r}; "
                f"expected one of {', '.join(allowed)}"
            )

    for field_name in _POSITIVE_FIELDS.get(kind, ()):
        value = getattr(record, field_name)
        if not isinstance(value, int) or value < 1:
            raise ValidationError(f"{kind} {field_name} must be a positive integer")

    if isinstance(record, EmergencyContact) and record.priority < 0:
        raise ValidationError("emergency_contact priority cannot be negative")

    if isinstance(record, ScheduledMessage) and (
        record.status == "scheduled" and record.delivery_on is None
    ):
        raise ValidationError("A scheduled letter needs a delivery date")

    return _clean_collections(record)


def _clean_collections(record: RecordT) -> RecordT:
    cleaned: dict[str, tuple[str, ...]] = {}
    for field in dataclasses.fields(record):
        value = getattr(record, field.name)
        if isinstance(value, tuple):
            kept = tuple(item.strip() for item in value if item and item.strip())
            if kept != value:
                cleaned[field.name] = kept
    if not cleaned:
        return record
    return dataclasses.replace(record, **cleaned)


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


__all__ = ["require_fields", "validate_record"]
