"""Core domain models used across the application.

Every record type is a slotted dataclass carrying a handful of class-level
attributes that the organising rules dispatch on:

``kind``
    Discriminant naming the record type.
``table``
    Storage table the record persists to.
``sort_field``
    Attribute stored listings are ordered by (the primary date where the
    record has one).
``search_fields``
    Attributes matched by free-text search. Tuple-valued attributes (tags,
    images) match when any element matches.
``category_field``
    Attribute compared against a category filter, or ``None`` when the record
    type has no category.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar

APPOINTMENT_STATUSES: tuple[str, ...] = (
    "scheduled",
    "completed",
    "cancelled",
    "rescheduled",
)
MEDICATION_STATUSES: tuple[str, ...] = ("active", "discontinued", "completed")
MEDICATION_FREQUENCIES: tuple[str, ...] = (
    "once_daily",
    "twice_daily",
    "three_times_daily",
    "four_times_daily",
    "as_needed",
    "weekly",
    "monthly",
    "other",
)
NOTE_CATEGORIES: tuple[str, ...] = (
    "wishes",
    "values",
    "advice",
    "legacy",
    "personal",
    "other",
)
LETTER_STATUSES: tuple[str, ...] = ("draft", "scheduled", "delivered")


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Appointment:
    """Healthcare appointment with a provider."""

    kind: ClassVar[str] = "appointment"
    table: ClassVar[str] = "appointments"
    sort_field: ClassVar[str] = "scheduled_at"
    search_fields: ClassVar[tuple[str, ...]] = ("provider_name", "type", "location")
    category_field: ClassVar[str | None] = "status"

    id: str | None
    scheduled_at: datetime
    type: str
    status: str = "scheduled"
    provider_name: str | None = None
    location: str | None = None
    notes: str | None = None
    reminder_sent: bool = False


@dataclass(slots=True)
class Immunization:
    """Administered vaccine dose."""

    kind: ClassVar[str] = "immunization"
    table: ClassVar[str] = "immunizations"
    sort_field: ClassVar[str] = "administered_on"
    search_fields: ClassVar[tuple[str, ...]] = ("vaccine_name", "manufacturer")
    category_field: ClassVar[str | None] = None

    id: str | None
    vaccine_name: str
    administered_on: date
    manufacturer: str | None = None
    lot_number: str | None = None
    provider_name: str | None = None
    next_dose_due: date | None = None
    notes: str | None = None


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Medication:
    """Prescription or over-the-counter medication."""

    kind: ClassVar[str] = "medication"
    table: ClassVar[str] = "medications"
    sort_field: ClassVar[str] = "start_on"
    search_fields: ClassVar[tuple[str, ...]] = (
        "name",
        "pharmacy",
        "prescribing_provider",
    )
    category_field: ClassVar[str | None] = "status"

    id: str | None
    name: str
    dosage: str
    frequency: str
    status: str = "active"
    prescribing_provider: str | None = None
    pharmacy: str | None = None
    start_on: date | None = None
    end_on: date | None = None
    refills_remaining: int | None = None
    next_refill_on: date | None = None
    side_effects: str | None = None
    notes: str | None = None


@dataclass(slots=True)
class EmergencyContact:
    """Person to reach in an emergency; lower ``priority`` is reached first."""

    kind: ClassVar[str] = "emergency_contact"
    table: ClassVar[str] = "emergency_contacts"
    sort_field: ClassVar[str] = "priority"
    search_fields: ClassVar[tuple[str, ...]] = ("name", "relationship")
    category_field: ClassVar[str | None] = None

    id: str | None
    name: str
    relationship: str
    phone: str
    priority: int = 0
    alternate_phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None


@dataclass(slots=True)
class JournalEntry:
    """Dated personal journal entry."""

    kind: ClassVar[str] = "journal_entry"
    table: ClassVar[str] = "journal_entries"
    sort_field: ClassVar[str] = "written_on"
    search_fields: ClassVar[tuple[str, ...]] = ("title", "content", "mood", "tags")
    category_field: ClassVar[str | None] = "tags"

    id: str | None
    title: str
    content: str
    written_on: date
    mood: str | None = None
    tags: tuple[str, ...] = ()
    images: tuple[str, ...] = ()


@dataclass(slots=True)
class LegacyNote:
    """Wishes, values and advice left for family."""

    kind: ClassVar[str] = "legacy_note"
    table: ClassVar[str] = "legacy_notes"
    sort_field: ClassVar[str] = "written_on"
    search_fields: ClassVar[tuple[str, ...]] = ("title", "content", "tags")
    category_field: ClassVar[str | None] = "category"

    id: str | None
    title: str
    content: str
    written_on: date
    category: str = "wishes"
    tags: tuple[str, ...] = ()
    is_private: bool = False
    is_important: bool = False


@dataclass(slots=True)
class ScheduledMessage:
    """Letter written now and delivered to its recipient on a later date."""

    kind: ClassVar[str] = "letter"
    table: ClassVar[str] = "letters"
    sort_field: ClassVar[str] = "authored_on"
    search_fields: ClassVar[tuple[str, ...]] = ("recipient", "subject", "content")
    category_field: ClassVar[str | None] = "status"

    id: str | None
    recipient: str
    subject: str
    content: str
    authored_on: date | None
    status: str = "draft"
    delivery_on: date | None = None


@dataclass(slots=True)
class DocumentChapter:
    """Chapter of the memory book; ``order`` defines the reading sequence."""

    kind: ClassVar[str] = "memory_book_chapter"
    table: ClassVar[str] = "memory_book_chapters"
    sort_field: ClassVar[str] = "order"
    search_fields: ClassVar[tuple[str, ...]] = ("title", "description")
    category_field: ClassVar[str | None] = None

    id: str | None
    title: str
    order: int
    description: str | None = None


@dataclass(slots=True)
class DocumentPage:
    """Memory book page numbered on a counter shared by every chapter."""

    kind: ClassVar[str] = "memory_book_page"
    table: ClassVar[str] = "memory_book_pages"
    sort_field: ClassVar[str] = "page_number"
    search_fields: ClassVar[tuple[str, ...]] = ("title", "content")
    category_field: ClassVar[str | None] = "chapter_id"

    id: str | None
    title: str
    content: str
    occurred_on: date | None
    chapter_id: str
    page_number: int
    images: tuple[str, ...] = ()


Record = (
    Appointment
    | Immunization
    | Medication
    | EmergencyContact
    | JournalEntry
    | LegacyNote
    | ScheduledMessage
    | DocumentChapter
    | DocumentPage
)

RECORD_TYPES: dict[str, type[Record]] = {
    record_type.kind: record_type
    for record_type in (
        Appointment,
        Immunization,
        Medication,
        EmergencyContact,
        JournalEntry,
        LegacyNote,
        ScheduledMessage,
        DocumentChapter,
        DocumentPage,
    )
}


__all__ = [
    "APPOINTMENT_STATUSES",
    "LETTER_STATUSES",
    "MEDICATION_FREQUENCIES",
    "MEDICATION_STATUSES",
    "NOTE_CATEGORIES",
    "RECORD_TYPES",
    "Appointment",
    "DocumentChapter",
    "DocumentPage",
    "EmergencyContact",
    "Immunization",
    "JournalEntry",
    "LegacyNote",
    "Medication",
    "Record",
    "ScheduledMessage",
]
