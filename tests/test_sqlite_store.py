"""Tests for the SQLite-backed record store."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from legacy_keeper.core.config import StorageSettings
from legacy_keeper.core.interfaces import (
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from legacy_keeper.core.models import (
    Appointment,
    DocumentChapter,
    DocumentPage,
    JournalEntry,
    LegacyNote,
    ScheduledMessage,
)
from legacy_keeper.storage import SqliteRecordStore


def _store(tmp_path: Path, owner_id: str = "tester") -> SqliteRecordStore:
    return SqliteRecordStore(
        StorageSettings(db_path=tmp_path / "records.db"), owner_id=owner_id
    )


def test_store_roundtrips_typed_fields(tmp_path: Path) -> None:
    entry = JournalEntry(
        id=None,
        title="Lake day",
        content="Swam before breakfast",
        written_on=date(2026, 7, 4),
        mood="happy",
        tags=("summer", "family"),
        images=("lake.jpg",),
    )
    with _store(tmp_path) as store:
        stored = store.insert_record(entry)
        fetched = store.fetch_record(JournalEntry, str(stored.id))

    assert stored.id
    assert fetched == stored
    assert fetched is not None and fetched.tags == ("summer", "family")


def test_store_roundtrips_datetimes_and_booleans(tmp_path: Path) -> None:
    when = datetime(2026, 11, 2, 9, 30, tzinfo=timezone.utc)
    with _store(tmp_path) as store:
        stored = store.insert_record(
            Appointment(id=None, scheduled_at=when, type="dental", reminder_sent=True)
        )
        fetched = store.fetch_record(Appointment, str(stored.id))

    assert fetched is not None
    assert fetched.scheduled_at == when
    assert fetched.reminder_sent is True


def test_records_are_scoped_to_their_owner(tmp_path: Path) -> None:
    note = LegacyNote(
        id=None, title="Roses", content="Water them", written_on=date(2026, 1, 1)
    )
    with _store(tmp_path, "alex") as alex_store:
        stored = alex_store.insert_record(note)

    with _store(tmp_path, "sam") as sam_store:
        assert sam_store.list_records(LegacyNote) == []
        assert sam_store.fetch_record(LegacyNote, str(stored.id)) is None
        assert sam_store.delete_record(LegacyNote, str(stored.id)) is False
        with pytest.raises(RecordNotFoundError):
            sam_store.update_record(LegacyNote, str(stored.id), {"title": "Mine"})

    with _store(tmp_path, "alex") as alex_store:
        assert [item.id for item in alex_store.list_records(LegacyNote)] == [stored.id]


def test_list_records_orders_by_sort_field_and_filters(tmp_path: Path) -> None:
    with _store(tmp_path) as store:
        later = store.insert_record(
            LegacyNote(
                id=None,
                title="Later",
                content="...",
                written_on=date(2026, 5, 1),
                category="advice",
            )
        )
        earlier = store.insert_record(
            LegacyNote(
                id=None, title="Earlier", content="...", written_on=date(2025, 5, 1)
            )
        )

        assert [item.id for item in store.list_records(LegacyNote)] == [
            earlier.id,
            later.id,
        ]
        assert [
            item.id for item in store.list_records(LegacyNote, category="advice")
        ] == [later.id]
        with pytest.raises(ValidationError):
            store.list_records(LegacyNote, owner_id="someone")


def test_update_record_applies_patch_in_one_write(tmp_path: Path) -> None:
    with _store(tmp_path) as store:
        letter = store.insert_record(
            ScheduledMessage(
                id=None,
                recipient="Maya",
                subject="Hello",
                content="...",
                authored_on=date(2026, 10, 1),
            )
        )
        updated = store.update_record(
            ScheduledMessage,
            str(letter.id),
            {"status": "scheduled", "delivery_on": date(2030, 1, 1)},
        )

    assert updated.status == "scheduled"
    assert updated.delivery_on == date(2030, 1, 1)


def test_scheduled_letter_without_date_is_rejected_by_schema(tmp_path: Path) -> None:
    with _store(tmp_path) as store:
        letter = store.insert_record(
            ScheduledMessage(
                id=None,
                recipient="Maya",
                subject="Hello",
                content="...",
                authored_on=date(2026, 10, 1),
            )
        )
        with pytest.raises(StorageError):
            store.update_record(ScheduledMessage, str(letter.id), {"status": "scheduled"})
        assert store.fetch_record(ScheduledMessage, str(letter.id)) == letter


def test_duplicate_page_number_is_a_storage_error(tmp_path: Path) -> None:
    with _store(tmp_path) as store:
        chapter = store.insert_record(DocumentChapter(id=None, title="One", order=1))
        page = DocumentPage(
            id=None,
            title="First",
            content="...",
            occurred_on=date(1990, 1, 1),
            chapter_id=str(chapter.id),
            page_number=1,
        )
        store.insert_record(page)
        with pytest.raises(StorageError):
            store.insert_record(page)
        assert len(store.list_records(DocumentPage)) == 1


def test_store_requires_owner(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _store(tmp_path, owner_id="")


def test_schema_is_created_with_indexes(tmp_path: Path) -> None:
    db_path = tmp_path / "records.db"
    with SqliteRecordStore(StorageSettings(db_path=db_path), owner_id="tester"):
        pass

    with sqlite3.connect(db_path) as conn:
        names = {
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('table', 'index')"
            )
        }
    assert {"letters", "memory_book_pages", "idx_letters_owner_status"} <= names
