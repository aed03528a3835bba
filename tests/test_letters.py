"""Tests for the letter delivery lifecycle."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from legacy_keeper.core.config import StorageSettings
from legacy_keeper.core.interfaces import RecordNotFoundError, ValidationError
from legacy_keeper.core.models import ScheduledMessage
from legacy_keeper.organize.letters import (
    LetterService,
    can_transition,
    deliver_letter,
    revise_letter,
    schedule_letter,
    transition_patch,
)
from legacy_keeper.storage import SqliteRecordStore


def _letter(**overrides: object) -> ScheduledMessage:
    values: dict[str, object] = {
        "id": "letter-1",
        "recipient": "Maya",
        "subject": "For your wedding day",
        "content": "I am so proud of you.",
        "authored_on": date(2026, 10, 1),
    }
    values.update(overrides)
    return ScheduledMessage(**values)  # type: ignore[arg-type]


def _service(tmp_path: Path) -> tuple[SqliteRecordStore, LetterService]:
    store = SqliteRecordStore(
        StorageSettings(db_path=tmp_path / "letters.db"), owner_id="tester"
    )
    return store, LetterService(store)


def test_transition_table() -> None:
    assert can_transition("draft", "scheduled")
    assert can_transition("draft", "delivered")
    assert can_transition("scheduled", "delivered")
    assert not can_transition("scheduled", "draft")
    assert not can_transition("delivered", "scheduled")
    assert not can_transition("delivered", "draft")


def test_schedule_defaults_delivery_to_today() -> None:
    scheduled = schedule_letter(_letter(), today=date(2026, 10, 18))

    assert scheduled.status == "scheduled"
    assert scheduled.delivery_on == date(2026, 10, 18)


def test_schedule_keeps_explicit_or_existing_delivery_date() -> None:
    explicit = schedule_letter(
        _letter(), date(2030, 6, 1), today=date(2026, 10, 18)
    )
    existing = schedule_letter(
        _letter(delivery_on=date(2029, 1, 1)), today=date(2026, 10, 18)
    )

    assert explicit.delivery_on == date(2030, 6, 1)
    assert existing.delivery_on == date(2029, 1, 1)


def test_schedule_rejects_non_draft() -> None:
    scheduled = _letter(status="scheduled", delivery_on=date(2030, 1, 1))
    with pytest.raises(ValidationError):
        schedule_letter(scheduled)
    with pytest.raises(ValidationError):
        schedule_letter(_letter(status="delivered"))


def test_schedule_requires_complete_letter() -> None:
    with pytest.raises(ValidationError):
        schedule_letter(_letter(subject="  "))


def test_deliver_from_draft_or_scheduled() -> None:
    assert deliver_letter(_letter()).status == "delivered"
    scheduled = _letter(status="scheduled", delivery_on=date(2030, 1, 1))
    delivered = deliver_letter(scheduled)
    assert delivered.status == "delivered"
    assert delivered.delivery_on == date(2030, 1, 1)
    with pytest.raises(ValidationError):
        deliver_letter(delivered)


def test_revise_rejects_delivered_and_backwards_moves() -> None:
    with pytest.raises(ValidationError):
        revise_letter(_letter(status="delivered"), {"content": "changed"})
    scheduled = _letter(status="scheduled", delivery_on=date(2030, 1, 1))
    with pytest.raises(ValidationError):
        revise_letter(scheduled, {"status": "draft"})
    with pytest.raises(ValidationError):
        revise_letter(_letter(), {"owner_id": "someone"})


def test_revise_scheduled_letter_keeps_delivery_date() -> None:
    scheduled = _letter(status="scheduled", delivery_on=date(2030, 1, 1))
    revised = revise_letter(scheduled, {"content": "Edited"})
    assert revised.content == "Edited"
    assert revised.delivery_on == date(2030, 1, 1)
    assert revised.status == "scheduled"


def test_transition_patch_lists_changed_fields_only() -> None:
    before = _letter()
    after = schedule_letter(before, today=date(2026, 10, 18))
    assert transition_patch(before, after) == {
        "status": "scheduled",
        "delivery_on": date(2026, 10, 18),
    }


def test_service_schedule_persists_status_and_date(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        created = service.create(_letter(id=None))
        assert created.id
        assert created.status == "draft"

        scheduled = service.schedule(str(created.id))

        assert scheduled.status == "scheduled"
        assert scheduled.delivery_on == date.today()
        stored = service.get(str(created.id))
        assert stored.status == "scheduled"
        assert stored.delivery_on == date.today()


def test_service_deliver_and_block_edits(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        created = service.create(_letter(id=None))
        service.schedule(str(created.id), date(2031, 5, 5))
        delivered = service.deliver(str(created.id))

        assert delivered.status == "delivered"
        assert delivered.delivery_on == date(2031, 5, 5)
        with pytest.raises(ValidationError):
            service.revise(str(created.id), {"subject": "New"})
        with pytest.raises(ValidationError):
            service.schedule(str(created.id))


def test_service_create_accepts_any_valid_status(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        with pytest.raises(ValidationError):
            service.create(_letter(id=None, status="scheduled"))
        assert service.search() == []

        handed_over = service.create(_letter(id=None, status="delivered"))

        assert handed_over.status == "delivered"
        with pytest.raises(ValidationError):
            service.revise(str(handed_over.id), {"content": "changed"})


def test_service_search_filters_by_text_and_status(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        wedding = service.create(_letter(id=None))
        graduation = service.create(
            _letter(id=None, recipient="Leo", subject="Graduation")
        )
        service.schedule(str(graduation.id), date(2030, 6, 1))

        assert [letter.id for letter in service.search("maya")] == [wedding.id]
        assert [letter.id for letter in service.search(status="scheduled")] == [
            graduation.id
        ]
        assert len(service.search()) == 2


def test_service_missing_letter(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        with pytest.raises(RecordNotFoundError):
            service.schedule("missing")
        with pytest.raises(RecordNotFoundError):
            service.delete("missing")


def test_failed_schedule_leaves_letter_unchanged(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        incomplete = store.insert_record(_letter(id=None, recipient=""))

        with pytest.raises(ValidationError):
            service.schedule(str(incomplete.id))

        stored = service.get(str(incomplete.id))
        assert stored.status == "draft"
        assert stored.delivery_on is None
