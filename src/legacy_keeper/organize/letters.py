"""Delivery lifecycle for letters scheduled to reach someone later.

A letter starts as a ``draft``. It can be scheduled (which pins a delivery
date) or delivered straight away, and a scheduled letter can be delivered.
``delivered`` is terminal.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from legacy_keeper.core.datetime_utils import today as current_date
from legacy_keeper.core.interfaces import (
    RecordNotFoundError,
    RecordStore,
    ValidationError,
)
from legacy_keeper.core.models import ScheduledMessage

from .search import ALL_CATEGORIES, filter_records
from .validation import require_fields, validate_record

LOGGER = logging.getLogger(__name__)

DRAFT = "draft"
SCHEDULED = "scheduled"
DELIVERED = "delivered"

TRANSITIONS: Mapping[str, frozenset[str]] = {
    DRAFT: frozenset({SCHEDULED, DELIVERED}),
    SCHEDULED: frozenset({DELIVERED}),
    DELIVERED: frozenset(),
}

REQUIRED_FIELDS: tuple[str, ...] = ("recipient", "subject", "content", "authored_on")

_EDITABLE_FIELDS = frozenset(
    {"recipient", "subject", "content", "authored_on", "delivery_on", "status"}
)


def can_transition(current: str, target: str) -> bool:
    """Return whether ``current`` may move to ``target``."""
    return target in TRANSITIONS.get(current, frozenset())


def _check_transition(letter: ScheduledMessage, target: str) -> None:
    if not can_transition(letter.status, target):
        raise ValidationError(
            f"Cannot move letter from {letter.status} to {target}"
        )


def validate_new_letter(letter: ScheduledMessage) -> ScheduledMessage:
    """Validate a letter about to be created.

    Any status may be chosen at creation, including ``delivered`` for letters
    handed over outside the app. A letter created directly as ``scheduled``
    must already carry its delivery date; no default is applied here.
    """
    return validate_record(letter)


def schedule_letter(
    letter: ScheduledMessage,
    delivery_on: date | None = None,
    *,
    today: date | None = None,
) -> ScheduledMessage:
    """Return ``letter`` moved from draft to scheduled.

    The delivery date is ``delivery_on`` when given, otherwise the date the
    draft already carries, otherwise ``today``.
    """
    _check_transition(letter, SCHEDULED)
    require_fields(letter, REQUIRED_FIELDS)
    resolved = delivery_on or letter.delivery_on or today or current_date()
    return dataclasses.replace(letter, status=SCHEDULED, delivery_on=resolved)


def deliver_letter(letter: ScheduledMessage) -> ScheduledMessage:
    """Return ``letter`` marked delivered."""
    _check_transition(letter, DELIVERED)
    return dataclasses.replace(letter, status=DELIVERED)


def revise_letter(
    letter: ScheduledMessage, changes: Mapping[str, Any]
) -> ScheduledMessage:
    """Return ``letter`` with ``changes`` applied.

    Drafts can be edited freely. A scheduled letter keeps its delivery date
    unless ``changes`` sets one. Delivered letters are read-only, and a status
    change must be a permitted transition.
    """
    if letter.status == DELIVERED:
        raise ValidationError("Delivered letters cannot be edited")
    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown letter field(s): {', '.join(sorted(unknown))}")
    target = changes.get("status", letter.status)
    if target != letter.status:
        _check_transition(letter, target)
    return validate_record(dataclasses.replace(letter, **changes))


def transition_patch(
    before: ScheduledMessage, after: ScheduledMessage
) -> dict[str, Any]:
    """Return the persisted fields that differ between two versions."""
    return {
        field.name: getattr(after, field.name)
        for field in dataclasses.fields(after)
        if field.name != "id" and getattr(after, field.name) != getattr(before, field.name)
    }


class LetterService:
    """Apply lifecycle rules to letters held in a :class:`RecordStore`."""

    def __init__(self, store: RecordStore) -> None:
        """Keep the store every operation reads from and writes to."""
        self._store = store

    def search(
        self, query: str = "", status: str = ALL_CATEGORIES
    ) -> list[ScheduledMessage]:
        """Return stored letters filtered by text and status."""
        letters = self._store.list_records(ScheduledMessage)
        return filter_records(letters, query, status)

    def get(self, letter_id: str) -> ScheduledMessage:
        """Return a stored letter or raise :class:`RecordNotFoundError`."""
        letter = self._store.fetch_record(ScheduledMessage, letter_id)
        if letter is None:
            raise RecordNotFoundError(ScheduledMessage.kind, letter_id)
        return letter

    def create(self, letter: ScheduledMessage) -> ScheduledMessage:
        """Validate and insert a new letter."""
        stored = self._store.insert_record(validate_new_letter(letter))
        LOGGER.info("Created letter %s as %s", stored.id, stored.status)
        return stored

    def schedule(
        self, letter_id: str, delivery_on: date | None = None
    ) -> ScheduledMessage:
        """Schedule a draft, defaulting its delivery date to today."""
        letter = self.get(letter_id)
        return self._persist(letter, schedule_letter(letter, delivery_on))

    def deliver(self, letter_id: str) -> ScheduledMessage:
        """Mark a draft or scheduled letter delivered."""
        letter = self.get(letter_id)
        return self._persist(letter, deliver_letter(letter))

    def revise(self, letter_id: str, changes: Mapping[str, Any]) -> ScheduledMessage:
        """Edit a letter that has not been delivered."""
        letter = self.get(letter_id)
        return self._persist(letter, revise_letter(letter, changes))

    def delete(self, letter_id: str) -> None:
        """Delete a letter regardless of its status."""
        if not self._store.delete_record(ScheduledMessage, letter_id):
            raise RecordNotFoundError(ScheduledMessage.kind, letter_id)
        LOGGER.info("Deleted letter %s", letter_id)

    def _persist(
        self, before: ScheduledMessage, after: ScheduledMessage
    ) -> ScheduledMessage:
        patch = transition_patch(before, after)
        if not patch:
            return before
        # One update carries status and delivery date together.
        stored = self._store.update_record(
            ScheduledMessage, str(before.id), patch
        )
        LOGGER.info(
            "Letter %s is now %s (delivery %s)",
            stored.id,
            stored.status,
            stored.delivery_on,
        )
        return stored


__all__ = [
    "DELIVERED",
    "DRAFT",
    "LetterService",
    "SCHEDULED",
    "TRANSITIONS",
    "can_transition",
    "deliver_letter",
    "revise_letter",
    "schedule_letter",
    "transition_patch",
    "validate_new_letter",
]
