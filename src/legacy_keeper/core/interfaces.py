"""Protocol interfaces and the error taxonomy shared by every component."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar

from .models import Record

RecordT = TypeVar("RecordT", bound=Record)


class RecordError(Exception):
    """Base exception for record organisation failures."""


class ValidationError(RecordError, ValueError):
    """Raised when a record or a requested transition breaks a rule."""


class RecordNotFoundError(RecordError, LookupError):
    """Raised when an operation targets an id that does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        """Remember which record was missing."""
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class StorageError(RecordError, RuntimeError):
    """Raised when the backing store fails to read or write."""


class RecordStore(Protocol):
    """Table store scoped to a single owning user."""

    owner_id: str

    def list_records(
        self, record_type: type[RecordT], **filters: Any
    ) -> list[RecordT]:
        """Return records of ``record_type`` matching equality ``filters``."""
        raise NotImplementedError

    def fetch_record(self, record_type: type[RecordT], record_id: str) -> RecordT | None:
        """Return one record by id, or ``None`` when absent."""
        raise NotImplementedError

    def insert_record(self, record: RecordT) -> RecordT:
        """Persist a new record and return it with its assigned id."""
        raise NotImplementedError

    def update_record(
        self, record_type: type[RecordT], record_id: str, patch: Mapping[str, Any]
    ) -> RecordT:
        """Apply ``patch`` in a single write and return the stored record."""
        raise NotImplementedError

    def delete_record(self, record_type: type[Record], record_id: str) -> bool:
        """Remove a record. Returns ``True`` if something was deleted."""
        raise NotImplementedError

    def close(self) -> None:
        """Release connections if necessary."""
        raise NotImplementedError


__all__ = [
    "RecordError",
    "RecordNotFoundError",
    "RecordStore",
    "StorageError",
    "ValidationError",
]
