"""SQLite-backed record store implementation."""

from __future__ import annotations

import dataclasses
import json
import logging
import sqlite3
import typing
import uuid
from collections.abc import Mapping
from datetime import date, datetime
from pathlib import Path
from types import TracebackType
from typing import Any, TypeVar

from ..core.config import StorageSettings
from ..core.datetime_utils import serialize_date, serialize_datetime
from ..core.interfaces import (
    RecordNotFoundError,
    RecordStore,
    StorageError,
    ValidationError,
)
from ..core.models import Record
from ..core.serialization import coerce_value, field_types, strip_optional

LOGGER = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


class SqliteRecordStore(RecordStore):
    """Persist records for one owner using SQLite."""

    def __init__(self, settings: StorageSettings, owner_id: str) -> None:
        """Open the database and apply migrations."""
        if not owner_id:
            raise ValueError("owner_id is required")
        self.owner_id = owner_id
        self._settings = settings
        db_path = Path(settings.db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(
            db_path,
            check_same_thread=False,
        )
        self._connection.row_factory = sqlite3.Row
        self._enable_foreign_keys()
        self._apply_migrations()
        self._ensure_indexes()

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> SqliteRecordStore:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure the connection is closed when exiting context manager."""
        self.close()

    # RecordStore API ---------------------------------------------------------
    def list_records(
        self, record_type: type[RecordT], **filters: Any
    ) -> list[RecordT]:
        """Return the owner's records, optionally filtered by field equality."""
        columns = _column_names(record_type)
        unknown = set(filters) - set(columns)
        if unknown:
            raise ValidationError(
                f"Unknown {record_type.kind} filter(s): {', '.join(sorted(unknown))}"
            )
        where = ["owner_id = ?"]
        parameters: list[object] = [self.owner_id]
        for name, value in filters.items():
            where.append(f"{_quote(name)} = ?")
            parameters.append(_encode(value))
        query = (
            f"SELECT {_select_list(record_type)} FROM {_quote(record_type.table)} "
            f"WHERE {' AND '.join(where)} "
            f"ORDER BY {_quote(record_type.sort_field)} ASC, rowid ASC"
        )
        rows = self._execute(query, tuple(parameters)).fetchall()
        return [_decode_row(record_type, row) for row in rows]

    def fetch_record(self, record_type: type[RecordT], record_id: str) -> RecordT | None:
        """Return one of the owner's records by id."""
        query = (
            f"SELECT {_select_list(record_type)} FROM {_quote(record_type.table)} "
            "WHERE id = ? AND owner_id = ?"
        )
        row = self._execute(query, (record_id, self.owner_id)).fetchone()
        if row is None:
            return None
        return _decode_row(record_type, row)

    def insert_record(self, record: RecordT) -> RecordT:
        """Insert ``record``, assigning a fresh id when it has none."""
        record_type = type(record)
        stored = record if record.id else dataclasses.replace(record, id=uuid.uuid4().hex)
        columns = _column_names(record_type)
        values = [_encode(getattr(stored, name)) for name in columns]
        query = (
            f"INSERT INTO {_quote(record_type.table)} "
            f"(owner_id, {', '.join(_quote(name) for name in columns)}) "
            f"VALUES ({', '.join('?' for _ in range(len(columns) + 1))})"
        )
        LOGGER.debug("Inserting %s %s", record_type.kind, stored.id)
        self._write(query, (self.owner_id, *values), f"insert {record_type.kind}")
        return stored

    def update_record(
        self, record_type: type[RecordT], record_id: str, patch: Mapping[str, Any]
    ) -> RecordT:
        """Apply ``patch`` to one record in a single statement."""
        columns = _column_names(record_type)
        unknown = set(patch) - (set(columns) - {"id"})
        if unknown:
            raise ValidationError(
                f"Cannot update {record_type.kind} field(s): "
                f"{', '.join(sorted(unknown))}"
            )
        if not patch:
            current = self.fetch_record(record_type, record_id)
            if current is None:
                raise RecordNotFoundError(record_type.kind, record_id)
            return current
        assignments = ", ".join(f"{_quote(name)} = ?" for name in patch)
        query = (
            f"UPDATE {_quote(record_type.table)} SET {assignments} "
            "WHERE id = ? AND owner_id = ?"
        )
        parameters = (
            *(_encode(value) for value in patch.values()),
            record_id,
            self.owner_id,
        )
        LOGGER.debug(
            "Updating %s %s fields=%s", record_type.kind, record_id, sorted(patch)
        )
        updated = self._write(query, parameters, f"update {record_type.kind}")
        if updated == 0:
            raise RecordNotFoundError(record_type.kind, record_id)
        stored = self.fetch_record(record_type, record_id)
        if stored is None:
            raise RecordNotFoundError(record_type.kind, record_id)
        return stored

    def delete_record(self, record_type: type[Record], record_id: str) -> bool:
        """Delete one of the owner's records."""
        LOGGER.debug("Deleting %s %s", record_type.kind, record_id)
        query = f"DELETE FROM {_quote(record_type.table)} WHERE id = ? AND owner_id = ?"
        deleted = self._write(
            query, (record_id, self.owner_id), f"delete {record_type.kind}"
        )
        return deleted > 0

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        self._connection.close()

    # Internal helpers --------------------------------------------------------
    def _execute(self, query: str, parameters: tuple[object, ...]) -> sqlite3.Cursor:
        try:
            return self._connection.execute(query, parameters)
        except sqlite3.Error as exc:
            LOGGER.error("Database error reading records: %s", exc, exc_info=True)
            raise StorageError(f"Database error reading records: {exc}") from exc

    def _write(
        self, query: str, parameters: tuple[object, ...], action: str
    ) -> int:
        """Run one write inside a transaction and return the affected row count."""
        try:
            with self._connection:
                cur = self._connection.execute(query, parameters)
        except sqlite3.IntegrityError as exc:
            LOGGER.error(
                "Database integrity error during %s: %s", action, exc, exc_info=True
            )
            raise StorageError(f"Failed to {action}: {exc}") from exc
        except sqlite3.Error as exc:
            LOGGER.error(
                "Database error during %s: %s", action, exc, exc_info=True
            )
            raise StorageError(f"Database error during {action}: {exc}") from exc
        return cur.rowcount

    def _enable_foreign_keys(self) -> None:
        with self._connection:
            self._connection.execute("PRAGMA foreign_keys = ON")

    def _apply_migrations(self) -> None:
        schema_dir = Path(__file__).resolve().parent / "schema"
        for migration in sorted(schema_dir.glob("*.sql")):
            LOGGER.debug("Applying migration %s", migration.name)
            script = migration.read_text(encoding="utf-8")
            try:
                self._connection.executescript(script)
            except sqlite3.Error as exc:
                LOGGER.error("Migration %s failed: %s", migration.name, exc)
                raise StorageError(f"Migration {migration.name} failed: {exc}") from exc

    def _ensure_indexes(self) -> None:
        """Create supporting indexes that may be missing from older schemas."""
        index_statements = (
            "CREATE INDEX IF NOT EXISTS idx_appointments_owner_date ON appointments(owner_id, scheduled_at)",
            "CREATE INDEX IF NOT EXISTS idx_letters_owner_status ON letters(owner_id, status)",
            "CREATE INDEX IF NOT EXISTS idx_pages_owner_chapter ON memory_book_pages(owner_id, chapter_id, page_number)",
        )
        with self._connection:
            for statement in index_statements:
                self._connection.execute(statement)


def _column_names(record_type: type[Record]) -> tuple[str, ...]:
    return tuple(field_types(record_type))


def _select_list(record_type: type[Record]) -> str:
    return ", ".join(_quote(name) for name in _column_names(record_type))


def _quote(identifier: str) -> str:
    return f'"{identifier}"'


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return serialize_datetime(value)
    if isinstance(value, date):
        return serialize_date(value)
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (tuple, list)):
        return json.dumps(list(value))
    return value


def _decode(hint: Any, value: Any) -> Any:
    if typing.get_origin(strip_optional(hint)) is tuple:
        value = json.loads(value or "[]")
    return coerce_value(hint, value)


def _decode_row(record_type: type[RecordT], row: sqlite3.Row) -> RecordT:
    values = {
        name: _decode(hint, row[name])
        for name, hint in field_types(record_type).items()
    }
    return record_type(**values)


__all__ = ["SqliteRecordStore"]
