"""Persistence backends."""

from .sqlite import SqliteRecordStore

__all__ = ["SqliteRecordStore"]
