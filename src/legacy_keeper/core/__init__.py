"""Core utilities for configuration, logging, models and error types."""

from .config import AppSettings, StorageSettings, load_app_settings
from .interfaces import (
    RecordError,
    RecordNotFoundError,
    RecordStore,
    StorageError,
    ValidationError,
)
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "RecordError",
    "RecordNotFoundError",
    "RecordStore",
    "StorageError",
    "StorageSettings",
    "ValidationError",
    "configure_logging",
    "load_app_settings",
]
