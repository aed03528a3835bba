"""Record organisation rules: bucketing, search, letters and the memory book."""

from .classifier import (
    contact_tiers,
    group_by_calendar,
    group_by_year,
    medication_schedule,
    split_upcoming,
    vaccine_coverage,
)
from .letters import LetterService
from .memory_book import AdjacentPages, BookIndex, MemoryBookService, adjacent_pages
from .search import ALL_CATEGORIES, distinct_tags, filter_records
from .validation import validate_record

__all__ = [
    "ALL_CATEGORIES",
    "AdjacentPages",
    "BookIndex",
    "LetterService",
    "MemoryBookService",
    "adjacent_pages",
    "contact_tiers",
    "distinct_tags",
    "filter_records",
    "group_by_calendar",
    "group_by_year",
    "medication_schedule",
    "split_upcoming",
    "validate_record",
    "vaccine_coverage",
]
