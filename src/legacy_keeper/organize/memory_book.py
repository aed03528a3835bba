"""Page ordering and navigation for the memory book.

Pages live in one arena numbered by a single counter shared across chapters:
a new page always gets ``1 + max(page_number)`` whatever chapter it belongs
to. Chapters only provide a secondary index used to group pages for display.
Navigation walks the arena, so "next page" can cross into another chapter.
Deleting pages or chapters never renumbers what is left.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from legacy_keeper.core.interfaces import (
    RecordNotFoundError,
    RecordStore,
    ValidationError,
)
from legacy_keeper.core.models import DocumentChapter, DocumentPage

from .validation import validate_record

LOGGER = logging.getLogger(__name__)

_EDITABLE_PAGE_FIELDS = frozenset(
    {"title", "content", "occurred_on", "chapter_id", "images"}
)


@dataclass(frozen=True, slots=True)
class AdjacentPages:
    """Pages either side of the current one; ``None`` at the ends of the book."""

    previous: DocumentPage | None
    next: DocumentPage | None


@dataclass(frozen=True, slots=True)
class BookIndex:
    """All pages in reading order plus the chapter grouping used for display."""

    chapters: tuple[DocumentChapter, ...]
    pages: tuple[DocumentPage, ...]
    chapter_pages: Mapping[str, tuple[str, ...]]

    def pages_for(self, chapter_id: str) -> tuple[DocumentPage, ...]:
        """Return the pages filed under ``chapter_id`` in page order."""
        wanted = set(self.chapter_pages.get(chapter_id, ()))
        return tuple(page for page in self.pages if page.id in wanted)


@dataclass(frozen=True, slots=True)
class BookSummary:
    """Counts shown alongside the book."""

    chapter_count: int
    page_count: int
    image_count: int
    latest_memory_on: date | None


def next_page_number(pages: Iterable[DocumentPage]) -> int:
    """Return the number for a new page: one past the highest in the book."""
    return 1 + max((page.page_number for page in pages), default=0)


def next_chapter_order(chapters: Iterable[DocumentChapter]) -> int:
    """Return the reading position for a new chapter."""
    return 1 + max((chapter.order for chapter in chapters), default=0)


def in_page_order(pages: Iterable[DocumentPage]) -> list[DocumentPage]:
    """Return ``pages`` sorted by page number."""
    return sorted(pages, key=lambda page: page.page_number)


def in_reading_order(chapters: Iterable[DocumentChapter]) -> list[DocumentChapter]:
    """Return ``chapters`` sorted by their order."""
    return sorted(chapters, key=lambda chapter: chapter.order)


def adjacent_pages(pages: Sequence[DocumentPage], page_id: str) -> AdjacentPages:
    """Return the pages before and after ``page_id`` across the whole book."""
    ordered = in_page_order(pages)
    for position, page in enumerate(ordered):
        if page.id == page_id:
            previous = ordered[position - 1] if position > 0 else None
            following = ordered[position + 1] if position + 1 < len(ordered) else None
            return AdjacentPages(previous=previous, next=following)
    raise RecordNotFoundError(DocumentPage.kind, page_id)


def pages_in_chapter(
    pages: Iterable[DocumentPage], chapter_id: str
) -> list[DocumentPage]:
    """Return the pages of one chapter in page order."""
    return in_page_order(page for page in pages if page.chapter_id == chapter_id)


def index_book(
    chapters: Iterable[DocumentChapter], pages: Iterable[DocumentPage]
) -> BookIndex:
    """Build the arena and the chapter → page id index.

    Chapters without pages map to an empty tuple. Pages whose chapter is
    missing stay in the arena but are not listed under any chapter.
    """
    ordered_chapters = tuple(in_reading_order(chapters))
    ordered_pages = tuple(in_page_order(pages))
    grouped: dict[str, list[str]] = {
        str(chapter.id): [] for chapter in ordered_chapters
    }
    for page in ordered_pages:
        members = grouped.get(page.chapter_id)
        if members is None:
            LOGGER.warning(
                "Page %s references unknown chapter %s", page.id, page.chapter_id
            )
            continue
        members.append(str(page.id))
    return BookIndex(
        chapters=ordered_chapters,
        pages=ordered_pages,
        chapter_pages={key: tuple(ids) for key, ids in grouped.items()},
    )


def summarize_book(
    chapters: Sequence[DocumentChapter], pages: Sequence[DocumentPage]
) -> BookSummary:
    """Count chapters, pages and images and find the most recent memory."""
    dates = [page.occurred_on for page in pages if page.occurred_on is not None]
    return BookSummary(
        chapter_count=len(chapters),
        page_count=len(pages),
        image_count=sum(len(page.images) for page in pages),
        latest_memory_on=max(dates, default=None),
    )


def _require_chapter(chapters: Iterable[DocumentChapter], chapter_id: str) -> None:
    if not any(chapter.id == chapter_id for chapter in chapters):
        raise ValidationError(f"Chapter '{chapter_id}' does not exist")


class MemoryBookService:
    """Create, edit and navigate memory book chapters and pages."""

    def __init__(self, store: RecordStore) -> None:
        """Keep the store every operation reads from and writes to."""
        self._store = store

    def chapters(self) -> list[DocumentChapter]:
        """Return chapters in reading order."""
        return in_reading_order(self._store.list_records(DocumentChapter))

    def pages(self) -> list[DocumentPage]:
        """Return every page in page order."""
        return in_page_order(self._store.list_records(DocumentPage))

    def index(self) -> BookIndex:
        """Return the arena and chapter grouping for display."""
        return index_book(
            self._store.list_records(DocumentChapter),
            self._store.list_records(DocumentPage),
        )

    def summary(self) -> BookSummary:
        """Return counts for the whole book."""
        return summarize_book(
            self._store.list_records(DocumentChapter),
            self._store.list_records(DocumentPage),
        )

    def get_page(self, page_id: str) -> DocumentPage:
        """Return one page or raise :class:`RecordNotFoundError`."""
        page = self._store.fetch_record(DocumentPage, page_id)
        if page is None:
            raise RecordNotFoundError(DocumentPage.kind, page_id)
        return page

    def add_chapter(
        self, title: str, description: str | None = None
    ) -> DocumentChapter:
        """Append a chapter after the last one in reading order."""
        existing = self._store.list_records(DocumentChapter)
        chapter = validate_record(
            DocumentChapter(
                id=None,
                title=title,
                order=next_chapter_order(existing),
                description=description or None,
            )
        )
        stored = self._store.insert_record(chapter)
        LOGGER.info("Added chapter %s at position %s", stored.id, stored.order)
        return stored

    def delete_chapter(self, chapter_id: str) -> None:
        """Delete an empty chapter; remaining chapters keep their order."""
        if self._store.list_records(DocumentPage, chapter_id=chapter_id):
            raise ValidationError(
                f"Chapter '{chapter_id}' still has pages; move or delete them first"
            )
        if not self._store.delete_record(DocumentChapter, chapter_id):
            raise RecordNotFoundError(DocumentChapter.kind, chapter_id)
        LOGGER.info("Deleted chapter %s", chapter_id)

    def add_page(
        self,
        *,
        title: str,
        content: str,
        occurred_on: date | None,
        chapter_id: str,
        images: Sequence[str] = (),
    ) -> DocumentPage:
        """Add a page to a chapter, numbered after every existing page."""
        _require_chapter(self._store.list_records(DocumentChapter), chapter_id)
        page = validate_record(
            DocumentPage(
                id=None,
                title=title,
                content=content,
                occurred_on=occurred_on,
                chapter_id=chapter_id,
                page_number=next_page_number(self._store.list_records(DocumentPage)),
                images=tuple(images),
            )
        )
        stored = self._store.insert_record(page)
        LOGGER.info(
            "Added page %s as number %s in chapter %s",
            stored.id,
            stored.page_number,
            stored.chapter_id,
        )
        return stored

    def revise_page(self, page_id: str, changes: Mapping[str, Any]) -> DocumentPage:
        """Edit a page; its number never changes."""
        unknown = set(changes) - _EDITABLE_PAGE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot change page field(s): {', '.join(sorted(unknown))}"
            )
        page = self.get_page(page_id)
        values = dict(changes)
        if "images" in values:
            values["images"] = tuple(values["images"] or ())
        revised = validate_record(dataclasses.replace(page, **values))
        if revised.chapter_id != page.chapter_id:
            _require_chapter(
                self._store.list_records(DocumentChapter), revised.chapter_id
            )
        patch = {
            name: getattr(revised, name)
            for name in _EDITABLE_PAGE_FIELDS
            if getattr(revised, name) != getattr(page, name)
        }
        if not patch:
            return page
        return self._store.update_record(DocumentPage, page_id, patch)

    def delete_page(self, page_id: str) -> None:
        """Delete a page, leaving a gap in the numbering."""
        if not self._store.delete_record(DocumentPage, page_id):
            raise RecordNotFoundError(DocumentPage.kind, page_id)
        LOGGER.info("Deleted page %s", page_id)

    def navigate(self, page_id: str) -> AdjacentPages:
        """Return the neighbours of ``page_id`` in whole-book order."""
        return adjacent_pages(self._store.list_records(DocumentPage), page_id)


__all__ = [
    "AdjacentPages",
    "BookIndex",
    "BookSummary",
    "MemoryBookService",
    "adjacent_pages",
    "in_page_order",
    "in_reading_order",
    "index_book",
    "next_chapter_order",
    "next_page_number",
    "pages_in_chapter",
    "summarize_book",
]
