"""Tests for memory book numbering, grouping and navigation."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from legacy_keeper.core.config import StorageSettings
from legacy_keeper.core.interfaces import RecordNotFoundError, ValidationError
from legacy_keeper.core.models import DocumentChapter, DocumentPage
from legacy_keeper.organize.memory_book import (
    MemoryBookService,
    adjacent_pages,
    index_book,
    next_chapter_order,
    next_page_number,
    pages_in_chapter,
    summarize_book,
)
from legacy_keeper.storage import SqliteRecordStore


def _page(record_id: str, number: int, chapter_id: str) -> DocumentPage:
    return DocumentPage(
        id=record_id,
        title=f"Page {number}",
        content="...",
        occurred_on=date(2000, 1, number),
        chapter_id=chapter_id,
        page_number=number,
    )


def _chapter(record_id: str, order: int) -> DocumentChapter:
    return DocumentChapter(id=record_id, title=record_id.title(), order=order)


def _service(tmp_path: Path) -> tuple[SqliteRecordStore, MemoryBookService]:
    store = SqliteRecordStore(
        StorageSettings(db_path=tmp_path / "book.db"), owner_id="tester"
    )
    return store, MemoryBookService(store)


def test_next_numbers_start_at_one_and_follow_the_maximum() -> None:
    assert next_page_number([]) == 1
    assert next_page_number([_page("a", 1, "c1"), _page("b", 4, "c2")]) == 5
    assert next_chapter_order([]) == 1
    assert next_chapter_order([_chapter("c1", 1), _chapter("c2", 3)]) == 4


def test_adjacent_pages_cross_chapter_boundaries() -> None:
    pages = [_page("p3", 3, "c1"), _page("p1", 1, "c1"), _page("p2", 2, "c2")]

    middle = adjacent_pages(pages, "p2")
    first = adjacent_pages(pages, "p1")
    last = adjacent_pages(pages, "p3")

    assert middle.previous is not None and middle.previous.id == "p1"
    assert middle.next is not None and middle.next.id == "p3"
    assert first.previous is None
    assert last.next is None


def test_adjacent_pages_single_page_and_unknown_id() -> None:
    only = adjacent_pages([_page("p1", 1, "c1")], "p1")
    assert only.previous is None and only.next is None
    with pytest.raises(RecordNotFoundError):
        adjacent_pages([_page("p1", 1, "c1")], "nope")


def test_index_book_groups_pages_and_keeps_empty_chapters() -> None:
    chapters = [_chapter("later", 2), _chapter("early", 1), _chapter("empty", 3)]
    pages = [
        _page("p2", 2, "later"),
        _page("p1", 1, "early"),
        _page("p3", 3, "early"),
        _page("stray", 4, "gone"),
    ]

    index = index_book(chapters, pages)

    assert [chapter.id for chapter in index.chapters] == ["early", "later", "empty"]
    assert [page.id for page in index.pages] == ["p1", "p2", "p3", "stray"]
    assert index.chapter_pages == {
        "early": ("p1", "p3"),
        "later": ("p2",),
        "empty": (),
    }
    assert [page.id for page in index.pages_for("early")] == ["p1", "p3"]
    assert index.pages_for("empty") == ()


def test_pages_in_chapter_are_in_page_order() -> None:
    pages = [_page("p5", 5, "c1"), _page("p2", 2, "c1"), _page("p3", 3, "c2")]
    assert [page.id for page in pages_in_chapter(pages, "c1")] == ["p2", "p5"]


def test_summarize_book_counts_images_and_latest_memory() -> None:
    pages = [
        DocumentPage(
            id="p1",
            title="Wedding",
            content="...",
            occurred_on=date(1975, 6, 14),
            chapter_id="c1",
            page_number=1,
            images=("a.jpg", "b.jpg"),
        ),
        _page("p2", 2, "c1"),
    ]

    summary = summarize_book([_chapter("c1", 1)], pages)

    assert summary.chapter_count == 1
    assert summary.page_count == 2
    assert summary.image_count == 2
    assert summary.latest_memory_on == date(2000, 1, 2)
    assert summarize_book([], []).latest_memory_on is None


def test_page_numbers_are_shared_across_chapters(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        childhood = service.add_chapter("Childhood")
        career = service.add_chapter("Career")
        assert (childhood.order, career.order) == (1, 2)

        first = service.add_page(
            title="First day of school",
            content="...",
            occurred_on=date(1956, 9, 3),
            chapter_id=str(childhood.id),
        )
        second = service.add_page(
            title="First job",
            content="...",
            occurred_on=date(1970, 2, 1),
            chapter_id=str(career.id),
        )
        third = service.add_page(
            title="Summer camp",
            content="...",
            occurred_on=date(1959, 7, 10),
            chapter_id=str(childhood.id),
        )

        assert [first.page_number, second.page_number, third.page_number] == [1, 2, 3]
        neighbours = service.navigate(str(second.id))
        assert neighbours.previous is not None
        assert neighbours.previous.id == first.id
        assert neighbours.next is not None
        assert neighbours.next.id == third.id

        index = service.index()
        assert index.chapter_pages[str(childhood.id)] == (first.id, third.id)


def test_deleting_pages_leaves_gaps(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        chapter = service.add_chapter("Family")
        pages = [
            service.add_page(
                title=f"Memory {number}",
                content="...",
                occurred_on=date(1980, 1, number),
                chapter_id=str(chapter.id),
            )
            for number in (1, 2, 3)
        ]

        service.delete_page(str(pages[1].id))
        remaining = service.pages()
        added = service.add_page(
            title="Memory 4",
            content="...",
            occurred_on=date(1980, 1, 4),
            chapter_id=str(chapter.id),
        )

        assert [page.page_number for page in remaining] == [1, 3]
        assert added.page_number == 4
        neighbours = service.navigate(str(pages[0].id))
        assert neighbours.next is not None and neighbours.next.id == pages[2].id


def test_add_page_requires_existing_chapter(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        with pytest.raises(ValidationError):
            service.add_page(
                title="Orphan",
                content="...",
                occurred_on=date(1990, 1, 1),
                chapter_id="missing",
            )


def test_delete_chapter_rules(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        full = service.add_chapter("Travel")
        empty = service.add_chapter("Hobbies")
        service.add_page(
            title="Paris",
            content="...",
            occurred_on=date(1988, 5, 1),
            chapter_id=str(full.id),
        )

        with pytest.raises(ValidationError):
            service.delete_chapter(str(full.id))
        service.delete_chapter(str(empty.id))
        with pytest.raises(RecordNotFoundError):
            service.delete_chapter(str(empty.id))

        assert [chapter.id for chapter in service.chapters()] == [full.id]
        assert service.add_chapter("Later").order == 2


def test_revise_page_keeps_number_and_can_move_chapter(tmp_path: Path) -> None:
    store, service = _service(tmp_path)
    with store:
        first = service.add_chapter("One")
        second = service.add_chapter("Two")
        page = service.add_page(
            title="Draft",
            content="...",
            occurred_on=date(1990, 1, 1),
            chapter_id=str(first.id),
            images=("photo.jpg", " "),
        )
        assert page.images == ("photo.jpg",)

        moved = service.revise_page(
            str(page.id), {"title": "Final", "chapter_id": str(second.id)}
        )

        assert moved.title == "Final"
        assert moved.chapter_id == second.id
        assert moved.page_number == page.page_number
        with pytest.raises(ValidationError):
            service.revise_page(str(page.id), {"page_number": 9})
        with pytest.raises(ValidationError):
            service.revise_page(str(page.id), {"chapter_id": "missing"})
