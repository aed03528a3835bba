"""FastAPI application exposing organised record views as JSON."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Any

from fastapi import Body, Depends, FastAPI, Header, Request, status as http_status
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.responses import Response

from legacy_keeper.core import AppSettings, load_app_settings
from legacy_keeper.core.datetime_utils import parse_date
from legacy_keeper.core.interfaces import (
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from legacy_keeper.core.models import (
    RECORD_TYPES,
    Appointment,
    DocumentChapter,
    DocumentPage,
    EmergencyContact,
    Immunization,
    Medication,
    Record,
    ScheduledMessage,
)
from legacy_keeper.core.serialization import (
    coerce_changes,
    record_from_payload,
    record_to_payload,
)
from legacy_keeper.organize import (
    ALL_CATEGORIES,
    LetterService,
    MemoryBookService,
    contact_tiers,
    distinct_tags,
    filter_records,
    group_by_calendar,
    group_by_year,
    medication_schedule,
    split_upcoming,
    validate_record,
    vaccine_coverage,
)
from legacy_keeper.organize.classifier import priority_label
from legacy_keeper.storage import SqliteRecordStore

LOGGER = logging.getLogger(__name__)

# Letters and memory book entries have their own endpoints so that lifecycle
# and numbering rules apply.
_MANAGED_KINDS = frozenset(
    {ScheduledMessage.kind, DocumentChapter.kind, DocumentPage.kind}
)


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings()
    app = FastAPI(title="Legacy Keeper")

    def get_store(
        x_owner_id: str | None = Header(default=None),
    ) -> Iterator[SqliteRecordStore]:
        owner_id = x_owner_id or app_settings.owner.user_id
        with SqliteRecordStore(app_settings.storage, owner_id) as store:
            yield store

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return _error_response(422, exc)

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(
        request: Request, exc: RecordNotFoundError
    ) -> JSONResponse:
        return _error_response(http_status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        LOGGER.error("Storage failure serving %s: %s", request.url.path, exc)
        return _error_response(http_status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    # Generic records ---------------------------------------------------------
    @app.get("/api/records/{kind}")
    async def list_records(
        kind: str,
        q: str = "",
        category: str = ALL_CATEGORIES,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """List records of one kind filtered by text and category."""
        records = store.list_records(_record_type(kind))
        matches = filter_records(records, q, category)
        return {
            "items": [record_to_payload(record) for record in matches],
            "total": len(records),
            "tags": distinct_tags(records),
            "filters": {"query": q, "category": category},
        }

    @app.post("/api/records/{kind}", status_code=http_status.HTTP_201_CREATED)
    async def create_record(
        kind: str,
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Validate and store a health, journal or note record."""
        record_type = _record_type(kind)
        if kind in _MANAGED_KINDS:
            raise ValidationError(f"Create {kind} records through their own endpoint")
        record = validate_record(record_from_payload(record_type, payload))
        return record_to_payload(store.insert_record(record))

    @app.delete("/api/records/{kind}/{record_id}")
    async def delete_record(
        kind: str,
        record_id: str,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> Response:
        """Delete a record of any kind except memory book entries."""
        record_type = _record_type(kind)
        if kind in {DocumentChapter.kind, DocumentPage.kind}:
            raise ValidationError("Delete memory book entries through /api/memory-book")
        if not store.delete_record(record_type, record_id):
            raise RecordNotFoundError(kind, record_id)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    # Health views ------------------------------------------------------------
    @app.get("/api/health/appointments")
    async def appointments_view(
        q: str = "",
        status: str = ALL_CATEGORIES,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Calendar grouping plus the upcoming/past split."""
        appointments = filter_records(store.list_records(Appointment), q, status)
        upcoming, past = split_upcoming(appointments, datetime.now().astimezone())
        calendar = group_by_calendar(appointments)
        return {
            "calendar": [
                {
                    "month": month,
                    "days": [
                        {
                            "day": day,
                            "appointments": [record_to_payload(item) for item in items],
                        }
                        for day, items in days.items()
                    ],
                }
                for month, days in calendar.items()
            ],
            "upcoming": [record_to_payload(item) for item in upcoming],
            "past": [record_to_payload(item) for item in past],
        }

    @app.get("/api/health/immunizations")
    async def immunizations_view(
        q: str = "",
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Immunizations grouped by year, newest first."""
        # Newest doses first within each year.
        immunizations = store.list_records(Immunization)[::-1]
        by_year = group_by_year(filter_records(immunizations, q))
        return {
            "years": [
                {"year": year, "items": [record_to_payload(item) for item in items]}
                for year, items in by_year.items()
            ],
            "coverage": vaccine_coverage(immunizations),
        }

    @app.get("/api/health/medications")
    async def medications_view(
        q: str = "",
        status: str = ALL_CATEGORIES,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Filtered medication list plus the daily schedule of active ones."""
        medications = store.list_records(Medication)
        return {
            "items": [
                record_to_payload(item)
                for item in filter_records(medications, q, status)
            ],
            "schedule": {
                slot: [record_to_payload(item) for item in items]
                for slot, items in medication_schedule(medications).items()
            },
        }

    @app.get("/api/health/contacts")
    async def contacts_view(
        q: str = "",
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Emergency contacts partitioned into priority tiers."""
        contacts = filter_records(store.list_records(EmergencyContact), q)
        return {
            "tiers": {
                tier: [_serialize_contact(contact) for contact in members]
                for tier, members in contact_tiers(contacts).items()
            }
        }

    # Letters -----------------------------------------------------------------
    @app.get("/api/letters")
    async def list_letters(
        q: str = "",
        status: str = ALL_CATEGORIES,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Letters filtered by text and status."""
        letters = LetterService(store).search(q, status)
        return {"items": [record_to_payload(letter) for letter in letters]}

    @app.post("/api/letters", status_code=http_status.HTTP_201_CREATED)
    async def create_letter(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Create a draft (or, with a delivery date, a scheduled) letter."""
        letter = record_from_payload(ScheduledMessage, payload)
        return record_to_payload(LetterService(store).create(letter))

    @app.patch("/api/letters/{letter_id}")
    async def revise_letter(
        letter_id: str,
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Edit a letter that has not been delivered."""
        changes = coerce_changes(ScheduledMessage, payload)
        return record_to_payload(LetterService(store).revise(letter_id, changes))

    @app.post("/api/letters/{letter_id}/schedule")
    async def schedule_letter(
        letter_id: str,
        payload: dict[str, Any] | None = Body(default=None),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Schedule a draft; the delivery date defaults to today."""
        delivery_on = _optional_date((payload or {}).get("deliveryOn"))
        return record_to_payload(LetterService(store).schedule(letter_id, delivery_on))

    @app.post("/api/letters/{letter_id}/deliver")
    async def deliver_letter(
        letter_id: str,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Mark a letter delivered."""
        return record_to_payload(LetterService(store).deliver(letter_id))

    # Memory book -------------------------------------------------------------
    @app.get("/api/memory-book")
    async def memory_book(
        q: str = "",
        chapter: str = ALL_CATEGORIES,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Chapters with their page ids, the filtered page list and counts."""
        service = MemoryBookService(store)
        index = service.index()
        summary = service.summary()
        pages = filter_records(list(index.pages), q, chapter)
        return {
            "chapters": [
                {
                    **record_to_payload(item),
                    "pageIds": list(index.chapter_pages.get(str(item.id), ())),
                }
                for item in index.chapters
            ],
            "pages": [record_to_payload(page) for page in pages],
            "summary": {
                "chapterCount": summary.chapter_count,
                "pageCount": summary.page_count,
                "imageCount": summary.image_count,
                "latestMemoryOn": (
                    summary.latest_memory_on.isoformat()
                    if summary.latest_memory_on
                    else None
                ),
            },
        }

    @app.post("/api/memory-book/chapters", status_code=http_status.HTTP_201_CREATED)
    async def add_chapter(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Append a chapter to the book."""
        chapter = MemoryBookService(store).add_chapter(
            title=str(payload.get("title") or ""),
            description=payload.get("description"),
        )
        return record_to_payload(chapter)

    @app.delete("/api/memory-book/chapters/{chapter_id}")
    async def delete_chapter(
        chapter_id: str,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> Response:
        """Delete a chapter that has no pages."""
        MemoryBookService(store).delete_chapter(chapter_id)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    @app.post("/api/memory-book/pages", status_code=http_status.HTTP_201_CREATED)
    async def add_page(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Add a page; it is numbered after every existing page."""
        page = MemoryBookService(store).add_page(
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            occurred_on=_optional_date(payload.get("occurredOn")),
            chapter_id=str(payload.get("chapterId") or ""),
            images=tuple(payload.get("images") or ()),
        )
        return record_to_payload(page)

    @app.get("/api/memory-book/pages/{page_id}")
    async def read_page(
        page_id: str,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Return a page with its neighbours in whole-book order."""
        service = MemoryBookService(store)
        page = service.get_page(page_id)
        neighbours = service.navigate(page_id)
        return {
            "page": record_to_payload(page),
            "previous": _page_link(neighbours.previous),
            "next": _page_link(neighbours.next),
        }

    @app.patch("/api/memory-book/pages/{page_id}")
    async def revise_page(
        page_id: str,
        payload: dict[str, Any] = Body(...),  # noqa: B008
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> dict[str, Any]:
        """Edit a page without changing its number."""
        changes = coerce_changes(DocumentPage, payload)
        return record_to_payload(MemoryBookService(store).revise_page(page_id, changes))

    @app.delete("/api/memory-book/pages/{page_id}")
    async def delete_page(
        page_id: str,
        store: SqliteRecordStore = Depends(get_store),  # noqa: B008
    ) -> Response:
        """Delete a page; remaining pages keep their numbers."""
        MemoryBookService(store).delete_page(page_id)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    _ensure_route_names(app)
    return app


def _ensure_route_names(app: FastAPI) -> None:
    """Assign names to routes if absent for better URL reversing."""
    for route in app.router.routes:
        if isinstance(route, APIRoute) and route.name is None:
            route.name = route.path_format.replace("/", ":") or "root"


def _record_type(kind: str) -> type[Record]:
    record_type = RECORD_TYPES.get(kind)
    if record_type is None:
        raise RecordNotFoundError("record kind", kind)
    return record_type


def _optional_date(raw: Any) -> Any:
    try:
        return parse_date(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid date {raw!r}") from exc


def _serialize_contact(contact: EmergencyContact) -> dict[str, Any]:
    return {**record_to_payload(contact), "priorityLabel": priority_label(contact.priority)}


def _page_link(page: DocumentPage | None) -> Mapping[str, Any] | None:
    if page is None:
        return None
    return {
        "id": page.id,
        "title": page.title,
        "pageNumber": page.page_number,
        "chapterId": page.chapter_id,
    }


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


__all__ = ["create_app"]
