"""Command-line entry point for Legacy Keeper."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path

from legacy_keeper.core import (
    AppSettings,
    RecordError,
    configure_logging,
    load_app_settings,
)
from legacy_keeper.core.datetime_utils import display_date
from legacy_keeper.core.models import EmergencyContact, Immunization, Medication
from legacy_keeper.organize import (
    ALL_CATEGORIES,
    LetterService,
    MemoryBookService,
    contact_tiers,
    filter_records,
    group_by_year,
    medication_schedule,
)
from legacy_keeper.organize.classifier import priority_label
from legacy_keeper.storage import SqliteRecordStore

COMMANDS = (
    "info",
    "letters",
    "schedule-letter",
    "deliver-letter",
    "medications",
    "immunizations",
    "contacts",
    "book",
    "page",
)


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Legacy Keeper record organiser")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "--owner",
        default=None,
        help="Owner whose records are used (default: configured owner).",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=COMMANDS,
        help="Operation to execute.",
    )
    parser.add_argument(
        "record_id",
        nargs="?",
        default=None,
        help="Letter or page id for commands that act on one record.",
    )
    parser.add_argument(
        "--query",
        default="",
        help="Case-insensitive text filter for listings.",
    )
    parser.add_argument(
        "--status",
        default=ALL_CATEGORIES,
        help="Status filter for the letters command (default: all).",
    )
    parser.add_argument(
        "--chapter",
        default=ALL_CATEGORIES,
        help="Chapter id filter for the book command (default: all).",
    )
    parser.add_argument(
        "--on",
        dest="delivery_on",
        type=date.fromisoformat,
        default=None,
        help="Delivery date (YYYY-MM-DD) for schedule-letter; defaults to today.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return an exit code."""
    command = args.command
    if command == "info":
        print("Legacy Keeper is ready.")
        print(f"Database path: {settings.storage.db_path}")
        print(f"Owner: {args.owner or settings.owner.user_id}")
        return 0
    if command in {"schedule-letter", "deliver-letter", "page"} and not args.record_id:
        print(f"The {command} command needs a record id.")
        return 2

    owner_id = args.owner or settings.owner.user_id
    try:
        with SqliteRecordStore(settings.storage, owner_id) as store:
            if command == "letters":
                _run_letters(store, query=args.query, status=args.status)
            elif command == "schedule-letter":
                letter = LetterService(store).schedule(args.record_id, args.delivery_on)
                print(
                    f"Scheduled letter {letter.id} for {display_date(letter.delivery_on)}."
                )
            elif command == "deliver-letter":
                letter = LetterService(store).deliver(args.record_id)
                print(f"Marked letter {letter.id} as delivered.")
            elif command == "medications":
                _run_medications(store)
            elif command == "immunizations":
                _run_immunizations(store)
            elif command == "contacts":
                _run_contacts(store)
            elif command == "book":
                _run_book(store, query=args.query, chapter=args.chapter)
            elif command == "page":
                _run_page(store, args.record_id)
    except RecordError as exc:
        print(f"Error: {exc}")
        return 1
    return 0


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _run_letters(store: SqliteRecordStore, *, query: str, status: str) -> None:
    """List letters matching the filters."""
    letters = LetterService(store).search(query, status)
    if not letters:
        print("No letters found.")
        return
    header = f"{'ID':<32}  {'Status':<9}  {'Delivery':<12}  Recipient / Subject"
    print(header)
    print("-" * len(header))
    for letter in letters:
        delivery = display_date(letter.delivery_on) or "-"
        print(
            f"{str(letter.id):<32}  {letter.status:<9}  {delivery:<12}  "
            f"{letter.recipient} / {letter.subject}"
        )


def _run_medications(store: SqliteRecordStore) -> None:
    """Print the daily medication schedule."""
    schedule = medication_schedule(store.list_records(Medication))
    if not schedule:
        print("No active daily medications.")
        return
    for slot, medications in schedule.items():
        print(f"{slot}:")
        for medication in medications:
            print(f"  {medication.name} {medication.dosage}")


def _run_immunizations(store: SqliteRecordStore) -> None:
    """Print immunizations grouped by year."""
    by_year = group_by_year(store.list_records(Immunization))
    if not by_year:
        print("No immunizations recorded.")
        return
    for year, immunizations in by_year.items():
        print(f"{year}:")
        for immunization in immunizations:
            print(
                f"  {display_date(immunization.administered_on)}  "
                f"{immunization.vaccine_name}"
            )


def _run_contacts(store: SqliteRecordStore) -> None:
    """Print emergency contacts by tier."""
    tiers = contact_tiers(store.list_records(EmergencyContact))
    if not tiers:
        print("No emergency contacts.")
        return
    for tier, contacts in tiers.items():
        print(f"{tier}:")
        for contact in contacts:
            print(
                f"  {contact.name} ({contact.relationship}) {contact.phone} "
                f"- {priority_label(contact.priority)}"
            )


def _run_book(store: SqliteRecordStore, *, query: str, chapter: str) -> None:
    """Print the memory book, chapter by chapter."""
    service = MemoryBookService(store)
    index = service.index()
    if not index.chapters:
        print("The memory book has no chapters yet.")
        return
    for item in index.chapters:
        if chapter not in (ALL_CATEGORIES, item.id):
            continue
        print(f"{item.order}. {item.title}")
        for page in filter_records(list(index.pages_for(str(item.id))), query):
            print(f"    p{page.page_number}  {page.title}  ({page.id})")
    summary = service.summary()
    print(
        f"{summary.chapter_count} chapter(s), {summary.page_count} page(s), "
        f"{summary.image_count} image(s)"
    )


def _run_page(store: SqliteRecordStore, page_id: str) -> None:
    """Print one page with its neighbours in whole-book order."""
    service = MemoryBookService(store)
    page = service.get_page(page_id)
    neighbours = service.navigate(page_id)
    print(f"Page {page.page_number}: {page.title}")
    print(display_date(page.occurred_on) or "")
    print()
    print(page.content)
    print()
    previous = neighbours.previous
    following = neighbours.next
    print(f"Previous: {f'p{previous.page_number} {previous.title}' if previous else '-'}")
    print(f"Next: {f'p{following.page_number} {following.title}' if following else '-'}")


if __name__ == "__main__":
    main()
