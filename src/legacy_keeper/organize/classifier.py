"""Bucket flat record collections into labelled display groups.

Every rule is stable: records keep their input order inside a bucket. Buckets
without members are left out, so an empty collection yields an empty mapping.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from legacy_keeper.core.datetime_utils import month_label
from legacy_keeper.core.models import (
    Appointment,
    EmergencyContact,
    Immunization,
    Medication,
)

MORNING = "Morning"
AFTERNOON = "Afternoon"
EVENING = "Evening"

# Slots overlap: a once-daily dose is taken morning or evening, so it is
# listed under both.
TIME_SLOT_FREQUENCIES: Mapping[str, frozenset[str]] = {
    MORNING: frozenset(
        {"once_daily", "twice_daily", "three_times_daily", "four_times_daily"}
    ),
    AFTERNOON: frozenset({"twice_daily", "three_times_daily", "four_times_daily"}),
    EVENING: frozenset(
        {"once_daily", "twice_daily", "three_times_daily", "four_times_daily"}
    ),
}

PRIMARY = "Primary"
SECONDARY = "Secondary"
OTHER = "Other"

_PRIORITY_LABELS: Mapping[int, str] = {
    0: "Highest Priority",
    1: "High Priority",
    2: "Medium Priority",
}

_VACCINE_KEYWORDS: Mapping[str, tuple[str, ...]] = {
    "covid": ("covid",),
    "influenza": ("flu", "influenza"),
    "tetanus": ("tetanus", "tdap", "td"),
}


def group_by_calendar(
    appointments: Iterable[Appointment],
) -> dict[str, dict[int, list[Appointment]]]:
    """Group appointments by "Month Year" label, then by day of month.

    Months and days appear in order of first occurrence. Sort the input by
    ``scheduled_at`` first when the calendar must read chronologically.
    """
    grouped: dict[str, dict[int, list[Appointment]]] = {}
    for appointment in appointments:
        when = appointment.scheduled_at
        days = grouped.setdefault(month_label(when), {})
        days.setdefault(when.day, []).append(appointment)
    return grouped


def group_by_year(
    immunizations: Iterable[Immunization],
) -> dict[int, list[Immunization]]:
    """Group immunizations by the year administered, newest year first."""
    grouped: dict[int, list[Immunization]] = {}
    for immunization in immunizations:
        grouped.setdefault(immunization.administered_on.year, []).append(
            immunization
        )
    return {year: grouped[year] for year in sorted(grouped, reverse=True)}


def medication_schedule(
    medications: Iterable[Medication],
) -> dict[str, list[Medication]]:
    """Place active medications into every time-of-day slot they are taken in."""
    active = [medication for medication in medications if medication.status == "active"]
    schedule: dict[str, list[Medication]] = {}
    for slot, frequencies in TIME_SLOT_FREQUENCIES.items():
        members = [
            medication for medication in active if medication.frequency in frequencies
        ]
        if members:
            schedule[slot] = members
    return schedule


def contact_tier(priority: int) -> str:
    """Return the tier name for an emergency contact priority."""
    if priority == 0:
        return PRIMARY
    if priority == 1:
        return SECONDARY
    return OTHER


def contact_tiers(
    contacts: Iterable[EmergencyContact],
) -> dict[str, list[EmergencyContact]]:
    """Partition contacts into Primary, Secondary and Other tiers."""
    tiers: dict[str, list[EmergencyContact]] = {}
    for contact in contacts:
        tiers.setdefault(contact_tier(contact.priority), []).append(contact)
    return {tier: tiers[tier] for tier in (PRIMARY, SECONDARY, OTHER) if tier in tiers}


def priority_label(priority: int) -> str:
    """Return the descriptive label shown next to a contact."""
    return _PRIORITY_LABELS.get(priority, "Low Priority")


def split_upcoming(
    appointments: Iterable[Appointment], now: datetime
) -> tuple[list[Appointment], list[Appointment]]:
    """Split appointments into (upcoming, past).

    An appointment is upcoming only while it is still ``scheduled`` and later
    than ``now``; completed, cancelled and rescheduled ones count as past.
    """
    upcoming: list[Appointment] = []
    past: list[Appointment] = []
    for appointment in appointments:
        if appointment.status == "scheduled" and _is_after(
            appointment.scheduled_at, now
        ):
            upcoming.append(appointment)
        else:
            past.append(appointment)
    return upcoming, past


def vaccine_coverage(immunizations: Iterable[Immunization]) -> dict[str, bool]:
    """Report whether common vaccines appear anywhere in the history."""
    names = [immunization.vaccine_name.lower() for immunization in immunizations]
    return {
        vaccine: any(keyword in name for name in names for keyword in keywords)
        for vaccine, keywords in _VACCINE_KEYWORDS.items()
    }


def _is_after(value: datetime, reference: datetime) -> bool:
    # Mixed naive/aware comparisons raise, so align to the reference first.
    if value.tzinfo is None and reference.tzinfo is not None:
        value = value.replace(tzinfo=reference.tzinfo)
    elif value.tzinfo is not None and reference.tzinfo is None:
        value = value.astimezone().replace(tzinfo=None)
    return value > reference


__all__ = [
    "AFTERNOON",
    "EVENING",
    "MORNING",
    "OTHER",
    "PRIMARY",
    "SECONDARY",
    "TIME_SLOT_FREQUENCIES",
    "contact_tier",
    "contact_tiers",
    "group_by_calendar",
    "group_by_year",
    "medication_schedule",
    "priority_label",
    "split_upcoming",
    "vaccine_coverage",
]
