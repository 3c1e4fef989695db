"""Plain-text rendering of schedules for the assistant."""

from collections.abc import Mapping, Sequence
from datetime import date

from src.magister.models import ScheduleEntry


def display_date(day: date) -> str:
    """'Mon Oct 19 2026'."""
    return day.strftime("%a %b %d %Y")


def format_entry(entry: ScheduleEntry) -> str:
    if entry.start_time and entry.end_time:
        time = f"{entry.start_time} - {entry.end_time}"
    else:
        time = "Time unknown"
    teacher = f" ({entry.teacher})" if entry.teacher else ""
    location = f" @ {entry.location}" if entry.location else ""
    status = " [CANCELLED]" if entry.cancelled else ""
    return f"{time}: {entry.subject}{teacher}{location}{status}"


def format_schedule(entries: Sequence[ScheduleEntry]) -> str:
    if not entries:
        return "No classes scheduled"
    return "\n".join(format_entry(entry) for entry in entries)


def format_day(day: date, entries: Sequence[ScheduleEntry]) -> str:
    return f"Schedule for {display_date(day)}:\n\n{format_schedule(entries)}"


def format_week(week: Mapping[str, Sequence[ScheduleEntry]]) -> str:
    parts = ["Week Schedule:\n\n"]
    for date_key, entries in week.items():
        day = date.fromisoformat(date_key)
        parts.append(f"=== {display_date(day)} ===\n{format_schedule(entries)}\n\n")
    return "".join(parts)


def format_first_class(day: date, entry: ScheduleEntry | None) -> str:
    if entry is None:
        return f"No classes scheduled for {display_date(day)}"
    location = f" @ {entry.location}" if entry.location else ""
    return f"First class on {display_date(day)}: {entry.subject} at {entry.start_time}{location}"


def format_last_class(day: date, entry: ScheduleEntry | None) -> str:
    if entry is None:
        return f"No classes scheduled for {display_date(day)}"
    location = f" @ {entry.location}" if entry.location else ""
    return f"Last class on {display_date(day)}: {entry.subject} ends at {entry.end_time}{location}"
