"""Parsing of the date argument accepted by the schedule tools."""

from datetime import date, datetime, timedelta, tzinfo

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def today_in(tz: tzinfo) -> date:
    """Current calendar date in the school's timezone, not the host's."""
    return datetime.now(tz).date()


def parse_date(value: str, today: date | None = None) -> date:
    """Resolve a tool date argument to a calendar date.

    Accepts "today", "tomorrow", an English weekday name (the next occurrence,
    1-7 days ahead, never today itself), or an ISO date such as "2026-10-19".

    Args:
        value: The raw argument.
        today: Reference date (default: date.today()).

    Raises:
        ValueError: If the value cannot be parsed as a date.
    """
    if today is None:
        today = date.today()
    text = value.strip().lower()

    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)
    if text in WEEKDAYS:
        days_ahead = WEEKDAYS.index(text) - today.weekday()
        if days_ahead <= 0:
            days_ahead += 7
        return today + timedelta(days=days_ahead)

    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        raise ValueError(
            f"Invalid date {value!r}: use today, tomorrow, a weekday name or YYYY-MM-DD"
        ) from None
