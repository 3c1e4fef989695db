"""ScheduleFetcher - one day's lessons, from the API or the rendered agenda.

Primary tier: GET /api/personen/{id}/afspraken for a single day. Any failure
there (HTTP error, transport error) switches to the agenda page without
retrying the API. Only API results are written to the cache; the agenda
fallback yields subject-only entries.
"""

from datetime import date, datetime, tzinfo
from typing import Any

from playwright.async_api import Error as PlaywrightError, Page

from src.magister import api
from src.magister.cache import ScheduleCache
from src.magister.errors import TransientUIError, UpstreamAPIError
from src.magister.logging import get_logger
from src.magister.models import ScheduleEntry
from src.magister.pages.agenda import AgendaPage

log = get_logger(__name__)

# Appointment Status value for a cancelled lesson.
STATUS_CANCELLED = 5


def _local_time(value: str | None, tz: tzinfo) -> str:
    """Render an ISO timestamp as HH:MM in the given timezone ('' if absent)."""
    if not value:
        return ""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        log.debug("unparseable_timestamp", value=value)
        return ""
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz)
    return moment.strftime("%H:%M")


def _first_name(records: Any) -> str | None:
    if isinstance(records, list) and records and isinstance(records[0], dict):
        return records[0].get("Naam") or None
    return None


def parse_appointment(appt: dict[str, Any], tz: tzinfo) -> ScheduleEntry:
    """Map one raw afspraak record to a ScheduleEntry."""
    return ScheduleEntry(
        start_time=_local_time(appt.get("Start"), tz),
        end_time=_local_time(appt.get("Einde"), tz),
        subject=appt.get("Omschrijving") or _first_name(appt.get("Vakken")) or "Unknown",
        teacher=_first_name(appt.get("Docenten")),
        location=_first_name(appt.get("Lokalen")) or appt.get("Lokatie") or None,
        cancelled=bool(
            appt.get("Status") == STATUS_CANCELLED
            or appt.get("Uitval")
            or appt.get("Vervallen")
        ),
        description=appt.get("Inhoud") or None,
    )


class ScheduleFetcher:
    """Fetches a day's schedule for a resolved subject."""

    def __init__(self, base_url: str, tz: tzinfo, cache: ScheduleCache | None = None) -> None:
        """Initialize ScheduleFetcher.

        Args:
            base_url: School portal URL, e.g. https://myschool.magister.net.
            tz: Timezone lesson times are rendered in.
            cache: Receives successful API results.
        """
        self.base_url = base_url
        self.tz = tz
        self.cache = cache

    async def fetch(
        self, page: Page, day: date, subject_id: int, token: str | None
    ) -> list[ScheduleEntry]:
        """Fetch the lessons of one day, falling back to the agenda page.

        Args:
            page: Logged-in page on the school domain.
            day: Calendar date to fetch.
            subject_id: Student whose schedule is read.
            token: Bearer token, if one was captured.

        Returns:
            Entries in upstream order.
        """
        date_key = day.isoformat()
        path = api.APPOINTMENTS_PATH.format(subject_id=subject_id, start=date_key, end=date_key)
        log.info("schedule_fetch_started", date=date_key, subject_id=subject_id)

        try:
            data = await api.get_json(page, path, token)
        except UpstreamAPIError as e:
            log.warning("schedule_api_failed", date=date_key, status=e.status, fallback="agenda")
            return await self.fetch_from_agenda(page, day)

        entries = [
            parse_appointment(appt, self.tz)
            for appt in api.items_of(data)
            if isinstance(appt, dict)
        ]
        if self.cache is not None:
            self.cache.set(date_key, entries)
        log.info("schedule_fetched", date=date_key, entries=len(entries), source="api")
        return entries

    async def fetch_from_agenda(self, page: Page, day: date) -> list[ScheduleEntry]:
        """Best-effort degraded result from the rendered agenda.

        Raises:
            TransientUIError: If the agenda page cannot be loaded or read.
        """
        log.info("agenda_fallback_started", date=day.isoformat())
        agenda = AgendaPage(page)
        try:
            await agenda.navigate(self.base_url)
            return await agenda.extract_entries()
        except PlaywrightError as e:
            log.error("agenda_fallback_failed", date=day.isoformat(), error=str(e))
            raise TransientUIError(f"Agenda page could not be read: {e}") from e
