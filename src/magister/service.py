"""ScheduleService - the four schedule queries on top of the cache and client.

Reads are stale-while-revalidate: a stale cache hit is answered at once and a
detached task refetches the day. Nobody awaits that task; its outcome only
reaches the cache, and its errors are logged.
"""

import asyncio
from collections.abc import Callable
from datetime import date, timedelta
from typing import Protocol

from src.magister.cache import ScheduleCache
from src.magister.logging import get_logger
from src.magister.models import ScheduleEntry

log = get_logger(__name__)

WEEK_DAYS = 7


class ScheduleSource(Protocol):
    async def fetch_schedule(self, day: date) -> list[ScheduleEntry]: ...


class ScheduleService:
    """Answers day, week, first-class and last-class queries."""

    def __init__(
        self,
        source: ScheduleSource,
        cache: ScheduleCache,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.source = source
        self.cache = cache
        self._today = today
        # Strong references keep detached refresh tasks alive until they finish
        self._refresh_tasks: set[asyncio.Task] = set()

    async def get_schedule(self, day: date) -> list[ScheduleEntry]:
        date_key = day.isoformat()
        cached = self.cache.get(date_key)
        if cached is not None:
            if not cached.is_stale:
                log.info("cache_hit", date=date_key, fresh=True)
                return cached.entries
            log.info("cache_hit", date=date_key, fresh=False, action="background_refresh")
            self._refresh_in_background(day)
            return cached.entries

        log.info("cache_miss", date=date_key)
        return await self.source.fetch_schedule(day)

    def _refresh_in_background(self, day: date) -> None:
        task = asyncio.create_task(self._refresh(day))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh(self, day: date) -> None:
        try:
            entries = await self.source.fetch_schedule(day)
            log.info("background_refresh_completed", date=day.isoformat(), entries=len(entries))
        except Exception as e:
            log.warning("background_refresh_failed", date=day.isoformat(), error=str(e))

    async def get_week_schedule(self) -> dict[str, list[ScheduleEntry]]:
        """Seven consecutive days starting today, fetched one after another."""
        start = self._today()
        week: dict[str, list[ScheduleEntry]] = {}
        for offset in range(WEEK_DAYS):
            day = start + timedelta(days=offset)
            week[day.isoformat()] = await self.get_schedule(day)
        return week

    async def get_first_class(self, day: date) -> ScheduleEntry | None:
        """First non-cancelled lesson, in upstream order.

        Upstream order is trusted to be chronological; entries are not
        re-sorted by start time.
        """
        active = [entry for entry in await self.get_schedule(day) if not entry.cancelled]
        return active[0] if active else None

    async def get_last_class(self, day: date) -> ScheduleEntry | None:
        """Last non-cancelled lesson, in upstream order."""
        active = [entry for entry in await self.get_schedule(day) if not entry.cancelled]
        return active[-1] if active else None
