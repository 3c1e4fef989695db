"""Disk-backed schedule cache with stale-while-revalidate reads.

One entry per date key (YYYY-MM-DD), each stamped with its fetch time.
Every set/clear rewrites the whole file. Only one process may use a cache
file at a time: read-modify-write is not atomic across processes.
"""

import json
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from src.magister.logging import get_logger
from src.magister.models import CachedSchedule, CacheEntry, ScheduleEntry

log = get_logger(__name__)

CACHE_TTL_MS = 5 * 60 * 1000  # 5 minutes

_store_adapter = TypeAdapter(dict[str, CacheEntry])


class ScheduleCache:
    """Maps date keys to the entries of their latest fetch."""

    def __init__(self, path: Path, clock: Callable[[], float] = time.time) -> None:
        """Initialize the cache and load any persisted entries.

        Args:
            path: JSON file the cache is persisted to.
            clock: Returns the current time in epoch seconds.
        """
        self.path = Path(path)
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._load()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            self._store = _store_adapter.validate_json(self.path.read_bytes())
            log.info("cache_loaded", path=str(self.path), dates=len(self._store))
        except (OSError, ValidationError) as e:
            log.warning("cache_load_failed", path=str(self.path), error=str(e))
            self._store = {}

    def _save(self) -> None:
        payload = {
            key: entry.model_dump(mode="json", by_alias=True)
            for key, entry in self._store.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            log.warning("cache_save_failed", path=str(self.path), error=str(e))

    def get(self, date_key: str) -> CachedSchedule | None:
        """Look up a date.

        Returns:
            The cached entries with their staleness, or None on a miss.
            A stale hit still returns the stored entries.
        """
        entry = self._store.get(date_key)
        if entry is None:
            return None
        age_ms = self._now_ms() - entry.fetched_at_epoch_ms
        return CachedSchedule(entries=list(entry.entries), is_stale=age_ms > CACHE_TTL_MS)

    def set(self, date_key: str, entries: Sequence[ScheduleEntry]) -> None:
        """Replace the entry for a date and persist."""
        self._store[date_key] = CacheEntry(
            entries=list(entries), fetched_at_epoch_ms=self._now_ms()
        )
        self._save()

    def clear(self) -> None:
        """Drop every entry and persist the empty cache."""
        self._store = {}
        self._save()
        log.info("cache_cleared", path=str(self.path))

    def __len__(self) -> int:
        return len(self._store)
