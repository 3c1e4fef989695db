"""Pydantic models for schedule, cache and session data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
On-disk JSON uses camelCase keys (startTime, fetchedAtEpochMs, subjectId, ...).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel


class ScheduleEntry(BaseModel):
    """A single lesson on a student's day schedule.

    Built from a Magister appointment record (afspraak), or from visible
    agenda text when the API is unavailable, in which case only subject and
    cancelled are known.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start_time: str = ""  # "08:30", empty when unknown
    end_time: str = ""
    subject: str
    teacher: str | None = None  # Docenten[0].Naam
    location: str | None = None  # Lokalen[0].Naam or Lokatie
    cancelled: bool = False
    description: str | None = None  # Inhoud (lesson content / homework)


class CacheEntry(BaseModel):
    """The result of exactly one fetch for one date."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entries: list[ScheduleEntry] = Field(default_factory=list)
    fetched_at_epoch_ms: int


class CachedSchedule(BaseModel):
    """What a cache read hands back: the entries and whether they are past TTL."""

    entries: list[ScheduleEntry]
    is_stale: bool


class SessionExtension(BaseModel):
    """Out-of-band login data stored next to the browser storage state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subject_id: int | None = None
    bearer_token: str | None = None
    saved_at: datetime


class SessionSnapshot(BaseModel):
    """Playwright storage state (cookies, origins) plus the extension record."""

    storage_state: dict[str, Any]
    extension: SessionExtension


class MagisterConfig(BaseModel):
    """Login configuration, supplied once and never logged."""

    model_config = ConfigDict(frozen=True)

    school: str
    username: str
    password: SecretStr

    @property
    def school_host(self) -> str:
        """Hostname of the school portal, e.g. 'myschool.magister.net'."""
        school = self.school.strip().lower()
        for prefix in ("https://", "http://"):
            if school.startswith(prefix):
                school = school[len(prefix):]
        school = school.split("/", 1)[0]
        if school.endswith(".magister.net"):
            school = school[: -len(".magister.net")]
        return f"{school}.magister.net"

    @property
    def base_url(self) -> str:
        return f"https://{self.school_host}"
