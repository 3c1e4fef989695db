import asyncio
from datetime import date, timedelta, timezone

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.magister.cache import ScheduleCache
from src.magister.errors import TransientUIError
from src.magister.fetcher import ScheduleFetcher, parse_appointment
from tests.fakes import BASE_URL, FakePage, failed, ok

DAY = date(2026, 10, 19)
SCHEDULE_PATH = "/api/personen/4321/afspraken?status=1&van=2026-10-19&tot=2026-10-19"

APPOINTMENTS = {
    "Items": [
        {
            "Start": "2026-10-19T08:30:00Z",
            "Einde": "2026-10-19T09:20:00Z",
            "Omschrijving": "Math",
            "Docenten": [{"Naam": "Jansen"}],
            "Lokalen": [{"Naam": "A12"}],
            "Status": 1,
        },
        {
            "Start": "2026-10-19T09:25:00Z",
            "Einde": "2026-10-19T10:15:00Z",
            "Omschrijving": "Dutch",
            "Lokatie": "B3",
            "Status": 1,
        },
    ]
}


def _fetcher(tmp_path):
    cache = ScheduleCache(tmp_path / "cache.json")
    return ScheduleFetcher(BASE_URL, timezone.utc, cache), cache


def test_api_appointments_are_mapped_in_order_and_cached(tmp_path):
    fetcher, cache = _fetcher(tmp_path)
    page = FakePage(api={SCHEDULE_PATH: ok(APPOINTMENTS)})

    entries = asyncio.run(fetcher.fetch(page, DAY, 4321, "tok"))

    assert [(e.start_time, e.end_time, e.subject) for e in entries] == [
        ("08:30", "09:20", "Math"),
        ("09:25", "10:15", "Dutch"),
    ]
    assert entries[0].teacher == "Jansen"
    assert entries[0].location == "A12"
    assert entries[1].location == "B3"
    assert not any(e.cancelled for e in entries)
    assert page.api_calls == [(SCHEDULE_PATH, "tok")]
    assert cache.get("2026-10-19").entries == entries


def test_bare_list_response_is_accepted(tmp_path):
    fetcher, _ = _fetcher(tmp_path)
    page = FakePage(api={SCHEDULE_PATH: ok(APPOINTMENTS["Items"])})

    entries = asyncio.run(fetcher.fetch(page, DAY, 4321, None))

    assert len(entries) == 2
    assert page.api_calls == [(SCHEDULE_PATH, "")]


def test_http_500_falls_back_to_agenda_text(tmp_path):
    fetcher, cache = _fetcher(tmp_path)
    page = FakePage(api={SCHEDULE_PATH: failed(500)})
    page.agenda_result = {
        "selector": ".agenda-item",
        "items": [
            {"text": "1 wi Jansen A12", "classes": ["agenda-item"]},
            {"text": "", "classes": ["agenda-item"]},
            {"text": "2 ne " + "x" * 200, "classes": ["agenda-item", "vervallen"]},
        ],
    }

    entries = asyncio.run(fetcher.fetch(page, DAY, 4321, "tok"))

    assert len(entries) == 2
    assert all(e.start_time == "" and e.end_time == "" for e in entries)
    assert all(e.subject for e in entries)
    assert entries[0].subject == "1 wi Jansen A12"
    assert len(entries[1].subject) == 100
    assert [e.cancelled for e in entries] == [False, True]
    assert page.visited == [f"{BASE_URL}/magister/#/agenda"]
    # Degraded results are not cached
    assert cache.get("2026-10-19") is None


def test_agenda_without_matches_yields_empty_schedule(tmp_path):
    fetcher, _ = _fetcher(tmp_path)
    page = FakePage(api={SCHEDULE_PATH: failed(401, "Unauthorized")})

    assert asyncio.run(fetcher.fetch(page, DAY, 4321, "expired")) == []


def test_agenda_navigation_failure_is_a_ui_error(tmp_path):
    class BrokenPage(FakePage):
        async def goto(self, url, **kwargs):
            raise PlaywrightTimeoutError("Timeout 30000ms exceeded")

    fetcher, _ = _fetcher(tmp_path)
    page = BrokenPage(api={SCHEDULE_PATH: failed(503)})

    with pytest.raises(TransientUIError):
        asyncio.run(fetcher.fetch(page, DAY, 4321, None))


@pytest.mark.parametrize(
    "record",
    [
        {"Status": 5},
        {"Uitval": True},
        {"Vervallen": True},
    ],
)
def test_cancellation_flags(record):
    assert parse_appointment({"Omschrijving": "Math", **record}, timezone.utc).cancelled


def test_subject_falls_back_to_vak_then_unknown():
    vak = parse_appointment({"Vakken": [{"Naam": "biologie"}]}, timezone.utc)
    unknown = parse_appointment({}, timezone.utc)

    assert vak.subject == "biologie"
    assert unknown.subject == "Unknown"
    assert unknown.start_time == ""
    assert unknown.end_time == ""
    assert unknown.teacher is None
    assert unknown.location is None
    assert unknown.cancelled is False


def test_times_are_rendered_in_configured_timezone():
    cest = timezone(timedelta(hours=2))
    entry = parse_appointment(
        {"Start": "2026-10-19T06:30:00.0000000Z", "Einde": "2026-10-19T07:20:00Z"}, cest
    )

    assert (entry.start_time, entry.end_time) == ("08:30", "09:20")
