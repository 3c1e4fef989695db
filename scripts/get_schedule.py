"""Print a Magister schedule as JSON or a table, without the MCP server.

Standalone CLI script for checking login and schedule retrieval by hand.
Uses the same session and cache files as the server.

Run with: python scripts/get_schedule.py
Debug:    python scripts/get_schedule.py --headed --date tomorrow
Table:    python scripts/get_schedule.py --table --date friday
Weekly:   python scripts/get_schedule.py --week
Relogin:  python scripts/get_schedule.py --fresh-login

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.magister.cache import ScheduleCache  # noqa: E402
from src.magister.client import MagisterClient  # noqa: E402
from src.magister.config import get_settings  # noqa: E402
from src.magister.dates import parse_date, today_in  # noqa: E402
from src.magister.logging import setup_logging  # noqa: E402
from src.magister.models import ScheduleEntry  # noqa: E402
from src.magister.service import ScheduleService  # noqa: E402
from src.magister.session import SessionStore  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Get a Magister class schedule as JSON or table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Launch browser in headed mode (visible window).",
    )
    parser.add_argument(
        "--date",
        type=str,
        default="today",
        help="today, tomorrow, a weekday name or YYYY-MM-DD (default: today).",
    )
    parser.add_argument(
        "--week",
        action="store_true",
        help="Fetch the next 7 days instead of a single date.",
    )
    parser.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table instead of JSON.",
    )
    parser.add_argument(
        "--fresh-login",
        action="store_true",
        help="Discard the saved session and cache before starting.",
    )
    return parser.parse_args()


def _format_table(entries: list[ScheduleEntry]) -> str:
    """Format schedule entries as a human-readable table.

    Columns: Time | Subject | Teacher | Room | Status
    """
    if not entries:
        return "(no classes scheduled)"

    headers = ["Time", "Subject", "Teacher", "Room", "Status"]
    rows = [
        [
            f"{e.start_time}-{e.end_time}" if e.start_time else "?",
            e.subject,
            e.teacher or "-",
            e.location or "-",
            "cancelled" if e.cancelled else "",
        ]
        for e in entries
    ]

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows
    ]
    return "\n".join([header_line, separator, *row_lines])


def _to_json(entries: list[ScheduleEntry]) -> list[dict]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in entries]


async def main(args: argparse.Namespace) -> None:
    settings = get_settings()
    setup_logging(log_file=settings.log_file, log_level=settings.log_level)

    tz = settings.tzinfo()
    session_store = SessionStore(settings.auth_state_path)
    cache = ScheduleCache(settings.cache_path)
    if args.fresh_login:
        session_store.clear()
        cache.clear()

    client = MagisterClient(
        settings.client_config(),
        session_store,
        cache,
        tz=tz,
        headless=not args.headed,
        screenshot_dir=settings.screenshot_dir,
    )
    async with client:
        service = ScheduleService(client, cache, today=lambda: today_in(tz))
        if args.week:
            week = await service.get_week_schedule()
            if args.table:
                for date_key, entries in week.items():
                    print(f"== {date_key} ==")
                    print(_format_table(entries))
                    print()
            else:
                print(json.dumps({k: _to_json(v) for k, v in week.items()}, indent=2))
        else:
            day = parse_date(args.date, today_in(tz))
            entries = await service.get_schedule(day)
            if args.table:
                print(_format_table(entries))
            else:
                print(json.dumps(_to_json(entries), indent=2))


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
