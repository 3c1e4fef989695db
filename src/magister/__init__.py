"""Magister schedule client and MCP server.

Logs into a school's Magister portal with a headless browser, reads the
student's daily schedule (API first, rendered agenda as fallback) and serves
it to AI assistants as MCP tools.
"""

from src.magister.client import MagisterClient
from src.magister.models import MagisterConfig, ScheduleEntry
from src.magister.service import ScheduleService

__all__ = [
    "MagisterClient",
    "MagisterConfig",
    "ScheduleEntry",
    "ScheduleService",
]
