"""MCP server exposing the Magister schedule to AI assistants.

Usage:
    # Run the server (stdio transport)
    python -m src.magister.server

    # Or via entry point
    magister-mcp

Required environment: MAGISTER_SCHOOL, MAGISTER_USER, MAGISTER_PASS.

The browser session is created once in the server lifespan, logged in on the
first tool call, and closed when the server shuts down.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from functools import partial, wraps
from typing import TypeVar

from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

from src.magister.cache import ScheduleCache
from src.magister.client import MagisterClient
from src.magister.config import get_settings
from src.magister.dates import parse_date, today_in
from src.magister.errors import MagisterError
from src.magister.formatting import format_day, format_first_class, format_last_class, format_week
from src.magister.logging import get_logger, setup_logging
from src.magister.service import ScheduleService
from src.magister.session import SessionStore

log = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[CallToolResult]])


@dataclass
class AppContext:
    """Long-lived handles shared by every tool call."""

    client: MagisterClient
    service: ScheduleService
    today: Callable[[], date] = date.today

    async def ready_service(self) -> ScheduleService:
        """Return the service, logging in first if that has not happened yet.

        A failed login is raised to the calling tool; the next call tries again.
        """
        if not self.client.initialized:
            await self.client.init()
        return self.service


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    settings = get_settings()
    config = settings.client_config()
    tz = settings.tzinfo()
    today = partial(today_in, tz)
    cache = ScheduleCache(settings.cache_path)
    client = MagisterClient(
        config,
        SessionStore(settings.auth_state_path),
        cache,
        tz=tz,
        headless=settings.headless,
        screenshot_dir=settings.screenshot_dir,
    )
    log.info("server_started", school=config.school_host, timezone=settings.timezone)
    try:
        yield AppContext(
            client=client,
            service=ScheduleService(client, cache, today=today),
            today=today,
        )
    finally:
        log.info("server_shutting_down")
        await client.close()


mcp = FastMCP(
    name="magister",
    instructions=(
        "Read a student's school timetable from Magister. Dates can be given as "
        "'today', 'tomorrow', a weekday name, or YYYY-MM-DD."
    ),
    lifespan=app_lifespan,
)


def text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)])


def error_result(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)


def tool_errors(f: F) -> F:
    """Turn failures into an 'Error: ...' result flagged as an error.

    The result is returned rather than raised so that the text reaches the
    caller exactly as written.
    """

    @wraps(f)
    async def wrapper(*args, **kwargs):
        try:
            return await f(*args, **kwargs)
        except (MagisterError, ValueError) as e:
            log.warning("tool_failed", tool=f.__name__, error=str(e), type=type(e).__name__)
            return error_result(f"Error: {e}")
        except Exception as e:
            log.exception("tool_crashed", tool=f.__name__)
            return error_result(f"Error: {e}")

    return wrapper  # type: ignore


def _app(ctx: Context) -> AppContext:
    return ctx.request_context.lifespan_context


@mcp.tool()
@tool_errors
async def get_schedule(date: str, ctx: Context) -> CallToolResult:
    """Get school schedule for a specific date.

    Args:
        date: "today", "tomorrow", a weekday name, or YYYY-MM-DD.
    """
    log.info("tool_called", tool="get_schedule", date=date)
    app = _app(ctx)
    day = parse_date(date, app.today())
    service = await app.ready_service()
    return text_result(format_day(day, await service.get_schedule(day)))


@mcp.tool()
@tool_errors
async def get_week_schedule(ctx: Context) -> CallToolResult:
    """Get school schedule for the entire week (next 7 days)."""
    log.info("tool_called", tool="get_week_schedule")
    service = await _app(ctx).ready_service()
    return text_result(format_week(await service.get_week_schedule()))


@mcp.tool()
@tool_errors
async def get_dropoff_time(date: str, ctx: Context) -> CallToolResult:
    """Get the time of the first class (for drop-off planning).

    Args:
        date: "today", "tomorrow", a weekday name, or YYYY-MM-DD.
    """
    log.info("tool_called", tool="get_dropoff_time", date=date)
    app = _app(ctx)
    day = parse_date(date, app.today())
    service = await app.ready_service()
    return text_result(format_first_class(day, await service.get_first_class(day)))


@mcp.tool()
@tool_errors
async def get_pickup_time(date: str, ctx: Context) -> CallToolResult:
    """Get the time of the last class (for pick-up planning).

    Args:
        date: "today", "tomorrow", a weekday name, or YYYY-MM-DD.
    """
    log.info("tool_called", tool="get_pickup_time", date=date)
    app = _app(ctx)
    day = parse_date(date, app.today())
    service = await app.ready_service()
    return text_result(format_last_class(day, await service.get_last_class(day)))


def main() -> None:
    settings = get_settings()
    setup_logging(
        log_file=settings.log_file,
        json_output=settings.log_json,
        log_level=settings.log_level,
    )
    try:
        settings.client_config()
    except ValueError as e:
        log.error("missing_configuration", error=str(e))
        raise SystemExit(1) from e
    log.info("starting_server", transport="stdio")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
