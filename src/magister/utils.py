"""Shared Playwright helpers: page setup and first-match-wins element probing."""

from collections.abc import Sequence
from pathlib import Path

from playwright.async_api import ElementHandle, Page, Route

from src.magister.logging import get_logger

log = get_logger(__name__)

# Stylesheets stay enabled: visibility checks on the login page depend on them.
BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "font", "media"})

DEFAULT_TIMEOUT_MS = 30000


async def configure_page(page: Page) -> None:
    """Set up a Playwright page for the Magister portal.

    Blocks images, fonts and media to cut bandwidth and sets default
    timeouts so that no wait can hang forever.

    Args:
        page: Playwright Page instance.
    """

    async def _block_resources(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _block_resources)
    page.set_default_timeout(DEFAULT_TIMEOUT_MS)
    page.set_default_navigation_timeout(DEFAULT_TIMEOUT_MS)


async def first_visible(
    page: Page, selectors: Sequence[str]
) -> tuple[str, ElementHandle] | None:
    """Return the first selector (and its element) that matches a visible element.

    Selectors are tried in order; lookup errors on one selector are logged
    and the next one is tried.

    Args:
        page: Playwright Page to probe.
        selectors: Candidate selectors, most specific first.

    Returns:
        (selector, element) for the first visible match, or None.
    """
    for selector in selectors:
        try:
            element = await page.query_selector(selector)
            if element is None:
                continue
            visible = await element.is_visible()
            log.debug("selector_probe", selector=selector, visible=visible)
            if visible:
                return selector, element
        except Exception as e:
            log.debug("selector_probe_failed", selector=selector, error=str(e))
    return None


async def click_first_visible(
    page: Page, selectors: Sequence[str], *, timeout: float = 5000
) -> str | None:
    """Click the first visible match from an ordered selector list.

    A click that fails moves on to the next candidate.

    Returns:
        The selector that was clicked, or None if nothing could be clicked.
    """
    remaining = list(selectors)
    while remaining:
        match = await first_visible(page, remaining)
        if match is None:
            return None
        selector, element = match
        try:
            await element.click(timeout=timeout)
            return selector
        except Exception as e:
            log.debug("click_failed", selector=selector, error=str(e))
            remaining = remaining[remaining.index(selector) + 1 :]
    return None


async def save_screenshot(page: Page, directory: Path | None, name: str) -> None:
    """Write a debug screenshot if a screenshot directory is configured."""
    if directory is None:
        return
    path = directory / f"magister-{name}.png"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(path))
        log.debug("screenshot_saved", path=str(path))
    except Exception as e:
        log.warning("screenshot_failed", path=str(path), error=str(e))


def redact_token(token: str | None) -> str:
    """Short, log-safe form of a bearer token."""
    if not token:
        return "none"
    return f"{token[:12]}..."
