"""AgendaPage - reads lessons from the rendered Magister agenda.

Used only when the afspraken API call fails. The agenda at /magister/#/agenda
is an Angular view rendered client-side; its markup has changed over time, so
several item selectors are tried and the first one with matches is used.

Only the visible text and the CSS classes of each item are readable here:
times, teacher and room stay empty.
"""

from playwright.async_api import Page

from src.magister.logging import get_logger
from src.magister.models import ScheduleEntry

log = get_logger(__name__)

SUBJECT_MAX_LENGTH = 100

CANCELLED_CLASSES = frozenset({"cancelled", "vervallen"})

_EXTRACT_ITEMS_JS = """(selectors) => {
    for (const selector of selectors) {
        const elements = document.querySelectorAll(selector);
        if (elements.length > 0) {
            return {
                selector,
                items: Array.from(elements).map(el => ({
                    text: (el.textContent || '').trim(),
                    classes: Array.from(el.classList),
                })),
            };
        }
    }
    return { selector: null, items: [] };
}"""


class AgendaPage:
    """Client-side rendered agenda at /magister/#/agenda."""

    URL_PATH = "/magister/#/agenda"

    ITEM_SELECTORS: tuple[str, ...] = (
        ".agenda-item",
        ".appointment",
        '[class*="appointment"]',
        '[class*="agenda-list"] > *',
        ".rooster-item",
    )

    RENDER_WAIT_MS = 3000

    def __init__(self, page: Page) -> None:
        self.page = page

    async def navigate(self, base_url: str) -> None:
        """Open the agenda and give the client-side app time to render."""
        url = f"{base_url}{self.URL_PATH}"
        await self.page.goto(url)
        await self.page.wait_for_timeout(self.RENDER_WAIT_MS)
        log.info("agenda_page_navigated", url=url)

    async def extract_entries(self) -> list[ScheduleEntry]:
        """Turn visible agenda items into subject-only schedule entries.

        Returns:
            One entry per non-empty item matched by the first selector that
            matches anything; empty if no selector matches.
        """
        result = await self.page.evaluate(_EXTRACT_ITEMS_JS, list(self.ITEM_SELECTORS))
        selector = result.get("selector")
        if selector is None:
            log.warning("agenda_items_not_found", selectors=len(self.ITEM_SELECTORS))
            return []

        entries: list[ScheduleEntry] = []
        for item in result.get("items", []):
            text = item.get("text", "")
            if not text:
                continue
            classes = set(item.get("classes", []))
            entries.append(
                ScheduleEntry(
                    subject=text[:SUBJECT_MAX_LENGTH],
                    cancelled=bool(classes & CANCELLED_CLASSES),
                )
            )

        log.info("agenda_extracted", selector=selector, entries=len(entries))
        return entries
