"""MagisterClient - owns the browser session for the lifetime of the server.

init() restores the saved session when it still works and otherwise runs the
full login; either way the session is persisted afterwards. close() must be
called on shutdown to release the browser.
"""

from datetime import date, tzinfo
from pathlib import Path
from typing import TYPE_CHECKING

from playwright.async_api import async_playwright

from src.magister.auth import Authenticator
from src.magister.cache import ScheduleCache
from src.magister.errors import ClientNotInitialized, SubjectUnresolved
from src.magister.fetcher import ScheduleFetcher
from src.magister.logging import get_logger
from src.magister.models import MagisterConfig, ScheduleEntry
from src.magister.session import SessionStore, build_snapshot
from src.magister.utils import configure_page, redact_token

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Frame, Page, Playwright

logger = get_logger(__name__)


class MagisterClient:
    """Single authenticated browser session against one Magister school."""

    def __init__(
        self,
        config: MagisterConfig,
        session_store: SessionStore,
        cache: ScheduleCache | None,
        *,
        tz: tzinfo,
        headless: bool = True,
        screenshot_dir: Path | None = None,
        browser: "Browser | None" = None,
    ) -> None:
        """Initialize MagisterClient.

        Args:
            config: School and credentials.
            session_store: Where the browser session is persisted.
            cache: Schedule cache that successful API fetches are written to.
            tz: Timezone lesson times are rendered in.
            headless: Launch Chromium without a window.
            screenshot_dir: Optional directory for login debug screenshots.
            browser: An already launched browser; the client then does not
                start Playwright itself.
        """
        self.config = config
        self.session_store = session_store
        self.headless = headless
        self.authenticator = Authenticator(config, screenshot_dir=screenshot_dir)
        self.fetcher = ScheduleFetcher(config.base_url, tz, cache)

        self._playwright: "Playwright | None" = None
        self._browser = browser
        self._owns_browser = browser is None
        self.context: "BrowserContext | None" = None
        self.page: "Page | None" = None

        self.subject_id: int | None = None
        self.access_token: str | None = None
        self.initialized = False

    async def init(self) -> None:
        """Restore the saved session or log in from scratch.

        Raises:
            LoginFormNotFound: If the login form never appeared.
            TransientError: If the login page could not be loaded.
        """
        logger.info("client_init_started", school=self.config.school_host)
        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)

        if await self._restore_session():
            self.initialized = True
            return

        await self._fresh_login()
        self.initialized = True

    async def _restore_session(self) -> bool:
        snapshot = self.session_store.load()
        if snapshot is None:
            return False

        try:
            await self._open_page(storage_state=snapshot.storage_state)
            self.subject_id = snapshot.extension.subject_id
            self.access_token = snapshot.extension.bearer_token
            logger.info(
                "session_restoring",
                subject_id=self.subject_id,
                token=redact_token(self.access_token),
            )
            if await self.authenticator.session_is_valid(self.page, self.subject_id):
                logger.info("session_restored")
                return True
        except Exception as e:
            logger.warning("session_restore_failed", error=str(e))

        logger.info("session_expired", action="relogin")
        return False

    async def _fresh_login(self) -> None:
        self.subject_id = None
        self.access_token = None
        await self._open_page()

        self.access_token = await self.authenticator.login(self.page)
        self.subject_id = await self.authenticator.resolve_subject(self.page, self.access_token)
        logger.info(
            "login_completed",
            subject_id=self.subject_id,
            token=redact_token(self.access_token),
        )
        await self._persist_session()

    async def _open_page(self, storage_state: dict | None = None) -> None:
        """Replace the current context with a new one and open its page.

        Only one context is ever open, including after a failed init().
        """
        await self._close_context()
        self.context = await self._browser.new_context(storage_state=storage_state)
        self.page = await self.context.new_page()
        await configure_page(self.page)
        self.page.on("framenavigated", self._log_navigation)

    async def _close_context(self) -> None:
        if self.context is not None:
            try:
                await self.context.close()
            except Exception as e:
                logger.debug("context_close_failed", error=str(e))
        self.context = None
        self.page = None

    def _log_navigation(self, frame: "Frame") -> None:
        if self.page is not None and frame == self.page.main_frame:
            logger.debug("page_navigated", url=frame.url[:100])

    async def _persist_session(self) -> None:
        try:
            storage_state = await self.context.storage_state()
        except Exception as e:
            logger.warning("session_snapshot_failed", error=str(e))
            return
        self.session_store.save(build_snapshot(storage_state, self.subject_id, self.access_token))

    async def ensure_subject(self) -> int:
        """Return the subject id, retrying resolution once if it is missing.

        Raises:
            SubjectUnresolved: If no subject id can be determined.
        """
        if self.subject_id is None:
            logger.info("subject_missing", action="resolve")
            self.subject_id = await self.authenticator.resolve_subject(
                self._require_page(), self.access_token
            )
            if self.subject_id is None:
                raise SubjectUnresolved("Could not determine the student id for this account")
            await self._persist_session()
        return self.subject_id

    async def fetch_schedule(self, day: date) -> list[ScheduleEntry]:
        """Fetch one day from Magister, bypassing the cache for reads.

        Raises:
            ClientNotInitialized: If init() has not completed.
            SubjectUnresolved: If no subject id can be determined.
        """
        page = self._require_page()
        subject_id = await self.ensure_subject()
        return await self.fetcher.fetch(page, day, subject_id, self.access_token)

    def _require_page(self) -> "Page":
        if not self.initialized or self.page is None:
            raise ClientNotInitialized("Client not initialized. Call init() first.")
        return self.page

    async def close(self) -> None:
        """Close the browser context, the browser and the Playwright driver."""
        await self._close_context()
        if self._owns_browser and self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self.initialized = False
        logger.info("client_closed")

    async def __aenter__(self) -> "MagisterClient":
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
