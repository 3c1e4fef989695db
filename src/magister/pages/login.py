"""LoginPage - drives the Magister identity provider login form.

The portal root redirects to accounts.magister.net, which shows a two-step
form built from DNA web components:

  step 1: input#username + dna-button "Doorgaan" (continue)
  step 2: input#password (or any input[type=password]) + dna-button "Inloggen"

After a successful submit the identity provider redirects back to the school
domain through a callback URL carrying access_token / id_token.

The markup changes without notice, so every button lookup walks an ordered
list of selectors and takes the first visible match.
"""

import re
from urllib.parse import unquote

from playwright.async_api import Frame, Page, TimeoutError as PlaywrightTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.magister.errors import LoginFormNotFound, TransientError
from src.magister.logging import get_logger
from src.magister.utils import click_first_visible, first_visible

log = get_logger(__name__)

IDENTITY_PROVIDER_HOST = "accounts.magister.net"

# Token-shaped values in storage: JWTs start with base64 '{"' and are long.
STORAGE_TOKEN_PREFIX = "eyJ"
STORAGE_TOKEN_MIN_LENGTH = 100

_TOKEN_PATTERNS = (
    re.compile(r"[?&#]access_token=([^&#]+)"),
    re.compile(r"[?&#]id_token=([^&#]+)"),
)

_STORAGE_TOKEN_JS = """({ prefix, minLength }) => {
    for (const storage of [sessionStorage, localStorage]) {
        for (let i = 0; i < storage.length; i++) {
            const key = storage.key(i);
            if (!key) continue;
            const val = storage.getItem(key);
            if (val && val.startsWith(prefix) && val.length > minLength) {
                return val;
            }
        }
    }
    return null;
}"""


def token_from_url(url: str) -> str | None:
    """Extract access_token (preferred) or id_token from a redirect URL."""
    for pattern in _TOKEN_PATTERNS:
        match = pattern.search(url)
        if match:
            return unquote(match.group(1))
    return None


class LoginPage:
    """Identity provider login form on accounts.magister.net."""

    USERNAME_INPUT = "#username"
    PASSWORD_INPUT = "#password, input[type='password']"

    CONTINUE_BUTTONS: tuple[str, ...] = (
        'dna-button:has-text("Doorgaan")',
        'button:has-text("Doorgaan")',
        'dna-button[type="submit"]',
        '[type="submit"]',
    )

    CONSENT_BUTTONS: tuple[str, ...] = (
        'button:has-text("Accepteren")',
        'button:has-text("Accept")',
        'button:has-text("Akkoord")',
        'button:has-text("OK")',
        '[id*="cookie"] button',
        '[class*="cookie"] button',
        '[class*="consent"] button',
    )

    LOGIN_BUTTONS: tuple[str, ...] = (
        'dna-button:has-text("Inloggen")',
        'button:has-text("Inloggen")',
        'dna-button[type="submit"]',
        'button[type="submit"]',
        'input[type="submit"]',
        ".btn-primary",
        '[data-testid="login"]',
    )

    FIELD_TIMEOUT_MS = 15000
    REDIRECT_TIMEOUT_MS = 30000

    def __init__(self, page: Page) -> None:
        self.page = page
        self.captured_token: str | None = None

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(2),
        retry=retry_if_exception_type(TransientError),
        reraise=True,
    )
    async def open(self, base_url: str) -> None:
        """Navigate to the portal root, which redirects to the login form.

        Raises:
            TransientError: If navigation times out (retried once).
        """
        try:
            await self.page.goto(base_url, wait_until="domcontentloaded")
        except PlaywrightTimeoutError as e:
            raise TransientError(f"Login page failed to load: {e}") from e
        log.info("login_page_opened", url=self.page.url[:100])

    async def _wait_for_field(self, selector: str, name: str) -> None:
        try:
            await self.page.wait_for_selector(selector, timeout=self.FIELD_TIMEOUT_MS)
        except PlaywrightTimeoutError as e:
            log.error("login_field_missing", field=name, url=self.page.url[:100])
            raise LoginFormNotFound(f"{name} field did not appear on the login page") from e
        log.debug("login_field_found", field=name)

    async def enter_username(self, username: str) -> None:
        """Fill the username and continue to the password step.

        Raises:
            LoginFormNotFound: If the username field does not appear in time.
        """
        await self._wait_for_field(self.USERNAME_INPUT, "username")
        await self.page.fill(self.USERNAME_INPUT, username)

        clicked = await click_first_visible(self.page, self.CONTINUE_BUTTONS)
        if clicked is None:
            log.warning("continue_button_not_found")
            await self.page.keyboard.press("Enter")
        else:
            log.debug("continue_clicked", selector=clicked)

    async def enter_password(self, password: str) -> None:
        """Fill the password field.

        Raises:
            LoginFormNotFound: If the password field does not appear in time.
        """
        await self._wait_for_field(self.PASSWORD_INPUT, "password")
        await self.page.fill(self.PASSWORD_INPUT, password)

    async def dismiss_consent(self) -> None:
        """Click a cookie/consent button if one is showing. Absence is fine."""
        match = await first_visible(self.page, self.CONSENT_BUTTONS)
        if match is None:
            log.debug("consent_dialog_absent")
            return
        selector, element = match
        try:
            await element.click()
            await self.page.wait_for_timeout(500)
            log.info("consent_dismissed", selector=selector)
        except Exception as e:
            log.warning("consent_click_failed", selector=selector, error=str(e))

    async def submit(self) -> bool:
        """Click the login button, or press Enter if none is visible.

        Returns:
            True if a login button was clicked, False if Enter was used.
        """
        clicked = await click_first_visible(self.page, self.LOGIN_BUTTONS)
        if clicked is not None:
            log.info("login_submitted", selector=clicked)
            return True

        log.warning("login_button_not_found", fallback="Enter")
        try:
            await self.page.keyboard.press("Enter")
        except Exception as e:
            log.error("login_submit_failed", error=str(e))
        return False

    def watch_redirects(self) -> None:
        """Start capturing tokens from main-frame redirect URLs."""
        self.page.on("framenavigated", self._on_navigated)

    def _on_navigated(self, frame: Frame) -> None:
        if frame != self.page.main_frame:
            return
        url = frame.url
        log.debug("navigated", url=url[:100])
        if self.captured_token:
            return
        token = token_from_url(url)
        if token:
            self.captured_token = token
            log.info("redirect_token_captured", url=url.split("#", 1)[0].split("?", 1)[0])

    async def wait_for_school_domain(self, school_host: str) -> bool:
        """Wait until the browser is back on the school domain.

        Returns:
            True if the redirect completed, False on timeout (logged only).
        """

        def _on_school(url: str) -> bool:
            return school_host in url and IDENTITY_PROVIDER_HOST not in url

        try:
            await self.page.wait_for_url(_on_school, timeout=self.REDIRECT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            log.warning("school_redirect_timeout", url=self.page.url[:100])
            return False
        log.info("school_redirect_completed", url=self.page.url[:100])
        return True

    async def token_from_storage(self) -> str | None:
        """Scan sessionStorage then localStorage for a token-shaped value."""
        try:
            return await self.page.evaluate(
                _STORAGE_TOKEN_JS,
                {"prefix": STORAGE_TOKEN_PREFIX, "minLength": STORAGE_TOKEN_MIN_LENGTH},
            )
        except Exception as e:
            log.warning("storage_token_scan_failed", error=str(e))
            return None
