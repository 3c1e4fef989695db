"""Magister authentication: browser login, token capture and subject resolution.

The identity provider UI is third-party and drifts, so only two steps are hard
gates (the username and password fields must appear). Consent dialogs, button
detection and the redirect wait are best effort; the account API call at the
end is what tells whether the session actually works.
"""

from pathlib import Path
from typing import Any

from playwright.async_api import Page

from src.magister import api
from src.magister.errors import UpstreamAPIError
from src.magister.logging import get_logger
from src.magister.models import MagisterConfig
from src.magister.pages.login import IDENTITY_PROVIDER_HOST, LoginPage
from src.magister.utils import redact_token, save_screenshot

logger = get_logger(__name__)

# Account group names that mark a parent/guardian login.
GUARDIAN_GROUPS = frozenset({"ouder", "ouders", "parent", "guardian", "verzorger"})
STUDENT_GROUPS = frozenset({"leerling", "leerlingen", "student"})

RESTORE_SETTLE_MS = 2000
POST_LOGIN_SETTLE_MS = 3000


def is_guardian_account(account: dict[str, Any]) -> bool | None:
    """Classify an /api/account response.

    Returns:
        True for a guardian, False for a student, None if the response
        carries no recognisable group information.
    """
    groups = account.get("Groep") or []
    names = {
        str(group.get("Naam", "")).strip().lower()
        for group in groups
        if isinstance(group, dict)
    }
    if names & GUARDIAN_GROUPS:
        return True
    if names & STUDENT_GROUPS:
        return False
    return None


def _as_id(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("unusable_person_id", value=repr(value)[:50])
        return None


def child_id(child: Any) -> int | None:
    """Person id of a linked-child record, whichever shape the endpoint used."""
    if not isinstance(child, dict):
        return None
    persoon = child.get("Persoon")
    if not isinstance(persoon, dict):
        persoon = {}
    for value in (child.get("Id"), persoon.get("Id"), child.get("LeerlingId")):
        if value is not None:
            return _as_id(value)
    return None


class Authenticator:
    """Logs in through the identity provider and works out whose schedule to read."""

    def __init__(self, config: MagisterConfig, *, screenshot_dir: Path | None = None) -> None:
        self.config = config
        self.screenshot_dir = screenshot_dir

    async def session_is_valid(self, page: Page, subject_id: int | None) -> bool:
        """Check a restored session by loading the portal home.

        The session counts as valid when the portal did not bounce us to the
        identity provider and a subject id was restored with it.
        """
        await page.goto(f"{self.config.base_url}/magister/")
        await page.wait_for_timeout(RESTORE_SETTLE_MS)
        on_login = IDENTITY_PROVIDER_HOST in page.url
        valid = not on_login and subject_id is not None
        logger.info(
            "session_check",
            result="valid" if valid else "expired",
            on_login_page=on_login,
            subject_id=subject_id,
        )
        return valid

    async def login(self, page: Page) -> str | None:
        """Run the interactive login flow on a clean page.

        Args:
            page: Page of a fresh browser context.

        Returns:
            The captured bearer token, or None if neither the redirect nor
            client-side storage yielded one (cookies may still suffice).

        Raises:
            LoginFormNotFound: If the username or password field never appears.
            TransientError: If the login page cannot be loaded.
        """
        logger.info("login_started", school=self.config.school_host)
        login_page = LoginPage(page)

        await login_page.open(self.config.base_url)
        await login_page.enter_username(self.config.username)
        await login_page.enter_password(self.config.password.get_secret_value())
        await save_screenshot(page, self.screenshot_dir, "before-login")
        await login_page.dismiss_consent()

        login_page.watch_redirects()
        if not await login_page.submit():
            await save_screenshot(page, self.screenshot_dir, "login-failed")

        await login_page.wait_for_school_domain(self.config.school_host)
        await page.wait_for_timeout(POST_LOGIN_SETTLE_MS)

        token = login_page.captured_token
        source = "redirect"
        if not token:
            token = await login_page.token_from_storage()
            source = "storage"
        if token:
            logger.info("token_captured", source=source, token=redact_token(token))
        else:
            logger.warning("token_not_captured")

        # API calls are relative to the school domain
        if self.config.school_host not in page.url:
            logger.info("navigating_to_school_domain", url=page.url[:100])
            await page.goto(f"{self.config.base_url}/magister/")
            await page.wait_for_timeout(RESTORE_SETTLE_MS)

        return token

    async def resolve_subject(self, page: Page, token: str | None) -> int | None:
        """Determine the student whose schedule is read.

        A student account reads its own schedule. A guardian account reads
        the first linked child's schedule; if no child endpoint returns any
        children, the account's own id is used.

        Returns:
            The subject id, or None if the account endpoint gave no person id.
        """
        try:
            account = await api.get_json(page, api.ACCOUNT_PATH, token)
        except UpstreamAPIError as e:
            logger.warning("subject_unresolved", reason="account_request_failed", error=str(e))
            return None

        if not isinstance(account, dict):
            logger.warning("subject_unresolved", reason="unexpected_account_response")
            return None
        person = account.get("Persoon")
        raw_id = person.get("Id") if isinstance(person, dict) else None
        person_id = _as_id(raw_id) if raw_id is not None else None
        if person_id is None:
            logger.warning("subject_unresolved", reason="no_person_id")
            return None

        guardian = is_guardian_account(account)
        logger.info("account_resolved", person_id=person_id, guardian=guardian)
        if guardian is False:
            return person_id

        for path in api.CHILDREN_PATHS:
            endpoint = path.format(person_id=person_id)
            try:
                children = api.items_of(await api.get_json(page, endpoint, token))
            except UpstreamAPIError:
                continue
            if not children:
                logger.debug("children_endpoint_empty", endpoint=endpoint)
                continue
            first = child_id(children[0])
            if first is not None:
                logger.info(
                    "child_selected",
                    endpoint=endpoint,
                    child_id=first,
                    children=len(children),
                )
                return first

        logger.info("no_children_found", subject_id=person_id)
        return person_id
