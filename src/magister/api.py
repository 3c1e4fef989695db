"""Magister JSON API access through the logged-in browser page.

Requests run as an in-page fetch() so they carry the portal's session
cookies; a bearer token is added when one was captured at login.
"""

from typing import Any

from playwright.async_api import Page

from src.magister.errors import UpstreamAPIError
from src.magister.logging import get_logger

log = get_logger(__name__)

ACCOUNT_PATH = "/api/account"

# Tried in order; the first one returning a non-empty list wins.
CHILDREN_PATHS: tuple[str, ...] = (
    "/api/personen/{person_id}/kinderen",
    "/api/leerlingen",
    "/api/accounts/{person_id}/kinderen",
)

APPOINTMENTS_PATH = "/api/personen/{subject_id}/afspraken?status=1&van={start}&tot={end}"

_FETCH_JSON_JS = """async ({ path, token }) => {
    const headers = { 'Accept': 'application/json' };
    if (token) {
        headers['Authorization'] = `Bearer ${token}`;
    }
    try {
        const res = await fetch(path, { credentials: 'include', headers });
        if (!res.ok) {
            return { ok: false, status: res.status, error: res.statusText };
        }
        return { ok: true, status: res.status, data: await res.json() };
    } catch (e) {
        return { ok: false, status: null, error: String(e) };
    }
}"""


async def get_json(page: Page, path: str, token: str | None = None) -> Any:
    """GET a Magister API path from inside the page.

    Args:
        page: Page currently on the school domain.
        path: Absolute API path, e.g. "/api/account".
        token: Optional bearer token.

    Returns:
        The decoded JSON body.

    Raises:
        UpstreamAPIError: On a non-success status or transport failure.
    """
    try:
        result = await page.evaluate(_FETCH_JSON_JS, {"path": path, "token": token or ""})
    except Exception as e:
        raise UpstreamAPIError(f"In-page fetch failed: {e}", path=path) from e

    if not result or not result.get("ok"):
        status = (result or {}).get("status")
        error = (result or {}).get("error", "unknown error")
        log.warning("api_request_failed", path=path, status=status, error=error)
        raise UpstreamAPIError(f"GET {path} failed: {status} {error}", status=status, path=path)

    log.debug("api_request_succeeded", path=path, status=result.get("status"))
    return result.get("data")


def items_of(data: Any) -> list:
    """Unwrap Magister's {"Items": [...]} envelope; bare lists pass through."""
    if isinstance(data, dict):
        data = data.get("Items", [])
    return data if isinstance(data, list) else []
