"""Error hierarchy for the Magister client.

Transient failures (UI drift, upstream API hiccups) are recovered from by a
fallback or a best-effort continuation. Permanent failures abort the current
operation and are surfaced to the tool caller.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(2))
    async def open_login_page(page: Page):
        ...
"""


class MagisterError(Exception):
    """Base exception for all Magister client errors."""

    pass


class TransientError(MagisterError):
    """Temporary failure that may succeed on retry or via a fallback.

    Examples: navigation timeouts, slow client-side rendering.
    """

    pass


class TransientUIError(TransientError):
    """An expected element did not appear within its timeout.

    Logged and followed by a best-effort continuation, never fatal.
    """

    pass


class UpstreamAPIError(TransientError):
    """A Magister API call returned a non-success status or failed in transport.

    Never reaches the tool caller: the fetcher switches to the DOM fallback.
    """

    def __init__(self, message: str, *, status: int | None = None, path: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.path = path


class PermanentError(MagisterError):
    """Failure that won't succeed on retry."""

    pass


class AuthenticationError(PermanentError):
    """Login could not be completed - aborts the current login attempt."""

    pass


class LoginFormNotFound(AuthenticationError):
    """The username or password field never appeared on the login page."""

    pass


class SubjectUnresolved(AuthenticationError):
    """No student id could be determined for the logged-in account.

    Raised when a schedule fetch is attempted, not during login itself.
    """

    pass


class ClientNotInitialized(PermanentError):
    """The client was used before init() completed."""

    pass


class PersistenceError(MagisterError):
    """Reading or writing the session or cache file failed.

    Always non-fatal: stores catch it and treat it as a miss.
    """

    pass
