"""Hand-written stand-ins for the Playwright objects the client touches."""

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

SCHOOL = "testschool.magister.net"
BASE_URL = f"https://{SCHOOL}"
LOGIN_URL = "https://accounts.magister.net/account/login?sessionId=abc"
CALLBACK_URL = (
    f"{BASE_URL}/oidc/redirect_callback.html"
    "#id_token=ID-TOKEN&access_token=ACCESS%2BTOKEN&token_type=Bearer"
)
HOME_URL = f"{BASE_URL}/magister/#/vandaag"

STORAGE_STATE = {
    "cookies": [{"name": "Magister.Session", "value": "s3ss10n", "domain": SCHOOL}],
    "origins": [],
}


def ok(data, status=200):
    return {"ok": True, "status": status, "data": data}


def failed(status=500, error="Internal Server Error"):
    return {"ok": False, "status": status, "error": error}


class FakeElement:
    def __init__(self, visible=True):
        self.visible = visible
        self.clicks = 0

    async def is_visible(self):
        return self.visible

    async def click(self, timeout=None):
        self.clicks += 1


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakeFrame:
    def __init__(self, page):
        self._page = page

    @property
    def url(self):
        return self._page.url


class FakePage:
    """Scriptable page.

    goto() follows `routes` (URL prefix -> landing URL), wait_for_url() walks
    through `redirects`, and evaluate() answers API paths from `api`.
    """

    def __init__(self, *, routes=None, redirects=None, api=None, present=(), elements=None):
        self.url = "about:blank"
        self.main_frame = FakeFrame(self)
        self.keyboard = FakeKeyboard()
        self.routes = routes or {}
        self.redirects = list(redirects or [])
        self.api = api or {}
        self.present = set(present)
        self.elements = elements or {}
        self.storage_token = None
        self.agenda_result = {"selector": None, "items": []}

        self.visited = []
        self.filled = {}
        self.api_calls = []
        self.handlers = {}

    def _navigate(self, url):
        self.url = url
        for handler in self.handlers.get("framenavigated", []):
            handler(self.main_frame)

    async def goto(self, url, **kwargs):
        self.visited.append(url)
        landing = url
        for prefix, target in self.routes.items():
            if url.startswith(prefix):
                landing = target
                break
        self._navigate(landing)

    async def route(self, pattern, handler):
        pass

    def set_default_timeout(self, timeout):
        pass

    def set_default_navigation_timeout(self, timeout):
        pass

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    async def wait_for_timeout(self, timeout):
        pass

    async def wait_for_selector(self, selector, timeout=None):
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def fill(self, selector, value):
        self.filled[selector] = value

    async def query_selector(self, selector):
        return self.elements.get(selector)

    async def wait_for_url(self, predicate, timeout=None):
        if predicate(self.url):
            return
        while self.redirects:
            self._navigate(self.redirects.pop(0))
            if predicate(self.url):
                return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for URL")

    async def evaluate(self, script, arg=None):
        if isinstance(arg, dict) and "path" in arg:
            self.api_calls.append((arg["path"], arg["token"]))
            return self.api.get(arg["path"], failed(404, "Not Found"))
        if isinstance(arg, dict) and "prefix" in arg:
            return self.storage_token
        if isinstance(arg, list):
            return self.agenda_result
        raise AssertionError(f"unexpected evaluate call: {arg!r}")

    async def screenshot(self, path=None):
        pass


class FakeContext:
    def __init__(self, page, storage_state=None):
        self.page = page
        self.restored_state = storage_state
        self.closed = False

    async def new_page(self):
        return self.page

    async def storage_state(self):
        return STORAGE_STATE

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Hands out the given pages, one per new context."""

    def __init__(self, *pages):
        self.pages = list(pages)
        self.contexts = []
        self.closed = False

    async def new_context(self, storage_state=None):
        context = FakeContext(self.pages.pop(0), storage_state)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


def login_page(api, *, redirects=(CALLBACK_URL, HOME_URL)):
    """A page on which the whole login form works."""
    return FakePage(
        routes={f"{BASE_URL}/magister": HOME_URL, BASE_URL: LOGIN_URL},
        redirects=redirects,
        api=api,
        present={"#username", "#password, input[type='password']"},
        elements={
            'dna-button:has-text("Doorgaan")': FakeElement(),
            'dna-button:has-text("Inloggen")': FakeElement(),
        },
    )
