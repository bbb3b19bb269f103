"""
Shared fixtures: in-memory stand-ins for Playwright objects and a loguru capture sink.
"""

import json
from pathlib import Path
from typing import List, Optional

import pytest
from loguru import logger
from playwright.async_api import TimeoutError as PlaywrightTimeout

from config import AppConfig


GOOGLE_HOME = "https://www.google.com"
RESULTS_URL = "https://www.google.com/search?q=test"
SORRY_URL = "https://www.google.com/sorry/index?continue=https://www.google.com/search"

DEVICES = {
    "Desktop Chrome": {
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36",
        "viewport": {"width": 1280, "height": 720},
        "device_scale_factor": 1,
        "is_mobile": False,
        "has_touch": False,
        "default_browser_type": "chromium",
    },
    "Desktop Edge": {
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Edg/120.0.0.0",
        "viewport": {"width": 1280, "height": 720},
        "device_scale_factor": 1,
        "is_mobile": False,
        "has_touch": False,
        "default_browser_type": "chromium",
    },
    "Desktop Firefox": {
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "viewport": {"width": 1280, "height": 720},
        "device_scale_factor": 1,
        "is_mobile": False,
        "has_touch": False,
        "default_browser_type": "firefox",
    },
    "Desktop Safari": {
        "user_agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) Version/17.0 Safari/605.1.15",
        "viewport": {"width": 1280, "height": 720},
        "device_scale_factor": 2,
        "is_mobile": False,
        "has_touch": False,
        "default_browser_type": "webkit",
    },
}


def results_html(count: int, container: str = "g", wrapper_id: str = "search") -> str:
    """Results page with `count` well-formed result blocks"""
    blocks = "".join(
        f'<div class="{container}">'
        f'<a href="https://example{i}.com/page"><h3>Result {i}</h3></a>'
        f'<div class="VwiC3b">Snippet {i}</div>'
        f'</div>'
        for i in range(1, count + 1)
    )
    return f'<html><body><div id="{wrapper_id}">{blocks}</div></body></html>'


class FakeResponse:
    def __init__(self, url: str):
        self.url = url


class FakeElement:
    def __init__(self):
        self.clicked = False

    async def click(self):
        self.clicked = True


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page
        self.typed: List[str] = []

    async def type(self, text: str, delay: float = 0):
        self.typed.append(text)

    async def press(self, key: str):
        if key == "Enter":
            self.page.url = self.page.submit_url


class FakePage:
    """
    Scriptable page

    landing_url: URL after goto (default: the requested URL)
    submit_url: URL after pressing Enter
    resolved_url: URL a "human" navigates to when wait_for_url is called
    """

    def __init__(
        self,
        html: str = "",
        landing_url: Optional[str] = None,
        submit_url: str = RESULTS_URL,
        resolved_url: Optional[str] = None,
        input_selectors=("textarea[name='q']",),
        result_selectors=("#search",),
    ):
        self.html = html
        self.landing_url = landing_url
        self.submit_url = submit_url
        self.resolved_url = resolved_url
        self.input_selectors = set(input_selectors)
        self.result_selectors = set(result_selectors)
        self.url = "about:blank"
        self.keyboard = FakeKeyboard(self)
        self.goto_calls: List[str] = []
        self.init_scripts: List[str] = []
        self.closed = False

    async def add_init_script(self, script: str):
        self.init_scripts.append(script)

    async def goto(self, url: str, timeout: float = None, wait_until: str = None):
        self.goto_calls.append(url)
        self.url = self.landing_url or url
        return FakeResponse(self.url)

    async def query_selector(self, selector: str):
        return FakeElement() if selector in self.input_selectors else None

    async def wait_for_timeout(self, timeout: float):
        return None

    async def wait_for_load_state(self, state: str = None, timeout: float = None):
        return None

    async def wait_for_selector(self, selector: str, timeout: float = None):
        if selector in self.result_selectors:
            return FakeElement()
        raise PlaywrightTimeout(f"Timeout waiting for {selector}")

    async def wait_for_url(self, predicate, timeout: float = None):
        if predicate(self.url):
            return
        if self.resolved_url and predicate(self.resolved_url):
            self.url = self.resolved_url
            return
        raise PlaywrightTimeout("Timeout waiting for navigation")

    async def content(self) -> str:
        return self.html

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage, options: dict):
        self.page = page
        self.options = options
        self.init_scripts: List[str] = []
        self.closed = False
        self.fail_storage_state = False

    async def add_init_script(self, script: str):
        self.init_scripts.append(script)

    async def new_page(self) -> FakePage:
        return self.page

    async def storage_state(self, path: Optional[str] = None):
        if self.fail_storage_state:
            raise RuntimeError("storage unavailable")
        state = {"cookies": [{"name": "NID", "value": "1"}], "origins": []}
        if path:
            Path(path).write_text(json.dumps(state))
        return state

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Hands out the given pages in order; the last one is reused"""

    def __init__(self, *pages: FakePage, headless: bool = True):
        self.pages = list(pages) or [FakePage()]
        self.headless = headless
        self.contexts: List[FakeContext] = []
        self.closed = False

    async def new_context(self, **options) -> FakeContext:
        page = self.pages.pop(0) if len(self.pages) > 1 else self.pages[0]
        context = FakeContext(page, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browsers: List[FakeBrowser]):
        self.browsers = browsers
        self.launches: List[dict] = []

    async def launch(self, **options) -> FakeBrowser:
        self.launches.append(options)
        if not self.browsers:
            raise RuntimeError("browser executable not found")
        browser = self.browsers.pop(0)
        browser.headless = options.get("headless", True)
        return browser


class FakePlaywright:
    def __init__(self, *browsers: FakeBrowser):
        self.devices = DEVICES
        self.chromium = FakeChromium(list(browsers))
        self.stopped = False

    async def stop(self):
        self.stopped = True


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(storage_dir=tmp_path / "storage")


@pytest.fixture
def log_messages():
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
