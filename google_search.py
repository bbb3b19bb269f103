"""
Google Search Module
Searches Google by driving a Chromium browser like a returning human user.
Keeps a persistent fingerprint and cookie session per state file and falls
back to a visible browser when Google answers with a CAPTCHA
"""

import random
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger
from playwright.async_api import Browser, BrowserContext, ElementHandle, Page, Playwright, Response
from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from browser_launcher import choose_device, launch_browser
from config import GOOGLE_DOMAINS, AppConfig, get_state_file_path
from fingerprint import get_host_machine_config
from models import SearchOptions, SearchResponse
from result_extractor import extract_results
from session_store import get_storage_state, load_saved_state, save_session_state
from stealth import CONTEXT_DIRECTIVES, PAGE_DIRECTIVES, render_init_script


# URL fragments that mean Google is showing a challenge instead of results
CAPTCHA_PATTERNS = [
    "google.com/sorry/index",
    "google.com/sorry",
    "recaptcha",
    "captcha",
    "unusual traffic",
]

SEARCH_INPUT_SELECTORS = [
    "textarea[name='q']",
    "input[name='q']",
    "textarea[title='Search']",
    "input[title='Search']",
    "textarea[aria-label='Search']",
    "input[aria-label='Search']",
    "textarea",
]

RESULT_CONTAINER_SELECTORS = [
    "#search",
    "#rso",
    ".g",
    "[data-sokoban-container]",
    "div[role='main']",
]


class SearchError(Exception):
    """A search run could not complete"""


class SearchInputNotFoundError(SearchError):
    pass


class ResultsNotFoundError(SearchError):
    pass


class CaptchaUnresolvedError(SearchError):
    pass


class CaptchaRestartRequired(Exception):
    """Raised inside a run when a headless browser hits a CAPTCHA"""

    def __init__(self, challenge_url: str):
        super().__init__(f"CAPTCHA challenge at {challenge_url}")
        self.challenge_url = challenge_url


def is_captcha_url(url: Optional[str]) -> bool:
    """Check whether a URL is a Google CAPTCHA / blocking page"""
    if not url:
        return False
    return any(pattern in url for pattern in CAPTCHA_PATTERNS)


def random_delay(min_ms: int, max_ms: int) -> int:
    """Random delay in milliseconds, bounds inclusive"""
    return random.randint(min_ms, max_ms)


class GoogleSearchSession:
    """
    Runs one query from browser acquisition to persisted state

    The CAPTCHA handling is a bounded state machine: every headless CAPTCHA
    restarts the run (visible relaunch for a self-owned browser, interactive
    hand-off for a shared one) until config.max_captcha_attempts is exceeded.
    """

    def __init__(
        self,
        query: str,
        options: SearchOptions,
        config: AppConfig,
        playwright: Playwright,
        existing_browser: Optional[Browser] = None
    ):
        self.query = query
        self.options = options
        self.config = config
        self.playwright = playwright
        self.existing_browser = existing_browser

        self.state_file = Path(options.state_file) if options.state_file else get_state_file_path(config)
        self.storage_state: Optional[Union[str, Dict[str, Any]]] = get_storage_state(self.state_file)
        self.saved_state = load_saved_state(self.state_file)

        self.headless = not options.debug
        self.captcha_attempts = 0

        self.browser: Optional[Browser] = None
        self.owns_browser = False
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.context_options: Dict[str, Any] = {}

    @property
    def timeout(self) -> int:
        return self.options.timeout

    async def run(self) -> SearchResponse:
        """Run the search, restarting on CAPTCHA until solved or out of attempts"""
        while True:
            try:
                return await self._perform_search()
            except CaptchaRestartRequired as challenge:
                self.captcha_attempts += 1
                if self.captcha_attempts > self.config.max_captcha_attempts:
                    error = CaptchaUnresolvedError(
                        f"CAPTCHA still present after {self.config.max_captcha_attempts} recovery attempts"
                    )
                    logger.error(f"❌ {error}")
                    return SearchResponse.failure(self.query, error)

                try:
                    await self._recover_from_captcha(challenge)
                except Exception as e:
                    logger.error(f"❌ CAPTCHA recovery failed: {str(e)}")
                    return SearchResponse.failure(self.query, e)

    async def _perform_search(self) -> SearchResponse:
        await self._acquire_browser()

        try:
            await self._build_context()
            await self._navigate()
            await self._submit_query()
            await self._wait_for_results()

            await self.page.wait_for_timeout(random_delay(200, 500))
            results = await extract_results(self.page, self.options.limit)
            logger.info(f"✅ Retrieved {len(results)} search results for '{self.query}'")

            await self._persist()
            await self._release_browser()
            return SearchResponse(query=self.query, results=results)

        except CaptchaRestartRequired:
            raise
        except Exception as e:
            logger.error(f"❌ Error during search: {str(e)}")
            await self._persist()
            await self._release_browser()
            return SearchResponse.failure(self.query, e)

    async def _acquire_browser(self):
        if self.existing_browser is not None:
            logger.info("♻️ Using existing browser instance")
            self.browser = self.existing_browser
            self.owns_browser = False
            return

        # Launch failure is fatal and propagates to the caller
        self.browser = await launch_browser(
            self.playwright,
            self.config,
            headless=self.headless,
            timeout=self.timeout * 2
        )
        self.owns_browser = True

    async def _build_context(self):
        fingerprint = self.saved_state.fingerprint
        if fingerprint is not None:
            logger.info("🪪 Using saved browser fingerprint configuration")
        else:
            fingerprint = get_host_machine_config(self.options.locale, self.config.host_locale)
            self.saved_state.fingerprint = fingerprint
            logger.info(
                f"🪪 Generated new fingerprint: locale={fingerprint.locale}, "
                f"timezone={fingerprint.timezone_id}, colorScheme={fingerprint.color_scheme}, "
                f"device={fingerprint.device_name}"
            )

        device_name, device = choose_device(self.playwright, fingerprint)
        if device_name != fingerprint.device_name:
            logger.warning(
                f"⚠️ Device profile '{fingerprint.device_name}' is not a known desktop profile, "
                f"using {device_name}"
            )
            fingerprint.device_name = device_name
        logger.debug(f"Device profile: {device_name}")

        self.context_options = {
            **device,
            "locale": fingerprint.locale,
            "timezone_id": fingerprint.timezone_id,
            "color_scheme": fingerprint.color_scheme,
            "reduced_motion": fingerprint.reduced_motion,
            "forced_colors": fingerprint.forced_colors,
            "permissions": ["geolocation", "notifications"],
            "accept_downloads": True,
            "is_mobile": False,
            "has_touch": False,
            "java_script_enabled": True,
        }
        if self.storage_state:
            logger.info("📂 Loading saved browser state...")
            self.context_options["storage_state"] = self.storage_state

        self.context = await self.browser.new_context(**self.context_options)
        await self.context.add_init_script(render_init_script(CONTEXT_DIRECTIVES))

        self.page = await self.context.new_page()
        await self.page.add_init_script(render_init_script(PAGE_DIRECTIVES))

    async def _navigate(self):
        if self.saved_state.google_domain:
            domain = self.saved_state.google_domain
            logger.info(f"🌐 Using saved Google domain: {domain}")
        else:
            domain = random.choice(GOOGLE_DOMAINS)
            self.saved_state.google_domain = domain
            logger.info(f"🌐 Randomly selected Google domain: {domain}")

        response = await self.page.goto(domain, timeout=self.timeout, wait_until="networkidle")
        await self._check_captcha("after opening Google", response)

    async def _find_search_input(self) -> ElementHandle:
        for selector in SEARCH_INPUT_SELECTORS:
            search_input = await self.page.query_selector(selector)
            if search_input:
                logger.debug(f"Found search box with selector: {selector}")
                return search_input

        logger.error("❌ Could not find search box")
        raise SearchInputNotFoundError("Could not find search box")

    async def _submit_query(self):
        logger.info(f"🔍 Searching Google for: '{self.query}'")
        search_input = await self._find_search_input()

        await search_input.click()
        await self.page.keyboard.type(self.query, delay=random_delay(10, 30))
        await self.page.wait_for_timeout(random_delay(100, 300))
        await self.page.keyboard.press("Enter")

        logger.info("⏳ Waiting for page to load...")
        await self.page.wait_for_load_state("networkidle", timeout=self.timeout)

        if await self._check_captcha("after search"):
            await self.page.wait_for_load_state("networkidle", timeout=self.timeout)

    async def _wait_for_result_container(self) -> bool:
        for selector in RESULT_CONTAINER_SELECTORS:
            try:
                await self.page.wait_for_selector(selector, timeout=self.timeout // 2)
                logger.debug(f"Found search results with selector: {selector}")
                return True
            except PlaywrightTimeout:
                continue
        return False

    async def _wait_for_results(self):
        logger.info(f"⏳ Waiting for search results... URL: {self.page.url}")
        if await self._wait_for_result_container():
            return

        if await self._check_captcha("while waiting for results"):
            if await self._wait_for_result_container():
                return

        logger.error("❌ Could not find search result elements")
        raise ResultsNotFoundError("Could not find search result elements")

    async def _check_captcha(self, checkpoint: str, response: Optional[Response] = None) -> bool:
        """
        Apply the CAPTCHA policy at a checkpoint

        Returns True when a challenge was found and a human resolved it in the
        visible browser, False when no challenge was present. In headless mode
        the page is torn down and CaptchaRestartRequired is raised.
        """
        page_url = self.page.url
        response_url = response.url if response is not None else None
        if not (is_captcha_url(page_url) or is_captcha_url(response_url)):
            return False

        if self.headless:
            logger.warning(f"⚠️ CAPTCHA detected {checkpoint}, restarting in visible mode...")
            await self._close_context()
            if self.owns_browser:
                await self._close_browser()
            raise CaptchaRestartRequired(page_url if is_captcha_url(page_url) else response_url)

        logger.warning(f"⚠️ CAPTCHA detected {checkpoint}, please complete verification in the browser...")
        try:
            await self.page.wait_for_url(lambda url: not is_captcha_url(url), timeout=self.timeout * 2)
        except PlaywrightTimeout as e:
            raise CaptchaUnresolvedError(f"CAPTCHA was not completed {checkpoint}") from e

        logger.info("✅ CAPTCHA verification completed, continuing with search...")
        return True

    async def _recover_from_captcha(self, challenge: CaptchaRestartRequired):
        logger.info(f"🔁 CAPTCHA recovery attempt {self.captcha_attempts}/{self.config.max_captcha_attempts}")

        if self.existing_browser is None:
            self.headless = False
            return

        await self._interactive_handoff(challenge.challenge_url)

    async def _interactive_handoff(self, challenge_url: str):
        """
        Let a human solve the challenge in a temporary visible browser

        The cookies earned by solving it are carried into the retry against
        the shared browser, which is never closed here.
        """
        logger.warning("⚠️ CAPTCHA with a shared browser, opening a temporary visible browser...")
        temp_browser = await launch_browser(
            self.playwright,
            self.config,
            headless=False,
            timeout=self.timeout * 2
        )
        try:
            temp_context = await temp_browser.new_context(**self.context_options)
            await temp_context.add_init_script(render_init_script(CONTEXT_DIRECTIVES))
            temp_page = await temp_context.new_page()
            await temp_page.goto(challenge_url, timeout=self.timeout, wait_until="domcontentloaded")

            if is_captcha_url(temp_page.url):
                logger.warning("⚠️ Please complete verification in the opened browser...")
                try:
                    await temp_page.wait_for_url(lambda url: not is_captcha_url(url), timeout=self.timeout * 2)
                except PlaywrightTimeout as e:
                    raise CaptchaUnresolvedError("CAPTCHA was not completed in the temporary browser") from e

            self.storage_state = await temp_context.storage_state()
            logger.info("✅ Verification completed, retrying with the shared browser")
        finally:
            await temp_browser.close()

    async def _persist(self):
        if self.context is None:
            return
        await save_session_state(self.context, self.state_file, self.saved_state, self.options.no_save_state)

    async def _close_context(self):
        try:
            if self.page is not None:
                await self.page.close()
            if self.context is not None:
                await self.context.close()
        except Exception as e:
            logger.debug(f"Error closing context: {str(e)}")
        finally:
            self.page = None
            self.context = None

    async def _close_browser(self):
        try:
            await self.browser.close()
        except Exception as e:
            logger.debug(f"Error closing browser: {str(e)}")
        finally:
            self.browser = None

    async def _release_browser(self):
        """Close what this run owns unless debug mode keeps it open"""
        if self.options.debug:
            logger.info("🔎 Debug mode, keeping browser open")
            return

        if self.owns_browser:
            logger.info("Closing browser...")
            await self._close_browser()
        else:
            await self._close_context()


async def google_search(
    query: str,
    options: Optional[SearchOptions] = None,
    existing_browser: Optional[Browser] = None,
    playwright: Optional[Playwright] = None,
    config: Optional[AppConfig] = None
) -> SearchResponse:
    """
    Search Google and return structured results

    Args:
        query: Search query string
        options: Search options (default: SearchOptions())
        existing_browser: Shared browser to use; it is never closed here
        playwright: Running Playwright instance (started here if omitted)
        config: Application configuration (default: AppConfig())

    Returns:
        SearchResponse. Failures are reported as a single "Search failed"
        result rather than raised; only a browser launch failure propagates.
    """
    options = options or SearchOptions()
    config = config or AppConfig()

    owns_playwright = playwright is None
    if owns_playwright:
        playwright = await async_playwright().start()

    try:
        session = GoogleSearchSession(query, options, config, playwright, existing_browser)
        return await session.run()
    finally:
        # In debug mode the browser stays open for inspection
        if owns_playwright and not options.debug:
            await playwright.stop()
