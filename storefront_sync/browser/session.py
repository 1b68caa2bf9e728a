"""
Browser Session Provider

Wraps page loading behind one small interface so extraction code never
touches Playwright or requests directly.

Two implementations:
- PlaywrightSession: headless Chromium via the Playwright sync API. Runs
  page JavaScript, so lazy-loaded listings and in-page globals are visible.
- StaticSession: plain HTTP via requests. No JavaScript; platform globals
  are recovered from inline scripts.

Sessions are context managers and must be closed on every exit path.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout
from playwright.sync_api import sync_playwright

from ..common.config_loader import PipelineSettings
from ..errors import NavigationTimeout, SelectorWaitTimeout, SessionError, SessionLaunchFailure
from .page import PageSnapshot

logger = logging.getLogger(__name__)

# Captures the same keys AnalyticsDataParser recovers from static HTML.
# JSON round-trip drops functions and cyclic references from the meta object.
GLOBALS_SCRIPT = """() => {
    const plain = (value) => {
        try { return JSON.parse(JSON.stringify(value)); } catch (e) { return null; }
    };
    const analytics = window.ShopifyAnalytics;
    return {
        shopify: typeof window.Shopify !== 'undefined',
        shopify_analytics_meta: analytics && analytics.meta ? plain(analytics.meta) : null,
        mage: typeof window.Mage !== 'undefined',
        prestashop: typeof window.prestashop !== 'undefined',
        woocommerce: typeof window.wc_add_to_cart_params !== 'undefined'
            || typeof window.woocommerce_params !== 'undefined',
    };
}"""

SCROLL_SCRIPT = """async (maxSteps) => {
    await new Promise((resolve) => {
        let steps = 0;
        const distance = 400;
        const timer = setInterval(() => {
            window.scrollBy(0, distance);
            steps += 1;
            if (window.innerHeight + window.scrollY >= document.body.scrollHeight || steps >= maxSteps) {
                clearInterval(timer);
                resolve();
            }
        }, 100);
    });
}"""


class BrowserSession(ABC):
    """
    Interface shared by all session implementations.

    Timeouts raise NavigationTimeout or SelectorWaitTimeout; callers decide
    whether to degrade. Any other failure raises SessionError.
    """

    def __init__(self, settings: PipelineSettings):
        self.settings = settings

    @abstractmethod
    def navigate(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: Optional[int] = None) -> None:
        """Load `url` and wait for the given load state."""

    @abstractmethod
    def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> None:
        """Wait until the page stops issuing requests."""

    @abstractmethod
    def wait_for(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        """Wait until `selector` matches an element."""

    @abstractmethod
    def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a JavaScript function in the page and return its result."""

    @abstractmethod
    def content(self) -> str:
        """Return the current page HTML."""

    @property
    @abstractmethod
    def current_url(self) -> str:
        """URL of the loaded page after redirects."""

    @abstractmethod
    def snapshot(self) -> PageSnapshot:
        """Capture URL, HTML and platform globals of the current page."""

    def scroll(self, max_steps: int = 50) -> None:
        """Scroll to the bottom to trigger lazy loading. No-op by default."""

    def click_first(self, selectors: List[str], timeout_ms: int = 2000) -> bool:
        """Click the first visible element matching one of `selectors`. No-op by default."""
        return False

    def settle(self, delay_ms: Optional[int] = None) -> None:
        """Give client-side rendering a moment to finish. No-op by default."""

    @abstractmethod
    def close(self) -> None:
        """Release all resources held by the session."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class PlaywrightSession(BrowserSession):
    """Headless Chromium session using the Playwright sync API."""

    def __init__(self, settings: PipelineSettings, browser_name: str = "chromium"):
        super().__init__(settings)
        self.browser_name = browser_name
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self._start()

    def _start(self) -> None:
        logger.info("Starting %s (headless=%s)", self.browser_name, self.settings.headless)
        try:
            self.playwright = sync_playwright().start()
            browser_type = getattr(self.playwright, self.browser_name)
            self.browser = browser_type.launch(
                headless=self.settings.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            self.context = self.browser.new_context(
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
                user_agent=self.settings.user_agent,
                ignore_https_errors=True,
            )
            self.page = self.context.new_page()
            self.page.set_default_timeout(self.settings.navigation_timeout_ms)
        except (PlaywrightError, AttributeError) as e:
            self.close()
            raise SessionLaunchFailure(f"Could not launch {self.browser_name}: {e}") from e

    def navigate(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: Optional[int] = None) -> None:
        timeout = timeout_ms or self.settings.navigation_timeout_ms
        logger.debug("Navigating to %s (wait_until=%s, timeout=%dms)", url, wait_until, timeout)
        try:
            self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationTimeout(f"Timed out loading {url} after {timeout}ms") from e
        except PlaywrightError as e:
            raise SessionError(f"Navigation to {url} failed: {e}") from e

    def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> None:
        timeout = timeout_ms or self.settings.network_idle_timeout_ms
        try:
            self.page.wait_for_load_state("networkidle", timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationTimeout(f"Network did not settle within {timeout}ms") from e
        except PlaywrightError as e:
            raise SessionError(f"Waiting for network idle failed: {e}") from e

    def wait_for(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        timeout = timeout_ms or self.settings.selector_wait_timeout_ms
        try:
            self.page.wait_for_selector(selector, timeout=timeout)
        except PlaywrightTimeout as e:
            raise SelectorWaitTimeout(f"Selector {selector!r} not found within {timeout}ms") from e
        except PlaywrightError as e:
            raise SessionError(f"Waiting for {selector!r} failed: {e}") from e

    def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return self.page.evaluate(script)
            return self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise SessionError(f"Script evaluation failed: {e}") from e

    def scroll(self, max_steps: int = 50) -> None:
        self.evaluate(SCROLL_SCRIPT, max_steps)

    def click_first(self, selectors: List[str], timeout_ms: int = 2000) -> bool:
        for selector in selectors:
            try:
                locator = self.page.locator(selector).first
                if locator.count() and locator.is_visible():
                    locator.click(timeout=timeout_ms)
                    logger.debug("Clicked %s", selector)
                    return True
            except PlaywrightError:
                continue
        return False

    def settle(self, delay_ms: Optional[int] = None) -> None:
        try:
            self.page.wait_for_timeout(delay_ms if delay_ms is not None else self.settings.settle_delay_ms)
        except PlaywrightError as e:
            raise SessionError(f"Settle delay interrupted: {e}") from e

    def content(self) -> str:
        try:
            return self.page.content()
        except PlaywrightError as e:
            raise SessionError(f"Could not read page content: {e}") from e

    @property
    def current_url(self) -> str:
        return self.page.url if self.page else ""

    def snapshot(self) -> PageSnapshot:
        html = self.content()
        try:
            page_globals = self.evaluate(GLOBALS_SCRIPT) or {}
        except SessionError as e:
            logger.warning("Could not capture page globals: %s", e)
            page_globals = {}
        return PageSnapshot(url=self.current_url, html=html, globals=page_globals)

    def close(self) -> None:
        for resource in (self.context, self.browser):
            if resource is not None:
                try:
                    resource.close()
                except PlaywrightError as e:
                    logger.debug("Ignoring error while closing browser: %s", e)
        if self.playwright is not None:
            try:
                self.playwright.stop()
            except PlaywrightError as e:
                logger.debug("Ignoring error while stopping Playwright: %s", e)
        self.page = None
        self.context = None
        self.browser = None
        self.playwright = None


class StaticSession(BrowserSession):
    """HTTP-only session. Pages are fetched as served, without JavaScript."""

    def __init__(self, settings: PipelineSettings, http: requests.Session | None = None):
        super().__init__(settings)
        self._owns_http = http is None
        self.http = http or requests.Session()
        self.http.headers.update({
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
        })
        self._url = ""
        self._html = ""

    def navigate(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: Optional[int] = None) -> None:
        timeout = (timeout_ms or self.settings.navigation_timeout_ms) / 1000
        logger.debug("Fetching %s (timeout=%.0fs)", url, timeout)
        try:
            response = self.http.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise NavigationTimeout(f"Timed out loading {url}") from e
        except requests.RequestException as e:
            raise SessionError(f"Request to {url} failed: {e}") from e
        self._url = response.url
        self._html = response.text

    def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> None:
        # The response is complete once navigate() returns
        return None

    def wait_for(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        # Static HTML never changes, so a missing element will not appear later
        if self.snapshot().soup.select_one(selector) is None:
            raise SelectorWaitTimeout(f"Selector {selector!r} not present in static HTML")

    def evaluate(self, script: str, arg: Any = None) -> Any:
        raise SessionError("JavaScript evaluation is not available in a static session")

    def content(self) -> str:
        return self._html

    @property
    def current_url(self) -> str:
        return self._url

    def snapshot(self) -> PageSnapshot:
        return PageSnapshot.from_html(self._url, self._html)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()


def open_session(settings: PipelineSettings, kind: str = "playwright", browser_name: str = "chromium") -> BrowserSession:
    """
    Open a browser session.

    Args:
        settings: Pipeline settings (timeouts, viewport, user agent)
        kind: 'playwright' for a real browser, 'static' for plain HTTP
        browser_name: Playwright browser type ('chromium', 'firefox', 'webkit')

    Returns:
        An open BrowserSession

    Raises:
        SessionLaunchFailure: If the session cannot be established
    """
    if kind == "static":
        return StaticSession(settings)
    if kind == "playwright":
        return PlaywrightSession(settings, browser_name=browser_name)
    raise SessionLaunchFailure(f"Unknown session kind: {kind}")


def prepare_page(session: BrowserSession, settings: PipelineSettings,
                 cookie_selectors: List[str], scroll: bool = True) -> None:
    """
    Make lazy content visible before extraction.

    Waits for images, dismisses cookie/consent banners and scrolls the
    page. Every step is best effort: failures are logged, never raised.

    Args:
        session: Open session positioned on the page
        settings: Pipeline settings (selector wait and settle timeouts)
        cookie_selectors: Candidate selectors for a consent "accept" button
        scroll: Whether to auto-scroll to the bottom of the page
    """
    try:
        session.wait_for("img", settings.selector_wait_timeout_ms)
    except (SelectorWaitTimeout, SessionError) as e:
        logger.info("No images appeared: %s", e)

    try:
        if session.click_first(cookie_selectors):
            logger.info("Dismissed cookie banner")
            session.settle()
    except SessionError as e:
        logger.debug("Cookie banner dismissal failed: %s", e)

    if scroll:
        started = time.monotonic()
        try:
            session.scroll()
            session.settle()
            logger.debug("Auto-scroll finished in %.1fs", time.monotonic() - started)
        except SessionError as e:
            logger.info("Auto-scroll failed: %s", e)
