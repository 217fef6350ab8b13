"""Page fetcher with a rendering strategy and a static HTTP fallback.

Components:
- PageRenderer: Protocol for the dynamic rendering strategy
- ChromeRenderer: headless undetected Chrome, one browser per call
- PageFetcher: runs a directive, falling back to httpx + BeautifulSoup when
  the renderer cannot start or cannot navigate

Each component can be mocked independently for testing.
"""

import asyncio
import time
from typing import Protocol

import httpx
import logfire
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from harvester.config import get_settings
from harvester.constants import (
    RENDER_TEARDOWN_RESERVE_SECONDS,
    RENDER_VIEWPORT,
    WAIT_FOR_SELECTOR_SETTLE_SECONDS,
    WAIT_FOR_SELECTOR_TIMEOUT_SECONDS,
)
from harvester.exceptions import (
    FetchFailure,
    InputError,
    RendererUnavailable,
    RenderNavigationError,
)
from harvester.models.scraper_models import (
    RENDERED,
    STATIC_FALLBACK,
    ExtractedRecord,
    ExtractionDirective,
    RenderedPage,
    is_valid_url,
)
from harvester.services.metrics import ScrapingMetrics, get_scraping_metrics
from harvester.services.page_extractor import PageExtractor

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Default headers to mimic a real browser
DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

# Network counts as idle once no new resource has loaded for this long
_NETWORK_IDLE_QUIET_SECONDS = 0.5
_NETWORK_IDLE_POLL_SECONDS = 0.1


def _time_left(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


class PageRenderer(Protocol):
    """Protocol for the dynamic rendering strategy."""

    async def render(self, directive: ExtractionDirective) -> RenderedPage:
        """Load the page in a browser and return the live DOM.

        Raises:
            RendererUnavailable: The browser could not be started
            RenderNavigationError: The browser could not load the URL
            Exception: Anything failing after navigation (wait, script, timeout)
        """
        ...


class ChromeRenderer:
    """Render pages in headless undetected Chrome.

    A fresh browser is launched for every call and quit on every exit
    path, so no cookies or sessions leak between fetches. Launch,
    navigation, waits, scrolling and the post-load script all share one
    deadline derived from the directive timeout.
    """

    def __init__(
        self,
        version_main: int | None = None,
        user_agent: str = USER_AGENT,
        viewport: tuple[int, int] = RENDER_VIEWPORT,
    ):
        self._version_main = version_main
        self._user_agent = user_agent
        self._viewport = viewport

    async def render(self, directive: ExtractionDirective) -> RenderedPage:
        deadline = time.monotonic() + directive.timeout
        try:
            # The worker thread cannot be cancelled; it stops at its own deadline
            # and still quits the browser
            page = await asyncio.wait_for(
                asyncio.to_thread(self._render_sync, directive, deadline),
                timeout=directive.timeout,
            )
        except asyncio.TimeoutError as e:
            raise FetchFailure(
                directive.url, f"rendering timed out after {directive.timeout}s"
            ) from e
        logfire.info(
            "Page rendered via browser",
            url=directive.url,
            content_length=len(page.html),
        )
        return page

    def _render_sync(
        self, directive: ExtractionDirective, deadline: float | None = None
    ) -> RenderedPage:
        if deadline is None:
            deadline = time.monotonic() + directive.timeout
        phase_deadline = deadline - RENDER_TEARDOWN_RESERVE_SECONDS

        driver = self._launch()
        try:
            self._navigate(driver, directive, phase_deadline)
            if directive.wait_for_selector:
                WebDriverWait(
                    driver,
                    min(WAIT_FOR_SELECTOR_TIMEOUT_SECONDS, _time_left(phase_deadline)),
                ).until(
                    EC.presence_of_element_located(
                        (By.CSS_SELECTOR, directive.wait_for_selector)
                    )
                )
                time.sleep(min(WAIT_FOR_SELECTOR_SETTLE_SECONDS, _time_left(phase_deadline)))
            if directive.scroll is not None:
                self._scroll_to_bottom(
                    driver,
                    directive.scroll.max_scrolls,
                    directive.scroll.delay_between_scrolls,
                    phase_deadline,
                )
            if directive.post_load_script:
                driver.set_script_timeout(self._require_time(directive, phase_deadline))
                # Side effects only; the return value is ignored
                driver.execute_script(directive.post_load_script)
            return RenderedPage(html=driver.page_source, final_url=driver.current_url)
        finally:
            try:
                driver.quit()
            except Exception as e:
                logfire.warning("Browser quit failed", url=directive.url, error=str(e))

    def _launch(self):
        """Start Chrome. Set CHROME_VERSION_MAIN if the driver and browser versions differ."""
        try:
            import undetected_chromedriver as uc
        except ImportError as e:
            raise RendererUnavailable(f"undetected_chromedriver not importable: {e}") from e

        width, height = self._viewport
        options = uc.ChromeOptions()
        options.add_argument(f"--window-size={width},{height}")
        options.add_argument(f"--user-agent={self._user_agent}")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        kwargs: dict = {"options": options, "headless": True}
        if self._version_main is not None:
            kwargs["version_main"] = self._version_main
        try:
            return uc.Chrome(**kwargs)
        except Exception as e:
            raise RendererUnavailable(f"Chrome could not be started: {e}") from e

    @staticmethod
    def _require_time(directive: ExtractionDirective, deadline: float) -> float:
        """Seconds left before ``deadline``; FetchFailure once none are."""
        left = _time_left(deadline)
        if left <= 0:
            raise FetchFailure(directive.url, f"timed out after {directive.timeout}s")
        return left

    @staticmethod
    def _navigate(driver, directive: ExtractionDirective, deadline: float) -> None:
        page_load_timeout = ChromeRenderer._require_time(directive, deadline)
        try:
            if directive.headers:
                driver.execute_cdp_cmd("Network.enable", {})
                driver.execute_cdp_cmd(
                    "Network.setExtraHTTPHeaders", {"headers": dict(directive.headers)}
                )
            driver.set_page_load_timeout(page_load_timeout)
            driver.get(directive.url)
        except WebDriverException as e:
            raise RenderNavigationError(f"Navigation to {directive.url} failed: {e.msg or e}") from e
        ChromeRenderer._wait_for_network_idle(driver, deadline)

    @staticmethod
    def _wait_for_network_idle(driver, deadline: float) -> None:
        """Block until no new resource loads for a short quiet period, or the deadline."""
        last_count = -1
        quiet_since = time.monotonic()
        while time.monotonic() < deadline:
            count = driver.execute_script(
                "return performance.getEntriesByType('resource').length"
            )
            now = time.monotonic()
            if count != last_count:
                last_count = count
                quiet_since = now
            elif now - quiet_since >= _NETWORK_IDLE_QUIET_SECONDS:
                return
            time.sleep(min(_NETWORK_IDLE_POLL_SECONDS, _time_left(deadline)))

    @staticmethod
    def _scroll_to_bottom(
        driver, max_scrolls: int, delay_seconds: float, deadline: float
    ) -> None:
        scrolls = 0
        try:
            while scrolls < max_scrolls and _time_left(deadline) >= delay_seconds:
                driver.execute_script("window.scrollTo(0, document.body.scrollHeight);")
                time.sleep(delay_seconds)
                scrolls += 1
            logfire.info("Scrolled to bottom", scrolls=scrolls, max_scrolls=max_scrolls)
        except WebDriverException as e:
            logfire.warning("Error scrolling to bottom", error=str(e))


class PageFetcher:
    """Fetch one page and extract data according to a directive.

    ``fetch`` never raises for ordinary page-load failures; it returns a
    record with ``success=False`` instead. The only error it raises is
    ``InputError`` for a directive whose URL is not absolute.
    """

    def __init__(
        self,
        renderer: PageRenderer | None = None,
        extractor: PageExtractor | None = None,
        metrics: ScrapingMetrics | None = None,
    ):
        """Initialize the page fetcher.

        Args:
            renderer: Rendering strategy; None fetches statically only
            extractor: DOM extractor (defaults to PageExtractor)
            metrics: Metrics sink (defaults to the process-wide instance)
        """
        self._renderer = renderer
        self._extractor = extractor or PageExtractor()
        self._metrics = metrics or get_scraping_metrics()

    @classmethod
    def from_settings(cls) -> "PageFetcher":
        settings = get_settings()
        renderer = None
        if settings.renderer_enabled:
            renderer = ChromeRenderer(version_main=settings.chrome_version_main)
        return cls(renderer=renderer)

    async def fetch(self, directive: ExtractionDirective) -> ExtractedRecord:
        """Run the directive, rendering first and falling back to static HTTP.

        Args:
            directive: What to fetch and extract

        Returns:
            ExtractedRecord; ``success=False`` with ``error`` on failure

        Raises:
            InputError: If the directive URL is malformed
        """
        if not is_valid_url(directive.url):
            raise InputError(f"Invalid URL provided: {directive.url!r}")

        start_time = time.monotonic()
        logfire.info("Starting page fetch", url=directive.url, selectors=directive.selectors)
        try:
            page, method = await self._load(directive)
            content = self._extractor.extract(page.html, directive, page.final_url)
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            self._metrics.record_fetch(False, elapsed_ms)
            logfire.warning(
                "Page fetch failed",
                url=directive.url,
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=elapsed_ms,
            )
            return ExtractedRecord.failed(directive.url, str(e) or type(e).__name__)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_fetch(True, elapsed_ms)
        logfire.info(
            "Page fetch completed",
            url=directive.url,
            method=method,
            elapsed_ms=elapsed_ms,
        )
        return ExtractedRecord(
            url=directive.url,
            success=True,
            data=content.data,
            text=content.text,
            links=content.links,
            images=content.images,
            tables=content.tables,
            method=method,
        )

    async def _load(self, directive: ExtractionDirective) -> tuple[RenderedPage, str]:
        if self._renderer is not None:
            try:
                return await self._renderer.render(directive), RENDERED
            except (RendererUnavailable, RenderNavigationError) as e:
                logfire.info(
                    "Renderer failed, falling back to static fetch",
                    url=directive.url,
                    reason=str(e),
                )
        if directive.scroll or directive.post_load_script or directive.wait_for_selector:
            logfire.info(
                "Static fetch ignores scroll, script and wait options",
                url=directive.url,
            )
        return await self._fetch_static(directive), STATIC_FALLBACK

    async def _fetch_static(self, directive: ExtractionDirective) -> RenderedPage:
        """Plain GET bounded by the directive timeout.

        Raises:
            FetchFailure: On transport errors, timeouts and non-2xx responses
        """
        headers = {**DEFAULT_HEADERS, **directive.headers}
        try:
            async with httpx.AsyncClient(
                timeout=directive.timeout,
                follow_redirects=True,
                headers=headers,
            ) as client:
                response = await asyncio.wait_for(
                    client.get(directive.url), timeout=directive.timeout
                )
                response.raise_for_status()
        except asyncio.TimeoutError as e:
            raise FetchFailure(directive.url, f"timed out after {directive.timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchFailure(directive.url, str(e) or type(e).__name__) from e

        logfire.info(
            "Page fetched (httpx)",
            url=directive.url,
            status_code=response.status_code,
            content_length=len(response.text),
        )
        return RenderedPage(html=response.text, final_url=str(response.url))
