"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Infrastructure: respx_mock, mock_settings, mock_logfire, logfire_capture
2. Fakes: FakeRenderer, StubFetcher and the fixtures building them
3. Sample data: sample_html, sample_search_results, sample_scraped_sites
4. E2E: test_client with pipeline dependencies overridden
"""

import os
from typing import Callable
from unittest.mock import MagicMock, Mock, patch

import logfire
import pytest
import respx

# Suppress warnings when logfire isn't configured in tests
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from harvester.exceptions import RendererUnavailable, RenderNavigationError
from harvester.middleware.rate_limiter import reset_rate_limiter
from harvester.models.scraper_models import (
    ExtractedRecord,
    ExtractionDirective,
    LinkEntry,
    RenderedPage,
)
from harvester.models.search_models import ScrapedSite, SearchResult
from harvester.services.metrics import reset_scraping_metrics

SAMPLE_HTML = """
<html>
<head><title>Example Domain</title><style>body { color: red; }</style></head>
<body>
    <h1>Hello</h1>
    <p class="item">First item</p>
    <p class="item">Second item</p>
    <a href="/about" title="About us">About</a>
    <a href="javascript:void(0)">Ignored</a>
    <img src="/logo.png" alt="Logo" width="120" height="40">
    <table>
        <tr><th>Name</th><th>Price</th></tr>
        <tr><td>Widget</td><td>9.99</td></tr>
    </table>
    <script>var hidden = "secret";</script>
</body>
</html>
"""


@pytest.fixture(autouse=True)
def _reset_globals():
    """Fresh rate limiter and metrics for every test."""
    reset_rate_limiter()
    reset_scraping_metrics()
    yield
    reset_rate_limiter()
    reset_scraping_metrics()


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock(assert_all_called=False) as router:
        yield router


# =============================================================================
# Fakes
# =============================================================================


class FakeRenderer:
    """Renderer double: returns fixed HTML or raises a configured error."""

    def __init__(self, html: str = "", final_url: str | None = None, error: Exception | None = None):
        self.html = html
        self.final_url = final_url
        self.error = error
        self.calls: list[ExtractionDirective] = []

    async def render(self, directive: ExtractionDirective) -> RenderedPage:
        self.calls.append(directive)
        if self.error is not None:
            raise self.error
        return RenderedPage(html=self.html, final_url=self.final_url or directive.url)


class StubFetcher:
    """PageFetcher double keyed by URL prefix.

    ``responses`` maps a URL prefix to an ExtractedRecord, an exception to
    raise, or a callable taking the directive. Unmatched URLs produce a
    failed record.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = dict(responses or {})
        self.calls: list[ExtractionDirective] = []

    async def fetch(self, directive: ExtractionDirective) -> ExtractedRecord:
        self.calls.append(directive)
        for prefix, response in self.responses.items():
            if directive.url.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(directive)
                return response
        return ExtractedRecord.failed(directive.url, "no stub for url")


def make_results_page(links: list[tuple[str, str]], text: str = "", url: str = "https://www.google.com/search") -> ExtractedRecord:
    """A successful search engine result page record."""
    return ExtractedRecord(
        url=url,
        success=True,
        text=text,
        links=[LinkEntry(href=href, text=title) for href, title in links],
        method="static-fallback",
    )


def make_site_record(url: str, text: str = "Site content") -> ExtractedRecord:
    return ExtractedRecord(
        url=url,
        success=True,
        text=text,
        links=[],
        images=[],
        tables=[],
        method="rendered",
    )


@pytest.fixture
def fake_renderer_factory() -> Callable[..., FakeRenderer]:
    return FakeRenderer


@pytest.fixture
def unavailable_renderer():
    """Renderer that cannot start (no browser in the environment)."""
    return FakeRenderer(error=RendererUnavailable("Chrome not found"))


@pytest.fixture
def failing_navigation_renderer():
    return FakeRenderer(error=RenderNavigationError("net::ERR_NAME_NOT_RESOLVED"))


@pytest.fixture
def stub_fetcher_factory() -> Callable[..., StubFetcher]:
    return StubFetcher


# =============================================================================
# Sample Data
# =============================================================================


@pytest.fixture
def sample_html():
    return SAMPLE_HTML


@pytest.fixture
def sample_search_results():
    return [
        SearchResult(title="Alpha Bistro", url="https://alpha.example.com/", search_engine="google"),
        SearchResult(title="Beta Diner", url="https://beta.example.com/", search_engine="google"),
        SearchResult(title="Gamma Grill", url="https://gamma.example.com/", search_engine="bing"),
    ]


@pytest.fixture
def sample_scraped_sites(sample_search_results):
    return [
        ScrapedSite.from_result(result, make_site_record(result.url))
        for result in sample_search_results
    ]


# =============================================================================
# Settings & Logging
# =============================================================================


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with no renderer, no politeness delays and no provider keys."""
    from harvester.config import Settings

    settings = Settings(
        env="local",
        logfire_token=None,
        sentry_dsn=None,
        renderer_enabled=False,
        search_engine_delay_seconds=0,
        site_fetch_delay_seconds=0,
        hunter_api_key=None,
        apollo_api_key=None,
        google_api_key=None,
        yelp_api_key=None,
    )

    for target in (
        "harvester.config.get_settings",
        "harvester.cli.harvest_cli.get_settings",
        "harvester.main.get_settings",
        "harvester.api.health.get_settings",
        "harvester.logging_config.get_settings",
        "harvester.middleware.rate_limiter.get_settings",
        "harvester.models.request_models.get_settings",
        "harvester.services.page_fetcher.get_settings",
        "harvester.services.search_orchestrator.get_settings",
        "harvester.services.crawl_pipeline.get_settings",
        "harvester.services.enrichment.get_settings",
    ):
        monkeypatch.setattr(target, lambda: settings)
    return settings


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    This fixture patches Logfire to capture log calls for assertion.
    """
    captured_logs = []

    def capture(level):
        def _capture(*args, **kwargs):
            captured_logs.append((level, args, kwargs))

        return _capture

    with (
        patch("logfire.info", side_effect=capture("info")),
        patch("logfire.warning", side_effect=capture("warning")),
        patch("logfire.error", side_effect=capture("error")),
    ):
        yield captured_logs


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Useful for tests that don't need to verify logging behavior.
    """
    from contextlib import contextmanager

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warning = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    for attr in (
        "info",
        "warning",
        "error",
        "span",
        "configure",
        "instrument_fastapi",
        "instrument_pydantic",
    ):
        monkeypatch.setattr(logfire, attr, getattr(mock_logfire_module, attr))

    return mock_logfire_module


# =============================================================================
# E2E
# =============================================================================


@pytest.fixture
def e2e_fetcher(sample_html):
    """Fetcher for API tests: search pages and sites answered from memory."""
    results_page = make_results_page(
        [
            ("https://alpha.example.com/", "Alpha Bistro"),
            ("https://beta.example.com/", "Beta Diner"),
            ("https://www.google.com/preferences", "Settings"),
        ],
        text="Alpha Bistro great food Beta Diner breakfast",
    )
    return StubFetcher(
        {
            "https://www.google.com/search": results_page,
            "https://www.bing.com/search": RuntimeError("bing unreachable"),
            "https://alpha.example.com": make_site_record("https://alpha.example.com/"),
            "https://beta.example.com": ExtractedRecord.failed("https://beta.example.com/", "timeout"),
            "https://example.com": lambda d: ExtractedRecord(
                url=d.url, success=True, data={"title": "Hello"}, method="static-fallback"
            ),
        }
    )


@pytest.fixture
def test_client(mock_settings, mock_logfire, e2e_fetcher):
    """FastAPI TestClient for E2E tests with in-memory pipeline collaborators."""
    from fastapi.testclient import TestClient

    from harvester.api import scrape
    from harvester.main import app
    from harvester.services.crawl_pipeline import CrawlPipeline
    from harvester.services.enrichment import EnrichmentLayer
    from harvester.services.search_orchestrator import SearchOrchestrator

    def pipeline():
        return CrawlPipeline(
            SearchOrchestrator(e2e_fetcher, delay_seconds=0), e2e_fetcher, delay_seconds=0
        )

    app.dependency_overrides[scrape.get_page_fetcher] = lambda: e2e_fetcher
    app.dependency_overrides[scrape.get_crawl_pipeline] = pipeline
    app.dependency_overrides[scrape.get_enrichment_layer] = lambda: EnrichmentLayer(providers=[])
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
