"""Search-and-scrape: discover candidates, then fetch each one politely."""

import asyncio
from typing import Sequence

import logfire

from harvester.config import get_settings
from harvester.constants import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_SEARCH_ENGINES,
    SITE_FETCH_TIMEOUT_SECONDS,
)
from harvester.models.scraper_models import ExtractionDirective, is_valid_url
from harvester.models.search_models import CrawlResult, ScrapedSite, SearchResult
from harvester.services.metrics import get_scraping_metrics
from harvester.services.page_fetcher import PageFetcher
from harvester.services.search_orchestrator import SearchOrchestrator


class CrawlPipeline:
    """Run a search, then fetch every candidate with full extraction.

    Candidate failures are absorbed: a site that cannot be fetched is simply
    missing from ``scraped_sites``. Only the orchestrator's errors
    (``InputError``, ``OrchestratorExhaustion``) propagate.
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        fetcher: PageFetcher,
        delay_seconds: float | None = None,
    ):
        self._orchestrator = orchestrator
        self._fetcher = fetcher
        if delay_seconds is None:
            delay_seconds = get_settings().site_fetch_delay_seconds
        self._delay_seconds = delay_seconds

    async def search_and_scrape(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        engines: Sequence[str] = DEFAULT_SEARCH_ENGINES,
        cancel_event: asyncio.Event | None = None,
    ) -> CrawlResult:
        """Search for ``query`` and scrape up to ``max_results`` candidates.

        Args:
            query: Search text
            max_results: Bound on both search results and scraped sites
            engines: Engine identifiers for the orchestrator
            cancel_event: When set, stop before the next candidate and return
                what has been scraped so far

        Returns:
            CrawlResult with ``total_results == len(search_results)``
        """
        logfire.info(
            "Starting search and scrape",
            query=query,
            max_results=max_results,
            engines=list(engines),
        )
        search_results = await self._orchestrator.search(query, max_results, engines)
        scraped_sites = await self.scrape_all(search_results, max_results, cancel_event)

        logfire.info(
            "Search and scrape completed",
            query=query,
            search_results=len(search_results),
            scraped_sites=len(scraped_sites),
        )
        return CrawlResult(
            query=query,
            search_results=search_results,
            scraped_sites=scraped_sites,
            total_results=len(search_results),
        )

    async def scrape_all(
        self,
        candidates: Sequence[SearchResult],
        max_sites: int,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ScrapedSite]:
        """Fetch candidates in order; failures are dropped, order is kept."""
        metrics = get_scraping_metrics()
        scraped: list[ScrapedSite] = []
        fetched = 0

        for candidate in candidates[:max_sites]:
            if cancel_event is not None and cancel_event.is_set():
                logfire.info("Crawl cancelled", scraped=len(scraped))
                break
            if not is_valid_url(candidate.url):
                logfire.warning("Skipping invalid candidate URL", url=candidate.url)
                continue

            if fetched > 0 and self._delay_seconds > 0:
                await asyncio.sleep(self._delay_seconds)
            fetched += 1

            try:
                record = await self._fetcher.fetch(
                    ExtractionDirective.for_url(
                        candidate.url,
                        extract_text=True,
                        extract_links=True,
                        extract_images=True,
                        extract_tables=True,
                        timeout=SITE_FETCH_TIMEOUT_SECONDS,
                    )
                )
            except Exception as e:
                logfire.error("Error scraping website", url=candidate.url, error=str(e))
                continue

            if record.success:
                scraped.append(ScrapedSite.from_result(candidate, record))
            else:
                logfire.info("Candidate dropped", url=candidate.url, error=record.error)

        metrics.record_records(len(scraped))
        return scraped
