"""Multi-engine search: query result pages, parse candidates, deduplicate."""

import asyncio
from dataclasses import dataclass
from typing import Iterable, Sequence
from urllib.parse import parse_qs, urlencode, urlparse

import logfire

from harvester.config import get_settings
from harvester.constants import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_SEARCH_ENGINES,
    SEARCH_PAGE_TIMEOUT_SECONDS,
    SNIPPET_CHARS_AFTER_TITLE,
    SNIPPET_CHARS_BEFORE_TITLE,
    SNIPPET_FALLBACK_CHARS,
)
from harvester.exceptions import InputError, OrchestratorExhaustion
from harvester.models.scraper_models import (
    ExtractedRecord,
    ExtractionDirective,
    is_valid_url,
)
from harvester.models.search_models import SearchResult
from harvester.services.page_fetcher import PageFetcher

# Result pages link back to these; such links are navigation, not candidates
SEARCH_ENGINE_DOMAINS = ("google.com", "bing.com", "duckduckgo.com", "yahoo.com")


@dataclass(frozen=True)
class SearchEngine:
    """A search backend: result page URL and the query parameter name."""

    name: str
    base_url: str
    query_param: str = "q"

    def build_url(self, query: str) -> str:
        return f"{self.base_url}?{urlencode({self.query_param: query})}"


SEARCH_ENGINES: dict[str, SearchEngine] = {
    "google": SearchEngine("google", "https://www.google.com/search"),
    "bing": SearchEngine("bing", "https://www.bing.com/search"),
    "duckduckgo": SearchEngine("duckduckgo", "https://html.duckduckgo.com/html/"),
}


def is_search_engine_url(url: str) -> bool:
    """True when the URL's host is a search engine domain or a subdomain of one."""
    host = (urlparse(url).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in SEARCH_ENGINE_DOMAINS)


def extract_snippet(text: str | None, title: str | None) -> str:
    """Window of the result page text around the first occurrence of ``title``."""
    if not text or not title:
        return ""
    index = text.find(title)
    if index == -1:
        return text[:SNIPPET_FALLBACK_CHARS] + "..."
    start = max(0, index - SNIPPET_CHARS_BEFORE_TITLE)
    end = min(len(text), index + SNIPPET_CHARS_AFTER_TITLE)
    return text[start:end] + "..."


def dedupe_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


def _unwrap_redirect(href: str) -> str:
    """Resolve the target of Google ``/url?q=`` and DuckDuckGo ``uddg=`` redirect links."""
    parsed = urlparse(href)
    host = (parsed.hostname or "").lower()
    params = parse_qs(parsed.query)
    if parsed.path == "/url" and host.endswith("google.com"):
        target = params.get("q") or params.get("url")
        if target:
            return target[0]
    if host.endswith("duckduckgo.com") and "uddg" in params:
        return params["uddg"][0]
    return href


class SearchOrchestrator:
    """Queries each requested engine in turn and merges the candidates."""

    def __init__(
        self,
        fetcher: PageFetcher,
        engines: dict[str, SearchEngine] | None = None,
        delay_seconds: float | None = None,
    ):
        self._fetcher = fetcher
        self._engines = engines if engines is not None else SEARCH_ENGINES
        if delay_seconds is None:
            delay_seconds = get_settings().search_engine_delay_seconds
        self._delay_seconds = delay_seconds

    async def search(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        engines: Sequence[str] = DEFAULT_SEARCH_ENGINES,
    ) -> list[SearchResult]:
        """Search every engine, then dedupe by URL and truncate.

        Args:
            query: Search text
            max_results: Upper bound on returned results
            engines: Engine identifiers, queried in this order

        Returns:
            At most ``max_results`` unique results in first-seen order

        Raises:
            InputError: Unknown engine id or empty engine list
            OrchestratorExhaustion: Every requested engine failed
        """
        # Each engine is queried once, in first-mentioned order
        engines = list(dict.fromkeys(engines))
        unknown = [name for name in engines if name not in self._engines]
        if unknown:
            raise InputError(f"Invalid search engines: {', '.join(unknown)}")
        if not engines:
            raise InputError("At least one search engine is required")

        logfire.info(
            "Starting search", query=query, max_results=max_results, engines=engines
        )
        collected: list[SearchResult] = []
        errors: dict[str, str] = {}

        for position, name in enumerate(engines):
            if position > 0 and self._delay_seconds > 0:
                await asyncio.sleep(self._delay_seconds)
            engine = self._engines[name]
            try:
                record = await self._fetcher.fetch(
                    ExtractionDirective.for_url(
                        engine.build_url(query),
                        extract_text=True,
                        extract_links=True,
                        timeout=SEARCH_PAGE_TIMEOUT_SECONDS,
                    )
                )
            except Exception as e:
                errors[name] = str(e)
                logfire.error("Error searching engine", engine=name, error=str(e))
                continue

            if not record.success:
                errors[name] = record.error or "fetch failed"
                logfire.warning("Search engine fetch failed", engine=name, error=record.error)
                continue

            engine_results = self.parse_results(record, name)
            logfire.info("Engine searched", engine=name, result_count=len(engine_results))
            collected.extend(engine_results)

        if len(errors) == len(engines):
            raise OrchestratorExhaustion(engines, errors)

        results = dedupe_results(collected)[:max_results]
        logfire.info(
            "Search completed",
            query=query,
            collected=len(collected),
            returned=len(results),
        )
        return results

    @staticmethod
    def parse_results(record: ExtractedRecord, engine: str) -> list[SearchResult]:
        """Turn a result page's links into candidates, skipping engine navigation."""
        results: list[SearchResult] = []
        for index, link in enumerate(record.links or []):
            url = _unwrap_redirect(link.href)
            if not is_valid_url(url) or is_search_engine_url(url):
                continue
            results.append(
                SearchResult(
                    title=link.text or f"Result {index + 1}",
                    url=url,
                    search_engine=engine,
                    snippet=extract_snippet(record.text, link.text),
                )
            )
        return results
