"""Typer-based harvesting CLI. Every command prints JSON on stdout."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import asyncio
import json
from typing import List, Optional

import typer

from harvester.config import get_settings
from harvester.constants import (
    DEFAULT_LEAD_RESULTS,
    DEFAULT_MAX_RESULTS,
    DEFAULT_SEARCH_ENGINES,
)
from harvester.exceptions import HarvestError
from harvester.models.scraper_models import ExtractionDirective
from harvester.services.crawl_pipeline import CrawlPipeline
from harvester.services.enrichment import EnrichmentLayer, estimate_cost
from harvester.services.input_sanitizer import (
    sanitize_search_query,
    validate_search_query,
)
from harvester.services.lead_finder import LeadFinder
from harvester.services.page_fetcher import PageFetcher
from harvester.services.search_orchestrator import SearchOrchestrator

app = typer.Typer(help="Search, scrape and enrich records from the web.")


def _build_fetcher() -> PageFetcher:
    return PageFetcher.from_settings()


def _build_pipeline() -> CrawlPipeline:
    fetcher = _build_fetcher()
    return CrawlPipeline(SearchOrchestrator(fetcher), fetcher)


def _parse_selectors(pairs: List[str]) -> dict[str, str]:
    """``name=css`` pairs to a selector mapping."""
    selectors: dict[str, str] = {}
    for pair in pairs:
        name, sep, css = pair.partition("=")
        if not sep or not name.strip() or not css.strip():
            raise typer.BadParameter(f"Expected name=css, got {pair!r}", param_hint="--selector")
        selectors[name.strip()] = css.strip()
    return selectors


def _emit(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail(error: HarvestError):
    typer.echo(json.dumps(error.to_dict()), err=True)
    raise typer.Exit(1)


def _checked_query(query: str, max_results: int, engines: List[str]) -> str:
    """Sanitize QUERY and validate it with the same rules as the HTTP API."""
    query = sanitize_search_query(query)
    try:
        validate_search_query(query, max_results, engines).raise_for_error()
    except HarvestError as e:
        _fail(e)
    return query


def _run(coro):
    """Run a pipeline coroutine; harvest errors exit with status 1 and a JSON error."""
    try:
        return asyncio.run(coro)
    except HarvestError as e:
        _fail(e)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text"),
    max_results: int = typer.Option(DEFAULT_MAX_RESULTS, "--max-results", "-n", min=1, max=100),
    engine: Optional[List[str]] = typer.Option(None, "--engine", "-e", help="Repeat for several engines"),
):
    """Search the engines and scrape every result."""
    engines = engine or list(DEFAULT_SEARCH_ENGINES)
    query = _checked_query(query, max_results, engines)
    result = _run(_build_pipeline().search_and_scrape(query, max_results, engines))
    _emit(result.model_dump(mode="json", by_alias=True))


@app.command()
def scrape(
    url: str = typer.Argument(..., help="Page to fetch"),
    selector: Optional[List[str]] = typer.Option(None, "--selector", "-s", help="name=css, repeatable"),
    links: bool = typer.Option(False, "--links"),
    images: bool = typer.Option(False, "--images"),
    tables: bool = typer.Option(False, "--tables"),
    no_text: bool = typer.Option(False, "--no-text"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=5, max=120, help="Seconds; defaults to the configured fetch timeout"
    ),
):
    """Fetch one page and extract data from it."""
    try:
        directive = ExtractionDirective(
            url=url,
            selectors=_parse_selectors(selector or []),
            extract_text=not no_text,
            extract_links=links,
            extract_images=images,
            extract_tables=tables,
            timeout=timeout if timeout is not None else get_settings().fetch_timeout_seconds,
        )
    except HarvestError as e:
        _fail(e)

    record = _run(_build_fetcher().fetch(directive))
    _emit(record.model_dump(mode="json"))
    if not record.success:
        raise typer.Exit(2)


@app.command()
def leads(
    query: str = typer.Argument(..., help="Search text"),
    max_results: int = typer.Option(DEFAULT_LEAD_RESULTS, "--max-results", "-n", min=1, max=100),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
    industry: Optional[str] = typer.Option(None, "--industry"),
    company_size: Optional[str] = typer.Option(None, "--company-size", help="e.g. 11-50"),
    engine: Optional[List[str]] = typer.Option(None, "--engine", "-e", help="Repeat for several engines"),
    no_enrich: bool = typer.Option(False, "--no-enrich"),
):
    """Find leads and enrich them with every configured provider."""
    engines = engine or list(DEFAULT_SEARCH_ENGINES)
    query = _checked_query(query, max_results, engines)
    finder = LeadFinder(_build_pipeline(), EnrichmentLayer())
    result = _run(
        finder.find_leads(
            query,
            max_results=max_results,
            location=location,
            industry=industry,
            company_size=company_size,
            enrich=not no_enrich,
            engines=engines,
        )
    )
    _emit(result.model_dump(mode="json", by_alias=True))


@app.command()
def cost(
    count: int = typer.Argument(..., help="Number of records"),
    provider: Optional[List[str]] = typer.Option(None, "--provider", "-p"),
):
    """Estimate the enrichment cost for COUNT records."""
    try:
        estimate = estimate_cost(count, provider or [])
    except HarvestError as e:
        _fail(e)
    _emit(estimate.model_dump(mode="json"))


if __name__ == "__main__":
    app()
