"""Harvesting endpoints.

Each handler consumes the caller's rate budget first, then delegates to
the pipeline. Collaborators are provided through FastAPI dependencies so
tests can swap them with ``app.dependency_overrides``.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request

from harvester.middleware.correlation_id import client_key_for
from harvester.middleware.rate_limiter import RateLimiter, get_rate_limiter
from harvester.models.lead_models import CostEstimate
from harvester.models.request_models import (
    LeadSearchRequest,
    SearchScrapeRequest,
    UniversalScrapeRequest,
)
from harvester.services.crawl_pipeline import CrawlPipeline
from harvester.services.enrichment import EnrichmentLayer, estimate_cost
from harvester.services.lead_finder import LeadFinder
from harvester.services.page_fetcher import PageFetcher
from harvester.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


def get_page_fetcher() -> PageFetcher:
    return PageFetcher.from_settings()


def get_crawl_pipeline(fetcher: PageFetcher = Depends(get_page_fetcher)) -> CrawlPipeline:
    return CrawlPipeline(SearchOrchestrator(fetcher), fetcher)


def get_enrichment_layer() -> EnrichmentLayer:
    return EnrichmentLayer()


def get_lead_finder(
    pipeline: CrawlPipeline = Depends(get_crawl_pipeline),
    enrichment: EnrichmentLayer = Depends(get_enrichment_layer),
) -> LeadFinder:
    return LeadFinder(pipeline, enrichment)


def get_limiter() -> RateLimiter:
    return get_rate_limiter()


def _rate_limited(tier: str):
    """Dependency that spends one point of ``tier`` for the calling client."""

    def consume(request: Request, limiter: RateLimiter = Depends(get_limiter)) -> str:
        client_key = getattr(request.state, "client_key", None) or client_key_for(request)
        limiter.consume(client_key, tier)
        return client_key

    return consume


@router.post("/scrape")
async def scrape(
    body: UniversalScrapeRequest,
    client_key: str = Depends(_rate_limited("general")),
    fetcher: PageFetcher = Depends(get_page_fetcher),
):
    """Fetch one page and extract data according to the directive in the body."""
    directive = body.to_directive()
    logger.info("Universal scrape requested for %s by %s", directive.url, client_key)

    record = await fetcher.fetch(directive)
    return {
        "success": True,
        "data": record.model_dump(mode="json", by_alias=True),
        "metadata": {
            "url": directive.url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": record.method,
        },
    }


@router.post("/search-scrape")
async def search_scrape(
    body: SearchScrapeRequest,
    client_key: str = Depends(_rate_limited("scrape")),
    pipeline: CrawlPipeline = Depends(get_crawl_pipeline),
):
    """Search the requested engines and scrape every candidate."""
    logger.info("Search and scrape requested by %s", client_key)
    result = await pipeline.search_and_scrape(
        body.query, body.max_results, body.search_engines
    )
    return {"success": True, "data": result.model_dump(mode="json", by_alias=True)}


@router.post("/leads")
async def find_leads(
    body: LeadSearchRequest,
    client_key: str = Depends(_rate_limited("scrape")),
    finder: LeadFinder = Depends(get_lead_finder),
):
    """Search, scrape and enrich leads; the cost covers the providers in use."""
    logger.info("Lead search requested by %s", client_key)
    result = await finder.find_leads(
        body.query,
        max_results=body.max_results,
        location=body.location,
        industry=body.industry,
        company_size=body.company_size,
        enrich=body.enrich_data,
        engines=body.search_engines,
    )
    providers = finder.enrichment.provider_names if body.enrich_data else []
    cost = estimate_cost(len(result.enriched_leads), providers)
    return {
        "success": True,
        "data": result.model_dump(mode="json", by_alias=True),
        "cost": cost.model_dump(mode="json"),
    }


@router.get("/cost", response_model=CostEstimate)
async def cost(
    count: int = Query(..., ge=0),
    providers: list[str] | None = Query(default=None),
    _client_key: str = Depends(_rate_limited("general")),
):
    """Estimate the enrichment cost of ``count`` records."""
    return estimate_cost(count, providers or [])
