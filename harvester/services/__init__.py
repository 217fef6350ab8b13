"""Harvesting pipeline: fetch, search, crawl and enrich."""

from harvester.services.crawl_pipeline import CrawlPipeline
from harvester.services.enrichment import EnrichmentLayer, estimate_cost
from harvester.services.lead_finder import LeadFinder
from harvester.services.page_fetcher import ChromeRenderer, PageFetcher
from harvester.services.search_orchestrator import SearchOrchestrator

__all__ = [
    "ChromeRenderer",
    "CrawlPipeline",
    "EnrichmentLayer",
    "LeadFinder",
    "PageFetcher",
    "SearchOrchestrator",
    "estimate_cost",
]
