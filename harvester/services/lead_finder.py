"""Lead search: a crawl followed by optional enrichment."""

from typing import Sequence

import logfire

from harvester.constants import DEFAULT_LEAD_RESULTS, DEFAULT_SEARCH_ENGINES
from harvester.models.lead_models import LeadRecord, LeadSearchResult
from harvester.services.crawl_pipeline import CrawlPipeline
from harvester.services.enrichment import EnrichmentLayer

WEB_SEARCH_SOURCE = "web_search"


def build_lead_query(
    query: str,
    location: str | None = None,
    industry: str | None = None,
    company_size: str | None = None,
) -> str:
    """Search text for a lead search: the keywords narrowed by the optional filters.

    ``("dentists", "Austin", None, "11-50")`` searches for
    ``dentists Austin 11-50 employees``.
    """
    parts = [query.strip()]
    if location and location.strip():
        parts.append(location.strip())
    if industry and industry.strip():
        parts.append(industry.strip())
    if company_size and company_size.strip():
        parts.append(f"{company_size.strip()} employees")
    return " ".join(parts)


class LeadFinder:
    """Find leads for a query and enrich them with provider data."""

    def __init__(self, pipeline: CrawlPipeline, enrichment: EnrichmentLayer):
        self._pipeline = pipeline
        self._enrichment = enrichment

    @property
    def enrichment(self) -> EnrichmentLayer:
        return self._enrichment

    async def find_leads(
        self,
        query: str,
        max_results: int = DEFAULT_LEAD_RESULTS,
        location: str | None = None,
        industry: str | None = None,
        company_size: str | None = None,
        enrich: bool = True,
        engines: Sequence[str] = DEFAULT_SEARCH_ENGINES,
    ) -> LeadSearchResult:
        """Crawl for ``query`` and turn every scraped site into a lead.

        Args:
            query: Search text
            max_results: Bound on search results and leads
            location: Place appended to the search text and used by
                local-business directories
            industry: Industry appended to the search text
            company_size: Headcount band such as ``11-50``, searched as
                "<band> employees"
            enrich: Run the enrichment layer over the leads
            engines: Search engines to query

        Returns:
            LeadSearchResult; ``sources`` names web search plus every
            provider that contributed to at least one lead

        Raises:
            InputError: Unknown engine id
            OrchestratorExhaustion: Every search engine failed
        """
        search_query = build_lead_query(query, location, industry, company_size)
        logfire.info(
            "Starting lead search",
            query=query,
            search_query=search_query,
            max_results=max_results,
            location=location,
            enrich=enrich,
        )
        crawl = await self._pipeline.search_and_scrape(
            search_query, max_results, engines
        )
        sources = [WEB_SEARCH_SOURCE]

        if enrich:
            leads, contributors = await self._enrichment.enrich_with_sources(
                crawl.scraped_sites, location
            )
            sources.extend(contributors)
        else:
            leads = [LeadRecord.from_source(site) for site in crawl.scraped_sites]

        logfire.info(
            "Lead search completed",
            query=query,
            total_results=crawl.total_results,
            leads=len(leads),
            sources=sources,
        )
        return LeadSearchResult(
            query=query,
            search_results=crawl.search_results,
            enriched_leads=leads,
            total_results=crawl.total_results,
            sources=sources,
        )
