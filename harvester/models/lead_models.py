"""Lead records: crawl output augmented by enrichment providers."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from harvester.models.scraper_models import ExtractedRecord
from harvester.models.search_models import ScrapedSite, SearchResult


class EmailContact(BaseModel):
    """An address found for a lead's domain."""

    email: str
    confidence: int | None = None
    type: str | None = None


class OrganizationInfo(BaseModel):
    """Organization metadata for a lead."""

    name: str
    website: str | None = None
    industry: str | None = None
    size: int | None = None
    location: str | None = None
    linkedin: str | None = None


class LocalBusiness(BaseModel):
    """A local-business directory listing matching a lead."""

    name: str
    source: str
    url: str | None = None
    address: str | None = None
    phone: str | None = None
    rating: float | None = None
    reviews: int | None = None
    price: str | None = None


class LeadEnrichment(BaseModel):
    """Contributions merged from every provider that succeeded."""

    emails: list[EmailContact] | None = None
    organization: OrganizationInfo | None = None
    local_listings: list[LocalBusiness] | None = None

    def merge(self, other: "LeadEnrichment") -> "LeadEnrichment":
        """Combine two partial enrichments; list fields concatenate, the first organization wins."""

        def _concat(a, b):
            if a is None:
                return b
            if b is None:
                return a
            return [*a, *b]

        return LeadEnrichment(
            emails=_concat(self.emails, other.emails),
            organization=self.organization or other.organization,
            local_listings=_concat(self.local_listings, other.local_listings),
        )


class LeadRecord(BaseModel):
    """A search result, its scraped page (if any) and an optional enrichment block."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: str
    search_engine: str = Field(alias="searchEngine")
    snippet: str = ""
    scraped_data: ExtractedRecord | None = Field(default=None, alias="scrapedData")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    enrichment: LeadEnrichment | None = None

    @classmethod
    def from_source(cls, source: "LeadRecord | ScrapedSite | SearchResult") -> "LeadRecord":
        if isinstance(source, LeadRecord):
            return source
        if isinstance(source, ScrapedSite):
            return cls(
                url=source.url,
                title=source.title,
                search_engine=source.search_engine,
                scraped_data=source.scraped_data,
                timestamp=source.timestamp,
            )
        return cls(
            url=source.url,
            title=source.title,
            search_engine=source.search_engine,
            snippet=source.snippet,
        )


class LeadSearchResult(BaseModel):
    """Aggregate returned by a lead search."""

    model_config = ConfigDict(populate_by_name=True)

    query: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    search_results: list[SearchResult] = Field(
        default_factory=list, alias="searchResults"
    )
    enriched_leads: list[LeadRecord] = Field(
        default_factory=list, alias="enrichedLeads"
    )
    total_results: int = Field(default=0, alias="totalResults")
    sources: list[str] = Field(default_factory=list)


class CostEstimate(BaseModel):
    """Monetary cost (USD) of enriching a number of records."""

    record_count: int
    scraping: float = 0.0
    google_places: float = 0.0
    yelp: float = 0.0
    hunter: float = 0.0
    apollo: float = 0.0
    total: float = 0.0
