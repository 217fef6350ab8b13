"""Search results and the aggregate produced by a crawl."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from harvester.models.scraper_models import ExtractedRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchResult(BaseModel):
    """One candidate discovered on a search engine result page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    url: str
    search_engine: str = Field(alias="searchEngine")
    snippet: str = ""


class ScrapedSite(BaseModel):
    """A search result together with what was extracted from its page."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: str
    search_engine: str = Field(alias="searchEngine")
    scraped_data: ExtractedRecord = Field(alias="scrapedData")
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_result(cls, result: SearchResult, record: ExtractedRecord) -> "ScrapedSite":
        return cls(
            url=result.url,
            title=result.title,
            search_engine=result.search_engine,
            scraped_data=record,
        )


class CrawlResult(BaseModel):
    """Aggregate of one search-and-scrape run.

    ``scraped_sites`` is always an order-preserving subset of
    ``search_results``: failed candidates are dropped, never replaced.
    """

    model_config = ConfigDict(populate_by_name=True)

    query: str
    timestamp: datetime = Field(default_factory=_utcnow)
    search_results: list[SearchResult] = Field(
        default_factory=list, alias="searchResults"
    )
    scraped_sites: list[ScrapedSite] = Field(
        default_factory=list, alias="scrapedSites"
    )
    total_results: int = Field(default=0, alias="totalResults")
