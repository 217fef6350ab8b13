"""Request bodies accepted by the HTTP layer.

Field names are camelCase on the wire (``maxResults``, ``waitForSelector``);
snake_case is accepted too. Durations on the wire are milliseconds.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from harvester.config import get_settings
from harvester.constants import (
    DEFAULT_LEAD_RESULTS,
    DEFAULT_MAX_RESULTS,
    DEFAULT_SEARCH_ENGINES,
    MAX_RESULTS_LIMIT,
)
from harvester.models.scraper_models import ExtractionDirective, ScrollPolicy
from harvester.services.input_sanitizer import (
    sanitize_search_query,
    validate_search_query,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UniversalScrapeRequest(_CamelModel):
    """Body of ``POST /api/scrape``."""

    url: str
    selectors: dict[str, str] = Field(default_factory=dict)
    wait_for_selector: str | None = None
    scroll_to_bottom: bool = False
    max_scrolls: int = Field(default=5, ge=1, le=20)
    delay_between_scrolls: int = Field(default=2000, ge=500, le=10000)
    extract_text: bool = True
    extract_links: bool = False
    extract_images: bool = False
    extract_tables: bool = False
    custom_script: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    # Milliseconds; unset means the configured fetch timeout
    timeout: int | None = Field(default=None, ge=5000, le=120000)

    def to_directive(self) -> ExtractionDirective:
        """Build the immutable directive; raises ``InputError`` for a bad URL or selector."""
        scroll = None
        if self.scroll_to_bottom:
            scroll = ScrollPolicy(
                max_scrolls=self.max_scrolls,
                delay_between_scrolls=self.delay_between_scrolls / 1000,
            )
        return ExtractionDirective(
            url=self.url,
            selectors=self.selectors,
            extract_text=self.extract_text,
            extract_links=self.extract_links,
            extract_images=self.extract_images,
            extract_tables=self.extract_tables,
            wait_for_selector=self.wait_for_selector,
            scroll=scroll,
            post_load_script=self.custom_script,
            headers=self.headers,
            timeout=(
                self.timeout / 1000
                if self.timeout is not None
                else get_settings().fetch_timeout_seconds
            ),
        )


class SearchScrapeRequest(_CamelModel):
    """Body of ``POST /api/search-scrape``."""

    query: str
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, ge=1, le=MAX_RESULTS_LIMIT)
    search_engines: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_ENGINES)
    )

    @field_validator("query", mode="before")
    @classmethod
    def _sanitize_query(cls, value):
        return sanitize_search_query(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_descriptor(self):
        result = validate_search_query(
            self.query, self.max_results, self.search_engines
        )
        if not result.is_valid:
            raise ValueError(result.error_message)
        return self


class LeadSearchRequest(_CamelModel):
    """Body of ``POST /api/leads``."""

    query: str
    max_results: int = Field(default=DEFAULT_LEAD_RESULTS, ge=1, le=MAX_RESULTS_LIMIT)
    search_engines: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_ENGINES)
    )
    location: str | None = Field(default=None, max_length=100)
    industry: str | None = Field(default=None, max_length=100)
    # Headcount band such as "11-50"
    company_size: str | None = Field(default=None, max_length=100)
    enrich_data: bool = True

    @field_validator("query", mode="before")
    @classmethod
    def _sanitize_query(cls, value):
        return sanitize_search_query(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_descriptor(self):
        result = validate_search_query(
            self.query, self.max_results, self.search_engines
        )
        if not result.is_valid:
            raise ValueError(result.error_message)
        return self
