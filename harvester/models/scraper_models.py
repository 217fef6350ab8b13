"""Models for page fetches: the extraction directive and the extracted record."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal
from urllib.parse import urlparse

import soupsieve
from pydantic import BaseModel, ConfigDict, Field, field_validator

from harvester.constants import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_SCROLLS,
    DEFAULT_SCROLL_DELAY_SECONDS,
    MAX_FETCH_TIMEOUT_SECONDS,
    MAX_SCROLL_DELAY_SECONDS,
    MAX_SCROLLS_LIMIT,
    MIN_FETCH_TIMEOUT_SECONDS,
    MIN_SCROLL_DELAY_SECONDS,
)
from harvester.exceptions import InputError

FetchMethod = Literal["rendered", "static-fallback"]
FieldValue = str | list[str] | None

RENDERED: FetchMethod = "rendered"
STATIC_FALLBACK: FetchMethod = "static-fallback"


def is_valid_url(url: str | None) -> bool:
    """True for an absolute, well-formed http(s) URL with a host."""
    if not url or not isinstance(url, str) or any(c.isspace() for c in url):
        return False
    try:
        parsed = urlparse(url)
        # Accessing .port validates the netloc (raises on garbage ports)
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class ScrollPolicy(BaseModel):
    """Scroll-to-bottom policy for infinite-scroll pages."""

    model_config = ConfigDict(frozen=True)

    max_scrolls: int = Field(
        default=DEFAULT_MAX_SCROLLS, ge=1, le=MAX_SCROLLS_LIMIT
    )
    delay_between_scrolls: float = Field(
        default=DEFAULT_SCROLL_DELAY_SECONDS,
        ge=MIN_SCROLL_DELAY_SECONDS,
        le=MAX_SCROLL_DELAY_SECONDS,
        description="Pause after each scroll (seconds)",
    )


class ExtractionDirective(BaseModel):
    """Immutable description of what to extract from one page.

    Construction fails with ``InputError`` when the URL is not absolute
    or a selector is not valid CSS, so a bad directive never reaches the
    network.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    selectors: dict[str, str] = Field(default_factory=dict)
    extract_text: bool = True
    extract_links: bool = False
    extract_images: bool = False
    extract_tables: bool = False
    wait_for_selector: str | None = None
    scroll: ScrollPolicy | None = None
    post_load_script: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(
        default=DEFAULT_FETCH_TIMEOUT_SECONDS,
        ge=MIN_FETCH_TIMEOUT_SECONDS,
        le=MAX_FETCH_TIMEOUT_SECONDS,
        description="Bound on the whole fetch (seconds)",
    )

    @classmethod
    def for_url(cls, url: str, **options) -> "ExtractionDirective":
        """Directive for ``url`` with no selectors; raises ``InputError`` for a bad URL."""
        return cls(url=url, **options)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip() if isinstance(value, str) else value
        if not is_valid_url(value):
            raise InputError(f"Invalid URL provided: {value!r}")
        return value

    @field_validator("selectors")
    @classmethod
    def _check_selectors(cls, value: dict[str, str]) -> dict[str, str]:
        for name, selector in value.items():
            _compile_selector(selector, name)
        return value

    @field_validator("wait_for_selector", "post_load_script")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value

    @field_validator("wait_for_selector")
    @classmethod
    def _check_wait_selector(cls, value: str | None) -> str | None:
        if value is not None:
            _compile_selector(value, "wait_for_selector")
        return value


def _compile_selector(selector: str, name: str) -> None:
    if not selector or not selector.strip():
        raise InputError(f"Selector for {name!r} is empty")
    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise InputError(f"Invalid CSS selector for {name!r}: {selector!r}") from e


class LinkEntry(BaseModel):
    """One ``<a href>`` found on a page."""

    href: str
    text: str = ""
    title: str = ""


class ImageEntry(BaseModel):
    """One ``<img src>`` found on a page."""

    src: str
    alt: str = ""
    title: str = ""
    width: str | None = None
    height: str | None = None


class TableEntry(BaseModel):
    """One ``<table>`` as a list of rows of cell texts."""

    table_index: int
    rows: list[list[str]] = Field(default_factory=list)


class ExtractedRecord(BaseModel):
    """Output of one fetch. Never mutated after construction."""

    model_config = ConfigDict(frozen=True)

    url: str
    success: bool
    data: dict[str, FieldValue] = Field(default_factory=dict)
    text: str | None = None
    links: list[LinkEntry] | None = None
    images: list[ImageEntry] | None = None
    tables: list[TableEntry] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    method: FetchMethod | None = None
    error: str | None = None

    @classmethod
    def failed(cls, url: str, error: str) -> "ExtractedRecord":
        """Build the ``success=False`` record for a fetch that did not complete."""
        return cls(url=url, success=False, error=error)


@dataclass
class RenderedPage:
    """HTML of a page plus the URL it was finally served from."""

    html: str
    final_url: str


@dataclass
class PageContent:
    """Everything the extractor pulled out of one DOM."""

    data: dict[str, FieldValue] = field(default_factory=dict)
    text: str | None = None
    links: List[LinkEntry] | None = None
    images: List[ImageEntry] | None = None
    tables: List[TableEntry] | None = None
