"""DOM extraction shared by both fetch strategies.

The rendered strategy hands over the live DOM serialized by the browser,
the static strategy hands over the HTTP response body. Both go through
``PageExtractor.extract`` so a directive yields the same shape of data
whichever strategy ran.
"""

import re
from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from harvester.models.scraper_models import (
    ExtractionDirective,
    FieldValue,
    ImageEntry,
    LinkEntry,
    PageContent,
    TableEntry,
)

_WHITESPACE_RE = re.compile(r"\s+")


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


class PageExtractor:
    """Evaluate a directive against an HTML document."""

    # Elements whose text is never visible content
    _INVISIBLE_TAGS = ("script", "style", "noscript", "template")

    def __init__(self, parser: str = "html.parser"):
        self._parser = parser

    def extract(
        self, html: str, directive: ExtractionDirective, base_url: str | None = None
    ) -> PageContent:
        """Extract selectors and the optional text/links/images/tables.

        Args:
            html: Document to evaluate
            directive: What to extract
            base_url: URL the document was served from (for resolving relative links)

        Returns:
            PageContent with every directive field present in ``data``
        """
        soup = BeautifulSoup(html or "", self._parser)
        base = base_url or directive.url

        content = PageContent(data=self.select_fields(soup, directive.selectors))
        if directive.extract_links:
            content.links = self._extract_links(soup, base)
        if directive.extract_images:
            content.images = self._extract_images(soup, base)
        if directive.extract_tables:
            content.tables = self._extract_tables(soup)
        # Text last: it strips invisible elements from the tree
        if directive.extract_text:
            content.text = self._extract_text(soup)
        return content

    @staticmethod
    def select_fields(
        soup: BeautifulSoup, selectors: dict[str, str]
    ) -> dict[str, FieldValue]:
        """One match gives a string, several give a list, none gives None."""
        data: dict[str, FieldValue] = {}
        for name, selector in selectors.items():
            elements = soup.select(selector)
            if len(elements) == 1:
                data[name] = elements[0].get_text().strip()
            elif len(elements) > 1:
                data[name] = [el.get_text().strip() for el in elements]
            else:
                data[name] = None
        return data

    def _extract_text(self, soup: BeautifulSoup) -> str:
        for tag in soup(list(self._INVISIBLE_TAGS)):
            tag.decompose()
        root = soup.body or soup
        return _clean(root.get_text(separator=" "))

    @staticmethod
    def _extract_links(soup: BeautifulSoup, base_url: str) -> List[LinkEntry]:
        links: List[LinkEntry] = []
        for a in soup.select("a[href]"):
            href = (a.get("href") or "").strip()
            if not href or href.lower().startswith("javascript:"):
                continue
            links.append(
                LinkEntry(
                    href=urljoin(base_url, href),
                    text=_clean(a.get_text()),
                    title=_attr(a, "title") or "",
                )
            )
        return links

    @staticmethod
    def _extract_images(soup: BeautifulSoup, base_url: str) -> List[ImageEntry]:
        images: List[ImageEntry] = []
        for img in soup.select("img[src]"):
            src = (img.get("src") or "").strip()
            if not src:
                continue
            images.append(
                ImageEntry(
                    src=urljoin(base_url, src),
                    alt=_attr(img, "alt") or "",
                    title=_attr(img, "title") or "",
                    width=_attr(img, "width"),
                    height=_attr(img, "height"),
                )
            )
        return images

    @staticmethod
    def _extract_tables(soup: BeautifulSoup) -> List[TableEntry]:
        tables: List[TableEntry] = []
        for index, table in enumerate(soup.select("table")):
            rows = [
                [cell.get_text().strip() for cell in row.select("td, th")]
                for row in table.select("tr")
            ]
            tables.append(TableEntry(table_index=index, rows=rows))
        return tables


def _attr(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    if value is None:
        return None
    # Multi-valued attributes come back as lists
    if isinstance(value, list):
        value = " ".join(value)
    return value.strip()
