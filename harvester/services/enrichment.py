"""Lead enrichment from external data providers.

Each provider contributes one slice of ``LeadEnrichment`` (emails, an
organization, local listings). Providers are called one at a time per
record and every call is isolated: a provider that fails, times out or has
no API key simply contributes nothing. The list passed in always comes back
with the same length and order.
"""

from typing import Iterable, Protocol, Sequence
from urllib.parse import urlparse

import httpx
import logfire

from harvester.config import Settings, get_settings
from harvester.constants import (
    APOLLO_COST_PER_RECORD,
    GOOGLE_PLACES_COST_PER_RECORD,
    HUNTER_COST_PER_RECORD,
    SCRAPING_COST_PER_RECORD,
    YELP_COST_PER_RECORD,
)
from harvester.exceptions import EnrichmentFailure, InputError, MissingCredential
from harvester.logging_config import redact_text
from harvester.models.lead_models import (
    CostEstimate,
    EmailContact,
    LeadEnrichment,
    LeadRecord,
    LocalBusiness,
    OrganizationInfo,
)
from harvester.models.search_models import ScrapedSite, SearchResult

HUNTER_DOMAIN_SEARCH_URL = "https://api.hunter.io/v2/domain-search"
APOLLO_ORGANIZATION_SEARCH_URL = "https://api.apollo.io/v1/organizations/search"
GOOGLE_PLACES_TEXT_SEARCH_URL = (
    "https://maps.googleapis.com/maps/api/place/textsearch/json"
)
YELP_BUSINESS_SEARCH_URL = "https://api.yelp.com/v3/businesses/search"

# Local listings kept per lead and directory
MAX_LOCAL_LISTINGS = 3

PROVIDER_COSTS: dict[str, float] = {
    "google_places": GOOGLE_PLACES_COST_PER_RECORD,
    "yelp": YELP_COST_PER_RECORD,
    "hunter": HUNTER_COST_PER_RECORD,
    "apollo": APOLLO_COST_PER_RECORD,
}


class EnrichmentProvider(Protocol):
    """Protocol for an enrichment data source."""

    name: str

    async def lookup(
        self, lead: LeadRecord, location: str | None = None
    ) -> LeadEnrichment | None:
        """Return this provider's contribution for ``lead``, or None.

        Raises:
            MissingCredential: The provider has no API key configured
            Exception: Any transport or API error
        """
        ...


def extract_domain(url: str) -> str | None:
    """Bare host of ``url`` with a leading ``www.`` removed."""
    host = urlparse(url).hostname
    if not host:
        return None
    return host[4:] if host.startswith("www.") else host


class _HttpProvider:
    name = "provider"

    def __init__(self, api_key: str | None, timeout_seconds: float = 10.0):
        self._api_key = api_key
        self._timeout = timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _require_key(self) -> str:
        if not self._api_key:
            raise MissingCredential(self.name)
        return self._api_key


class HunterEmailProvider(_HttpProvider):
    """Email addresses published for the lead's domain."""

    name = "hunter"

    async def lookup(
        self, lead: LeadRecord, location: str | None = None
    ) -> LeadEnrichment | None:
        api_key = self._require_key()
        domain = extract_domain(lead.url)
        if not domain:
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                HUNTER_DOMAIN_SEARCH_URL,
                params={"domain": domain, "api_key": api_key},
            )
            response.raise_for_status()
            payload = response.json()

        emails = (payload.get("data") or {}).get("emails") or []
        if not emails:
            return None
        return LeadEnrichment(
            emails=[
                EmailContact(
                    email=item["value"],
                    confidence=item.get("confidence"),
                    type=item.get("type"),
                )
                for item in emails
                if item.get("value")
            ]
        )


class ApolloOrganizationProvider(_HttpProvider):
    """Organization metadata matched on the lead's title."""

    name = "apollo"

    async def lookup(
        self, lead: LeadRecord, location: str | None = None
    ) -> LeadEnrichment | None:
        api_key = self._require_key()
        if not lead.title:
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                APOLLO_ORGANIZATION_SEARCH_URL,
                headers={"X-Api-Key": api_key},
                json={"q_organization_name": lead.title},
            )
            response.raise_for_status()
            payload = response.json()

        organizations = payload.get("organizations") or []
        if not organizations:
            return None
        org = organizations[0]
        place = ", ".join(part for part in (org.get("city"), org.get("state")) if part)
        return LeadEnrichment(
            organization=OrganizationInfo(
                name=org.get("name") or lead.title,
                website=org.get("website_url"),
                industry=org.get("industry"),
                size=org.get("estimated_num_employees") or org.get("employee_count"),
                location=place or None,
                linkedin=org.get("linkedin_url"),
            )
        )


class GooglePlacesProvider(_HttpProvider):
    """Google Places text search on ``"<title> <location>"``."""

    name = "google_places"

    async def lookup(
        self, lead: LeadRecord, location: str | None = None
    ) -> LeadEnrichment | None:
        api_key = self._require_key()
        if not location or not lead.title:
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                GOOGLE_PLACES_TEXT_SEARCH_URL,
                params={"query": f"{lead.title} {location}", "key": api_key},
            )
            response.raise_for_status()
            payload = response.json()

        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise EnrichmentFailure(self.name, f"status {status}")

        listings = [
            LocalBusiness(
                name=place.get("name") or lead.title,
                source=self.name,
                url=place.get("website")
                or (f"https://maps.google.com/?cid={place['place_id']}" if place.get("place_id") else None),
                address=place.get("formatted_address"),
                phone=place.get("formatted_phone_number"),
                rating=place.get("rating"),
                reviews=place.get("user_ratings_total"),
            )
            for place in (payload.get("results") or [])[:MAX_LOCAL_LISTINGS]
        ]
        return LeadEnrichment(local_listings=listings) if listings else None


class YelpBusinessProvider(_HttpProvider):
    """Yelp Fusion business search by title and location."""

    name = "yelp"

    async def lookup(
        self, lead: LeadRecord, location: str | None = None
    ) -> LeadEnrichment | None:
        api_key = self._require_key()
        if not location or not lead.title:
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                YELP_BUSINESS_SEARCH_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                params={
                    "term": lead.title,
                    "location": location,
                    "limit": MAX_LOCAL_LISTINGS,
                },
            )
            response.raise_for_status()
            payload = response.json()

        listings = []
        for business in payload.get("businesses") or []:
            address = (business.get("location") or {}).get("display_address") or []
            listings.append(
                LocalBusiness(
                    name=business.get("name") or lead.title,
                    source=self.name,
                    url=business.get("url"),
                    address=", ".join(address) or None,
                    phone=business.get("phone") or None,
                    rating=business.get("rating"),
                    reviews=business.get("review_count"),
                    price=business.get("price"),
                )
            )
        return LeadEnrichment(local_listings=listings) if listings else None


def build_default_providers(settings: Settings | None = None) -> list[EnrichmentProvider]:
    """Providers whose API key is configured, in a fixed order."""
    settings = settings or get_settings()
    timeout = settings.enrichment_timeout_seconds
    candidates: list[_HttpProvider] = [
        HunterEmailProvider(settings.hunter_api_key, timeout),
        ApolloOrganizationProvider(settings.apollo_api_key, timeout),
        GooglePlacesProvider(settings.google_api_key, timeout),
        YelpBusinessProvider(settings.yelp_api_key, timeout),
    ]
    return [p for p in candidates if p.configured]


class EnrichmentLayer:
    """Apply every provider to every record, isolating provider failures."""

    def __init__(self, providers: Sequence[EnrichmentProvider] | None = None):
        self._providers = list(providers) if providers is not None else build_default_providers()

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    async def enrich(
        self,
        records: Iterable[LeadRecord | ScrapedSite | SearchResult],
        location: str | None = None,
    ) -> list[LeadRecord]:
        """Enrich each record; output length and order equal the input's."""
        enriched, _ = await self.enrich_with_sources(records, location)
        return enriched

    async def enrich_with_sources(
        self,
        records: Iterable[LeadRecord | ScrapedSite | SearchResult],
        location: str | None = None,
    ) -> tuple[list[LeadRecord], list[str]]:
        """Like ``enrich`` but also report which providers contributed anything."""
        enriched: list[LeadRecord] = []
        contributors: list[str] = []

        for source in records:
            lead = LeadRecord.from_source(source)
            # Contributions extend whatever the record already carries
            combined: LeadEnrichment | None = lead.enrichment
            for provider in self._providers:
                contribution = await self._call(provider, lead, location)
                if contribution is None:
                    continue
                combined = contribution if combined is None else combined.merge(contribution)
                if provider.name not in contributors:
                    contributors.append(provider.name)
            enriched.append(lead.model_copy(update={"enrichment": combined}))

        logfire.info(
            "Enrichment completed",
            record_count=len(enriched),
            providers=self.provider_names,
            contributors=contributors,
        )
        return enriched, contributors

    @staticmethod
    async def _call(
        provider: EnrichmentProvider, lead: LeadRecord, location: str | None
    ) -> LeadEnrichment | None:
        try:
            return await provider.lookup(lead, location)
        except MissingCredential as e:
            logfire.info("Enrichment provider skipped", provider=provider.name, reason=e.message)
        except Exception as e:
            failure = e if isinstance(e, EnrichmentFailure) else EnrichmentFailure(provider.name, str(e))
            logfire.warning(
                "Enrichment provider failed",
                provider=provider.name,
                url=lead.url,
                error=redact_text(failure.message),
                error_type=type(e).__name__,
            )
        return None


def estimate_cost(record_count: int, providers: Iterable[str]) -> CostEstimate:
    """Estimated USD cost of enriching ``record_count`` records.

    Per-provider lines are always filled in; ``total`` only sums the
    providers named in ``providers``. Scraping is free.

    Raises:
        InputError: Negative count or unknown provider name
    """
    if record_count < 0:
        raise InputError("Record count must be zero or greater")
    selected = list(providers)
    unknown = [name for name in selected if name not in PROVIDER_COSTS]
    if unknown:
        raise InputError(f"Unknown enrichment providers: {', '.join(unknown)}")

    lines = {name: round(record_count * rate, 6) for name, rate in PROVIDER_COSTS.items()}
    scraping = round(record_count * SCRAPING_COST_PER_RECORD, 6)
    total = scraping + sum(lines[name] for name in set(selected))
    return CostEstimate(
        record_count=record_count,
        scraping=scraping,
        total=round(total, 6),
        **lines,
    )
