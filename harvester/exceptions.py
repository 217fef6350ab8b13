"""Error taxonomy for the harvesting pipeline.

Every error the pipeline surfaces to a caller derives from ``HarvestError``
and carries a stable ``kind`` that the HTTP layer maps to a status code.
Failures that affect a single item (one page, one provider call) are
absorbed where they happen; only the errors below ever leave the core.
"""

import math
from typing import Any


class HarvestError(Exception):
    """Base error with a machine-readable kind."""

    kind = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Serialize as ``{kind, message}`` for the handler layer."""
        return {"kind": self.kind, "message": self.message}


class InputError(HarvestError):
    """Malformed URL, query or engine list. Never retried."""

    kind = "input_error"


class RateExceeded(HarvestError):
    """A client's budget for a tier is exhausted."""

    kind = "rate_exceeded"

    def __init__(self, retry_after_seconds: float, tier: str = "general"):
        self.retry_after_seconds = max(1, math.ceil(retry_after_seconds))
        self.tier = tier
        super().__init__(
            f"Rate limit exceeded for {tier} requests. "
            f"Try again in {self.retry_after_seconds} seconds."
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["retryAfterSeconds"] = self.retry_after_seconds
        return payload


class FetchFailure(HarvestError):
    """Navigation, timeout, DNS or HTTP failure for one target."""

    kind = "fetch_failure"

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Failed to fetch {url}: {message}")


class EnrichmentFailure(HarvestError):
    """One enrichment provider call failed."""

    kind = "enrichment_failure"

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} lookup failed: {message}")


class MissingCredential(EnrichmentFailure):
    """Provider has no API key configured."""

    def __init__(self, provider: str):
        super().__init__(provider, "API key not configured")


class OrchestratorExhaustion(HarvestError):
    """Every requested search engine failed; nothing to crawl."""

    kind = "orchestrator_exhaustion"

    def __init__(self, engines: list[str], errors: dict[str, str] | None = None):
        self.engines = list(engines)
        self.errors = dict(errors or {})
        detail = "; ".join(f"{name}: {err}" for name, err in self.errors.items())
        message = f"All search engines failed ({', '.join(self.engines)})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RendererUnavailable(Exception):
    """The headless browser could not be started in this environment."""


class RenderNavigationError(Exception):
    """The headless browser started but could not load the page."""
