"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from harvester.constants import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    ENRICHMENT_TIMEOUT_SECONDS,
    GENERAL_RATE_LIMIT_BLOCK_SECONDS,
    GENERAL_RATE_LIMIT_POINTS,
    GENERAL_RATE_LIMIT_WINDOW_SECONDS,
    SCRAPE_RATE_LIMIT_BLOCK_SECONDS,
    SCRAPE_RATE_LIMIT_POINTS,
    SCRAPE_RATE_LIMIT_WINDOW_SECONDS,
    SEARCH_ENGINE_DELAY_SECONDS,
    SITE_FETCH_DELAY_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["local", "staging", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for cloud logging"
    )

    # ==========================================================================
    # Fetch Configuration
    # ==========================================================================

    renderer_enabled: bool = Field(
        default=True,
        description="Try headless Chrome before the static HTTP fallback",
    )
    chrome_version_main: int | None = Field(
        default=None,
        description="Chrome major version for undetected-chromedriver (e.g. 143)",
    )
    fetch_timeout_seconds: float = Field(
        default=DEFAULT_FETCH_TIMEOUT_SECONDS,
        description="Default timeout for a page fetch (seconds)",
    )

    # ==========================================================================
    # Politeness Delays
    # ==========================================================================

    search_engine_delay_seconds: float = Field(
        default=SEARCH_ENGINE_DELAY_SECONDS,
        description="Pause between consecutive search engine queries (seconds)",
    )
    site_fetch_delay_seconds: float = Field(
        default=SITE_FETCH_DELAY_SECONDS,
        description="Pause between consecutive candidate site fetches (seconds)",
    )

    # ==========================================================================
    # Rate Limiting Configuration
    # ==========================================================================

    rate_limit_general_points: int = Field(default=GENERAL_RATE_LIMIT_POINTS)
    rate_limit_general_window_seconds: int = Field(
        default=GENERAL_RATE_LIMIT_WINDOW_SECONDS
    )
    rate_limit_general_block_seconds: int = Field(
        default=GENERAL_RATE_LIMIT_BLOCK_SECONDS
    )
    rate_limit_scrape_points: int = Field(default=SCRAPE_RATE_LIMIT_POINTS)
    rate_limit_scrape_window_seconds: int = Field(
        default=SCRAPE_RATE_LIMIT_WINDOW_SECONDS
    )
    rate_limit_scrape_block_seconds: int = Field(
        default=SCRAPE_RATE_LIMIT_BLOCK_SECONDS
    )

    # ==========================================================================
    # Enrichment Providers (each provider is skipped when its key is unset)
    # ==========================================================================

    hunter_api_key: str | None = Field(
        default=None, description="Hunter.io key for domain email search"
    )
    apollo_api_key: str | None = Field(
        default=None, description="Apollo.io key for organization lookup"
    )
    google_api_key: str | None = Field(
        default=None, description="Google Places API key"
    )
    yelp_api_key: str | None = Field(
        default=None, description="Yelp Fusion API key"
    )
    enrichment_timeout_seconds: float = Field(
        default=ENRICHMENT_TIMEOUT_SECONDS,
        description="Timeout for a single enrichment provider call (seconds)",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
