"""Tests for application configuration."""

import pytest
from hypothesis import given, strategies as st

from harvester.config import Settings, get_settings


class TestSettings:
    """Test Settings defaults and environment overrides."""

    _OVERRIDABLE_ENV_KEYS = (
        "ENV",
        "RENDERER_ENABLED",
        "SEARCH_ENGINE_DELAY_SECONDS",
        "SITE_FETCH_DELAY_SECONDS",
        "RATE_LIMIT_GENERAL_POINTS",
        "RATE_LIMIT_SCRAPE_POINTS",
        "HUNTER_API_KEY",
        "APOLLO_API_KEY",
        "GOOGLE_API_KEY",
        "YELP_API_KEY",
    )

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for key in self._OVERRIDABLE_ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_settings_default_values(self):
        settings = Settings(_env_file=None)
        assert settings.env == "local"
        assert settings.renderer_enabled is True
        assert settings.search_engine_delay_seconds == 2
        assert settings.site_fetch_delay_seconds == 3
        assert settings.rate_limit_general_points == 10
        assert settings.rate_limit_general_window_seconds == 60
        assert settings.rate_limit_general_block_seconds == 900
        assert settings.rate_limit_scrape_points == 5
        assert settings.rate_limit_scrape_window_seconds == 300
        assert settings.rate_limit_scrape_block_seconds == 1800
        assert settings.hunter_api_key is None
        assert settings.sentry_dsn is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("RENDERER_ENABLED", "false")
        monkeypatch.setenv("RATE_LIMIT_SCRAPE_POINTS", "2")
        monkeypatch.setenv("HUNTER_API_KEY", "hunter-key")

        settings = Settings(_env_file=None)

        assert settings.renderer_enabled is False
        assert settings.rate_limit_scrape_points == 2
        assert settings.hunter_api_key == "hunter-key"

    def test_invalid_env_rejected(self):
        with pytest.raises(Exception):
            Settings(_env_file=None, env="qa")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    @given(
        env=st.sampled_from(["local", "staging", "prod"]),
        delay=st.floats(min_value=0, max_value=60, allow_nan=False),
    )
    def test_settings_accepts_valid_optional_values(self, env: str, delay: float):
        """Property: any valid environment and delay round-trips unchanged."""
        settings = Settings(_env_file=None, env=env, site_fetch_delay_seconds=delay)
        assert settings.env == env
        assert settings.site_fetch_delay_seconds == delay
