"""Tests for logging setup and credential redaction."""

import pytest

from harvester.logging_config import (
    mask_pii,
    redact_text,
    redact_tokens,
    redact_url,
    setup_logfire,
)


class TestMaskPii:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            ("", ""),
            ("abc", "***"),
            ("abcd", "****"),
            ("abcdef", "ab**ef"),
        ],
    )
    def test_mask(self, value, expected):
        assert mask_pii(value) == expected

    def test_custom_mask_char(self):
        assert mask_pii("secret", mask_char="#") == "se##et"


class TestRedaction:
    def test_redact_tokens_masks_sensitive_keys_recursively(self):
        data = {
            "query": "coffee",
            "Authorization": "Bearer abcdef",
            "provider": {"api_key": "hunter-key", "attempts": 2},
        }

        redacted = redact_tokens(data)

        assert redacted["query"] == "coffee"
        assert redacted["Authorization"] == "Be*********ef"
        assert redacted["provider"]["api_key"] == "hu******ey"
        assert redacted["provider"]["attempts"] == 2
        assert data["provider"]["api_key"] == "hunter-key"

    def test_redact_url_masks_credential_params(self):
        url = "https://api.hunter.io/v2/domain-search?domain=x.com&api_key=supersecret"
        redacted = redact_url(url)
        assert "supersecret" not in redacted
        assert "domain=x.com" in redacted
        assert "api_key=su*******et" in redacted

    def test_redact_url_without_query_unchanged(self):
        assert redact_url("https://example.com/path") == "https://example.com/path"

    def test_redact_text_rewrites_embedded_urls(self):
        text = "Client error '401' for url 'https://maps.googleapis.com/x?query=a&key=googlekey123'"
        redacted = redact_text(text)
        assert "googlekey123" not in redacted
        assert redacted.startswith("Client error '401' for url 'https://maps.googleapis.com/x?")

    def test_redact_text_plain_message_unchanged(self):
        assert redact_text("connection refused") == "connection refused"


class TestSetupLogfire:
    def test_configures_and_instruments(self, mock_settings, mock_logfire):
        app = object()

        setup_logfire(app)

        kwargs = mock_logfire.configure.call_args.kwargs
        assert kwargs["service_name"] == "web-harvester"
        assert kwargs["environment"] == "local"
        assert "token" not in kwargs
        mock_logfire.instrument_fastapi.assert_called_once_with(app)
        mock_logfire.instrument_pydantic.assert_called_once()

    def test_token_passed_when_configured(self, mock_settings, mock_logfire):
        mock_settings.logfire_token = "lf-token"

        setup_logfire()

        assert mock_logfire.configure.call_args.kwargs["token"] == "lf-token"
        mock_logfire.instrument_fastapi.assert_not_called()
