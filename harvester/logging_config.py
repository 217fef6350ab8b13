"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import logfire
from fastapi import FastAPI

from harvester.config import get_settings
from harvester.constants import SERVICE_NAME

_SENSITIVE_KEYS = (
    "token",
    "access_token",
    "api_key",
    "apikey",
    "key",
    "secret",
    "password",
    "authorization",
    "auth",
    "x-api-key",
)

_URL_IN_TEXT = re.compile(r"https?://[^\s'\"<>]+")


def setup_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize and configure Pydantic Logfire for observability.

    Sets up:
    - FastAPI instrumentation when an app is given (request/response tracing)
    - Pydantic instrumentation (model validation logging)
    - Environment-aware stdlib logging format
    """
    settings = get_settings()

    logfire_config: dict[str, Any] = {
        "service_name": SERVICE_NAME,
        "environment": settings.env,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)

    if app is not None:
        logfire.instrument_fastapi(app)
    logfire.instrument_pydantic()

    log_level = settings.log_level.upper()

    if settings.env == "local":
        # Local: Console formatting for development
        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        # Production: Logfire handles structured formatting
        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format="%(message)s",
        )


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """
    Mask potentially sensitive data in logs.

    Args:
        value: Value to mask
        mask_char: Character to use for masking

    Returns:
        Masked string
    """
    if not value:
        return ""

    if len(value) <= 4:
        return mask_char * len(value)

    # Show first 2 and last 2 characters, mask the rest
    return f"{value[:2]}{mask_char * (len(value) - 4)}{value[-2:]}"


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact authentication tokens and API keys from log data.

    Args:
        data: Dictionary that may contain sensitive tokens

    Returns:
        Dictionary with tokens redacted
    """
    redacted = data.copy()

    for key, value in data.items():
        if isinstance(value, dict):
            redacted[key] = redact_tokens(value)
        elif key.lower() in _SENSITIVE_KEYS and isinstance(value, str):
            redacted[key] = mask_pii(value)

    return redacted


def redact_url(url: str) -> str:
    """Mask credential query parameters (``api_key=...``) in a URL."""
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = [
        (name, mask_pii(value) if name.lower() in _SENSITIVE_KEYS else value)
        for name, value in parse_qsl(parsed.query, keep_blank_values=True)
    ]
    return urlunparse(parsed._replace(query=urlencode(params, safe="*")))


def redact_text(text: str) -> str:
    """Apply ``redact_url`` to every URL embedded in free text (error messages)."""
    return _URL_IN_TEXT.sub(lambda m: redact_url(m.group(0)), text)
