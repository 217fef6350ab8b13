"""Input validation and sanitization for search requests.

Provides functions for validating and sanitizing the query, result count
and engine list before they reach the harvesting pipeline.
"""

import re
import unicodedata
from typing import NamedTuple, Sequence

import logfire

from harvester.constants import (
    MAX_QUERY_LENGTH_CHARS,
    MAX_RESULTS_LIMIT,
    MIN_QUERY_LENGTH_CHARS,
)
from harvester.exceptions import InputError

KNOWN_SEARCH_ENGINES = ("google", "bing", "duckduckgo")

_EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)


class ValidationResult(NamedTuple):
    """Result of input validation.

    Attributes:
        is_valid: Whether the input passed validation.
        error_code: Error code if validation failed, None otherwise.
        error_message: Human-readable error message if validation failed.
    """

    is_valid: bool
    error_code: str | None
    error_message: str | None

    def raise_for_error(self) -> None:
        """Raise ``InputError`` with the error message if validation failed."""
        if not self.is_valid:
            raise InputError(self.error_message or "Invalid input")


_VALID = ValidationResult(is_valid=True, error_code=None, error_message=None)


def sanitize_search_query(query: str | None) -> str:
    """Strip markup and script fragments from a search query.

    Performs the following sanitization:
    - Removes control characters
    - Removes angle brackets, ``javascript:`` and inline event handlers
    - Collapses whitespace and strips the ends

    Args:
        query: The raw query text.

    Returns:
        Sanitized query, empty string for missing input.
    """
    if not query or not isinstance(query, str):
        return ""

    sanitized = "".join(char for char in query if ord(char) >= 32 or char == "\t")
    sanitized = unicodedata.normalize("NFC", sanitized)
    sanitized = sanitized.replace("<", "").replace(">", "")
    sanitized = _JS_PROTOCOL_RE.sub("", sanitized)
    sanitized = _EVENT_HANDLER_RE.sub("", sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()

    if sanitized != query.strip():
        logfire.info(
            "Search query sanitized",
            original_length=len(query),
            sanitized_length=len(sanitized),
        )
    return sanitized


def validate_search_query(
    query: str | None,
    max_results: int,
    search_engines: Sequence[str] | None,
) -> ValidationResult:
    """Validate a search request descriptor.

    Checks:
    - Query present, at least 2 and at most 500 characters after stripping
    - ``1 <= max_results <= 100``
    - Engine list non-empty and every engine known

    Args:
        query: Search query text.
        max_results: Requested number of results.
        search_engines: Engine identifiers to query.

    Returns:
        ValidationResult with validation status and error details.
    """
    if query is None or not isinstance(query, str) or not query.strip():
        return ValidationResult(
            is_valid=False,
            error_code="empty_query",
            error_message="Search query is required and must be a non-empty string",
        )

    stripped = query.strip()
    if len(stripped) < MIN_QUERY_LENGTH_CHARS:
        return ValidationResult(
            is_valid=False,
            error_code="query_too_short",
            error_message=f"Search query must be at least {MIN_QUERY_LENGTH_CHARS} characters long",
        )
    if len(stripped) > MAX_QUERY_LENGTH_CHARS:
        return ValidationResult(
            is_valid=False,
            error_code="query_too_long",
            error_message=f"Search query must be less than {MAX_QUERY_LENGTH_CHARS} characters",
        )

    if (
        isinstance(max_results, bool)
        or not isinstance(max_results, int)
        or not 1 <= max_results <= MAX_RESULTS_LIMIT
    ):
        return ValidationResult(
            is_valid=False,
            error_code="invalid_max_results",
            error_message=f"Max results must be an integer between 1 and {MAX_RESULTS_LIMIT}",
        )

    if not search_engines:
        return ValidationResult(
            is_valid=False,
            error_code="no_engines",
            error_message="Search engines must be a non-empty list",
        )

    invalid = [engine for engine in search_engines if engine not in KNOWN_SEARCH_ENGINES]
    if invalid:
        return ValidationResult(
            is_valid=False,
            error_code="unknown_engine",
            error_message=f"Invalid search engines: {', '.join(invalid)}",
        )

    return _VALID
