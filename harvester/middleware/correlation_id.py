"""Correlation ID and client key middleware for request tracing."""

import time
import uuid
from typing import Callable

import logfire
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

UNKNOWN_CLIENT = "unknown"


def client_key_for(request: Request) -> str:
    """Rate limiter key: first X-Forwarded-For entry, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation ID and a client key.

    The correlation ID is taken from the request header when present,
    echoed on the response, and attached to a Logfire span around the
    handler so every log line of the request can be correlated.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Correlation-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.header_name.lower()) or str(uuid.uuid4())
        client_key = client_key_for(request)

        request.state.correlation_id = correlation_id
        request.state.client_key = client_key

        start = time.monotonic()
        with logfire.span(
            "request",
            correlation_id=correlation_id,
            client_key=client_key,
            path=request.url.path,
        ):
            response = await call_next(request)
            response.headers[self.header_name] = correlation_id
            logfire.info(
                "Request handled",
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            return response
