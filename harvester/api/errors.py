"""Map harvest errors to HTTP responses.

Every error leaves the API as ``{kind, message, retryAfterSeconds?}``.
"""

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from harvester.exceptions import HarvestError, RateExceeded
from harvester.logging_config import redact_text

STATUS_BY_KIND = {
    "input_error": 400,
    "rate_exceeded": 429,
    "orchestrator_exhaustion": 502,
    "fetch_failure": 502,
    "enrichment_failure": 502,
    "internal": 500,
}


def error_response(error: HarvestError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(error.kind, 500)
    payload = error.to_dict()
    payload["message"] = redact_text(payload["message"])
    headers = None
    if isinstance(error, RateExceeded):
        headers = {"Retry-After": str(error.retry_after_seconds)}
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


async def _harvest_error_handler(request: Request, exc: HarvestError) -> JSONResponse:
    logfire.warning(
        "Request failed",
        path=request.url.path,
        kind=exc.kind,
        error=redact_text(exc.message),
    )
    return error_response(exc)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        text = err.get("msg", "Invalid value")
        messages.append(f"{location}: {text}" if location else text)
    message = "; ".join(messages) or "Invalid request"
    logfire.info("Request rejected", path=request.url.path, error=message)
    return JSONResponse(
        status_code=400, content={"kind": "input_error", "message": message}
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logfire.error(
        "Unhandled error",
        path=request.url.path,
        error=redact_text(str(exc)),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"kind": "internal", "message": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HarvestError, _harvest_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
