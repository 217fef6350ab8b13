"""Health check endpoint."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from harvester.config import get_settings
from harvester.constants import SERVICE_VERSION
from harvester.services.metrics import get_scraping_metrics

router = APIRouter()

_started_at = time.monotonic()


@router.get("/health")
async def health():
    """Liveness plus process-wide scraping metrics."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.monotonic() - _started_at, 3),
        "environment": get_settings().env,
        "version": SERVICE_VERSION,
        "metrics": get_scraping_metrics().snapshot(),
    }
