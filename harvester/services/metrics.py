"""Process-wide scraping metrics.

Counters start at zero when the process starts and are never persisted.
Every update takes the lock so concurrent handlers cannot lose increments.
"""

from threading import Lock
from typing import Any


class ScrapingMetrics:
    """Thread-safe request counters and rolling average response time."""

    def __init__(self):
        self._lock = Lock()
        self._total_requests = 0
        self._successful_requests = 0
        self._failed_requests = 0
        self._records_extracted = 0
        self._average_response_time_ms = 0.0

    def record_fetch(self, success: bool, response_time_ms: float) -> None:
        """Count one page fetch and fold its duration into the average."""
        with self._lock:
            self._total_requests += 1
            if success:
                self._successful_requests += 1
            else:
                self._failed_requests += 1
            n = self._total_requests
            self._average_response_time_ms += (
                response_time_ms - self._average_response_time_ms
            ) / n

    def record_records(self, count: int) -> None:
        """Count records delivered to a caller."""
        with self._lock:
            self._records_extracted += count

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "total_requests": self._total_requests,
                "successful_requests": self._successful_requests,
                "failed_requests": self._failed_requests,
                "records_extracted": self._records_extracted,
                "average_response_time_ms": round(self._average_response_time_ms, 2),
            }


# Global instance
_metrics: ScrapingMetrics | None = None
_metrics_lock = Lock()


def get_scraping_metrics() -> ScrapingMetrics:
    """Get the global metrics instance."""
    global _metrics
    with _metrics_lock:
        if _metrics is None:
            _metrics = ScrapingMetrics()
        return _metrics


def reset_scraping_metrics() -> None:
    """Reset the global metrics (primarily for testing)."""
    global _metrics
    with _metrics_lock:
        _metrics = None
