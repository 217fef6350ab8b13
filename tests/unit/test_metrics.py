"""Tests for process-wide scraping metrics."""

import threading

import pytest

from harvester.services.metrics import (
    ScrapingMetrics,
    get_scraping_metrics,
    reset_scraping_metrics,
)


class TestScrapingMetrics:
    def test_starts_at_zero(self):
        assert ScrapingMetrics().snapshot() == {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "records_extracted": 0,
            "average_response_time_ms": 0.0,
        }

    def test_counts_successes_and_failures(self):
        metrics = ScrapingMetrics()
        metrics.record_fetch(True, 100)
        metrics.record_fetch(False, 300)
        metrics.record_fetch(True, 200)

        snapshot = metrics.snapshot()

        assert snapshot["total_requests"] == 3
        assert snapshot["successful_requests"] == 2
        assert snapshot["failed_requests"] == 1
        assert snapshot["average_response_time_ms"] == pytest.approx(200.0)

    def test_records_extracted_accumulates(self):
        metrics = ScrapingMetrics()
        metrics.record_records(3)
        metrics.record_records(0)
        metrics.record_records(2)
        assert metrics.snapshot()["records_extracted"] == 5

    def test_concurrent_updates_are_not_lost(self):
        metrics = ScrapingMetrics()

        def worker():
            for _ in range(500):
                metrics.record_fetch(True, 10)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = metrics.snapshot()
        assert snapshot["total_requests"] == 2000
        assert snapshot["successful_requests"] == 2000
        assert snapshot["average_response_time_ms"] == pytest.approx(10.0)


def test_global_metrics_singleton_until_reset():
    first = get_scraping_metrics()
    first.record_records(1)
    assert get_scraping_metrics() is first

    reset_scraping_metrics()

    assert get_scraping_metrics() is not first
    assert get_scraping_metrics().snapshot()["records_extracted"] == 0
