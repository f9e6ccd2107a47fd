"""
Lightweight metrics collection for the live pipeline.
Wraps prometheus_client.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
PROVIDER_REQUESTS = Counter(
    "tp_provider_requests_total",
    "Total provider HTTP requests",
    ["provider", "endpoint", "status"],
)
SYNC_RUNS = Counter(
    "tp_sync_runs_total",
    "Reconciler invocations by outcome",
    ["job_type", "outcome"],
)
FIXTURE_UPDATES = Counter(
    "tp_fixture_updates_total",
    "Fixture live-state writes applied by the reconciler",
    ["kind"],
)
FIXTURE_UPDATE_ERRORS = Counter(
    "tp_fixture_update_errors_total",
    "Fixture live-state writes rejected by the store",
)
LEDGER_WRITE_FAILURES = Counter(
    "tp_ledger_write_failures_total",
    "sync_runs inserts that failed and were dropped",
)

# ── Histograms ──────────────────────────────────────────────────────────
PROVIDER_LATENCY = Histogram(
    "tp_provider_latency_seconds",
    "Provider request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0),
)
SYNC_DURATION = Histogram(
    "tp_sync_duration_seconds",
    "Wall time of one reconciler invocation",
    ["job_type"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
TRACKED_LIVE_FIXTURES = Gauge(
    "tp_tracked_live_fixtures",
    "Fixtures in a started, unfinished phase at the last invocation",
)
STARTING_SOON_FIXTURES = Gauge(
    "tp_starting_soon_fixtures",
    "Scheduled fixtures inside the kickoff window at the last invocation",
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Iterator[None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        histogram.labels(**labels).observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
