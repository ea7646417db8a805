"""
Lightweight metrics collection for Match Log.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
UPSTREAM_REQUESTS = Counter(
    "ml_upstream_requests_total",
    "Total fixture feed HTTP requests",
    ["provider", "league", "status"],
)
FIXTURE_CACHE_LOOKUPS = Counter(
    "ml_fixture_cache_lookups_total",
    "Fixture cache lookups by outcome",
    ["backend", "outcome"],
)
AGGREGATION_FAILURES = Counter(
    "ml_aggregation_failures_total",
    "Per-date fixture aggregations that failed on an upstream league",
    ["league"],
)
PREFERENCE_UPDATES = Counter(
    "ml_preference_updates_total",
    "Preference documents merged",
)

# ── Histograms ──────────────────────────────────────────────────────────
UPSTREAM_LATENCY = Histogram(
    "ml_upstream_latency_seconds",
    "Fixture feed request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
AGGREGATION_LATENCY = Histogram(
    "ml_aggregation_latency_seconds",
    "Time to fan out and merge all leagues for one date",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        target = histogram.labels(**labels) if labels else histogram
        target.observe(elapsed)


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
