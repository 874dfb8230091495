"""
Lightweight metrics collection for the live-sync services.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
PROVIDER_REQUESTS = Counter(
    "pl_provider_requests_total",
    "Total provider HTTP requests",
    ["provider", "endpoint", "status"],
)
FEED_FAILURES = Counter(
    "pl_livesync_feed_failures_total",
    "External feed calls that failed and were treated as empty",
    ["call"],
)
FIXTURE_OUTCOMES = Counter(
    "pl_livesync_fixture_outcomes_total",
    "Fixtures processed per reconciliation outcome",
    ["outcome"],
)
GAME_UPDATES = Counter(
    "pl_livesync_game_updates_total",
    "Game updates applied by the reconciliation runner",
    ["kind"],
)
BINDINGS_CLEARED = Counter(
    "pl_livesync_bindings_cleared_total",
    "External-id bindings cleared after failed re-verification",
)

# ── Histograms ──────────────────────────────────────────────────────────
PROVIDER_LATENCY = Histogram(
    "pl_provider_latency_seconds",
    "Provider request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
PASS_DURATION = Histogram(
    "pl_livesync_pass_seconds",
    "Duration of one reconciliation pass",
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
LIVE_GAMES = Gauge(
    "pl_livesync_live_games",
    "LIVE games seen at the start of the last pass",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


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
