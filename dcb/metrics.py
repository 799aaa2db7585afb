"""
Prometheus metrics for the DCB engine.

Exposes append/conflict/decision metrics via HTTP /metrics endpoint.

Environment Variables:
    METRICS_ENABLED: Enable metrics server (true/false) - default: false
    METRICS_PORT: HTTP port for /metrics endpoint - default: 8080

Usage:
    from dcb.metrics import start_metrics_server, track_append

    start_metrics_server(enabled=True, port=8080)
    track_append("CourseDefined")

Tracking helpers are no-ops until init_metrics() has run, so library users
that never enable metrics pay nothing.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY, start_http_server

logger = logging.getLogger(__name__)

EVENTS_APPENDED: Optional[Counter] = None
APPEND_CONFLICTS: Optional[Counter] = None
DECISION_BUILD_DURATION: Optional[Histogram] = None
COMMAND_RETRIES: Optional[Counter] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics(registry: CollectorRegistry = REGISTRY) -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock; later calls are no-ops.
    """
    global EVENTS_APPENDED, APPEND_CONFLICTS, DECISION_BUILD_DURATION, COMMAND_RETRIES
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        EVENTS_APPENDED = Counter(
            "dcb_events_appended_total",
            "Total number of events appended to the event log",
            labelnames=["event_type"],
            registry=registry,
        )

        APPEND_CONFLICTS = Counter(
            "dcb_append_conflicts_total",
            "Total number of appends rejected by the append condition",
            registry=registry,
        )

        DECISION_BUILD_DURATION = Histogram(
            "dcb_decision_build_duration_seconds",
            "Duration of decision model builds in seconds",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=registry,
        )

        COMMAND_RETRIES = Counter(
            "dcb_command_retries_total",
            "Total number of command retries after a concurrency conflict",
            labelnames=["command"],
            registry=registry,
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in a background thread.

    Args:
        enabled: Whether to start the server (METRICS_ENABLED)
        port: HTTP port for /metrics (METRICS_PORT)
    """
    if not enabled:
        logger.info("Metrics server disabled (METRICS_ENABLED=false)")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


def track_append(event_type: str) -> None:
    if EVENTS_APPENDED is not None:
        EVENTS_APPENDED.labels(event_type=event_type).inc()


def track_conflict() -> None:
    if APPEND_CONFLICTS is not None:
        APPEND_CONFLICTS.inc()


def track_retry(command: str) -> None:
    if COMMAND_RETRIES is not None:
        COMMAND_RETRIES.labels(command=command).inc()


@contextmanager
def track_decision_build() -> Generator[None, None, None]:
    """
    Context manager timing a decision model build.

    Usage:
        with track_decision_build():
            ...
    """
    if DECISION_BUILD_DURATION is None:
        yield
        return

    with DECISION_BUILD_DURATION.time():
        yield
