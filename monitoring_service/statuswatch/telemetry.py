"""
Service-specific telemetry for statuswatch-api.

Domain metrics and FastAPI instrumentation that sit on top of the shared
``sw_common.observability`` module.
"""

import logging

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from sw_common.observability import (
    create_counter,
    create_gauge,
    create_histogram,
    MetricsMiddleware,
    RequestLogMiddleware,
)

logger = logging.getLogger("telemetry")

# ── HTTP ─────────────────────────────────────────────────────────

HTTP_REQUESTS = create_counter(
    "http_requests_total",
    "Total HTTP requests by method and path",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION = create_histogram(
    "http_request_duration_seconds",
    "HTTP request latency by method and path",
    labelnames=["method", "path"],
)

RATE_LIMITED_REQUESTS = create_counter(
    "rate_limited_requests_total",
    "Requests rejected by the fixed-window rate limiter",
)

# ── Monitoring cycles ────────────────────────────────────────────

MONITORING_CYCLES = create_counter(
    "monitoring_cycles_total",
    "Monitoring cycles by outcome (completed, failed, skipped)",
    ["outcome"],
)

CYCLE_DURATION = create_histogram(
    "monitoring_cycle_duration_seconds",
    "Wall-clock duration of a monitoring cycle",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0],
)

SNAPSHOTS_PURGED = create_counter(
    "snapshots_purged_total",
    "Snapshots deleted by the retention task",
)

# ── Probes ───────────────────────────────────────────────────────

PROBE_ATTEMPTS = create_counter(
    "probe_attempts_total",
    "HTTP probe attempts by outcome (reached, failed)",
    ["outcome"],
)

ENDPOINT_STATUS_CODE = create_gauge(
    "endpoint_status_code",
    "Status code of the latest probe per endpoint (0 = unreachable)",
    ["endpoint"],
)

ENDPOINT_RESPONSE_TIME = create_gauge(
    "endpoint_response_time_ms",
    "Response time of the latest probe per endpoint (-1 = unreachable)",
    ["endpoint"],
)


# ── Initialization ───────────────────────────────────────────────

def init(app):
    """Wire service-specific telemetry into the FastAPI app.

    * Adds the HTTP-metrics and request-logging middleware.
    * Instruments FastAPI with OpenTelemetry auto-instrumentation.
    """
    app.add_middleware(
        MetricsMiddleware,
        counter=HTTP_REQUESTS,
        latency=HTTP_REQUEST_DURATION,
        ignored_paths={"/metrics"},
    )
    app.add_middleware(RequestLogMiddleware)

    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception as e:
        logger.warning("FastAPI instrumentation failed: %s", e)

    logger.info("Service telemetry initialised")
