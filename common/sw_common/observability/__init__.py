"""
Observability toolkit shared by StatusWatch processes.

``init_observability`` is the only call a service needs at import time: it
turns on JSON logging, starts OTLP trace export when a collector is
configured and publishes a ``<service>_info`` metric. The helpers below are
re-exported for services that declare their own metrics and middleware.

::

    from sw_common.observability import init_observability

    logger = init_observability("statuswatch-api", "0.1.0")

Environment
-----------
``LOG_LEVEL``                    root level name when none is passed (``INFO``)
``LOG_FILE``                     extra JSON log file
``OTEL_EXPORTER_OTLP_ENDPOINT``  collector URL; tracing stays off when unset
``ENVIRONMENT``                  ``environment`` label of the info metric
"""

import logging as _logging
import os as _os

from .logging import JsonTraceFormatter, get_logger, setup_logging
from .metrics import (
    create_counter,
    create_gauge,
    create_histogram,
    create_info,
    create_service_info,
    metrics_response,
)
from .middleware import MetricsMiddleware, RequestLogMiddleware
from .testing import get_spans_by_name, reset_metrics, setup_test_tracing
from .tracing import init_tracing, shutdown_tracing


def _env_log_level() -> int:
    name = _os.environ.get("LOG_LEVEL", "INFO").upper()
    level = _logging.getLevelName(name)
    return level if isinstance(level, int) else _logging.INFO


def init_observability(
    service_name: str,
    version: str,
    *,
    log_level: int | None = None,
    environment: str | None = None,
) -> _logging.Logger:
    """
    Bootstrap logging, tracing and the service-info metric.

    Tracing problems are logged as warnings; the service starts either way.

    Args:
        service_name: Logger name, ``service.name`` of spans and, with dashes
            replaced by underscores, the info metric name.
        version: Published as the ``version`` label.
        log_level: Root level; ``$LOG_LEVEL`` when omitted.
        environment: ``environment`` label; ``$ENVIRONMENT`` or
            ``"development"`` when omitted.

    Returns:
        The logger named after the service.
    """
    setup_logging(log_level if log_level is not None else _env_log_level())
    logger = get_logger(service_name)

    if not _os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT"):
        logger.info("Tracing disabled (OTEL_EXPORTER_OTLP_ENDPOINT not set)")
    else:
        try:
            init_tracing(service_name)
        except Exception as exc:
            logger.warning("Tracing init failed, continuing without it: %s", exc)

    create_service_info(service_name.replace("-", "_"), version, environment)
    logger.info("Observability ready for %s %s", service_name, version)
    return logger


__all__ = [
    "init_observability",
    "JsonTraceFormatter",
    "get_logger",
    "setup_logging",
    "create_counter",
    "create_gauge",
    "create_histogram",
    "create_info",
    "create_service_info",
    "metrics_response",
    "init_tracing",
    "shutdown_tracing",
    "MetricsMiddleware",
    "RequestLogMiddleware",
    "get_spans_by_name",
    "reset_metrics",
    "setup_test_tracing",
]
