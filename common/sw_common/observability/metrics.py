"""
Prometheus collectors that can be declared more than once.

Service modules declare their collectors at import time. Tests reload
those modules and several modules may ask for the same metric, so each
factory hands back the collector already registered under that name
instead of raising on the duplicate.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


def _registered(name: str):
    # Counters register "<name>", "<name>_total" and "<name>_created";
    # Info registers "<name>_info". Fall back to the base name.
    collector = REGISTRY._names_to_collectors.get(name)
    if collector is not None:
        return collector
    for candidate in REGISTRY._names_to_collectors.values():
        if getattr(candidate, "_name", None) == name:
            return candidate
    return None


def _get_or_create(metric_cls, name: str, documentation: str, **kwargs):
    return _registered(name) or metric_cls(name, documentation, **kwargs)


def _labels(labelnames) -> dict:
    return {"labelnames": list(labelnames or ())}


def create_counter(name: str, documentation: str, labelnames: list[str] = None) -> Counter:
    return _get_or_create(Counter, name, documentation, **_labels(labelnames))


def create_gauge(name: str, documentation: str, labelnames: list[str] = None) -> Gauge:
    return _get_or_create(Gauge, name, documentation, **_labels(labelnames))


def create_histogram(
    name: str,
    documentation: str,
    buckets: list[float] = None,
    labelnames: list[str] = None,
) -> Histogram:
    """Histogram with the client's default buckets unless ``buckets`` is given."""
    kwargs = _labels(labelnames)
    if buckets:
        kwargs["buckets"] = buckets
    return _get_or_create(Histogram, name, documentation, **kwargs)


def create_info(name: str, documentation: str) -> Info:
    return _get_or_create(Info, name, documentation)


def create_service_info(service_name: str, version: str, environment: str | None = None) -> Info:
    """
    Publish ``<service_name>_info{version, environment}``.

    ``environment`` falls back to ``$ENVIRONMENT`` and then ``"development"``.
    """
    info = create_info(service_name, "Service metadata")
    info.info({
        "version": version,
        "environment": environment or os.environ.get("ENVIRONMENT", "development"),
    })
    return info


def metrics_response() -> tuple[bytes, str]:
    """Exposition body and content type for a ``GET /metrics`` handler."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
