"""
Test utilities for the observability stack.

In-memory span capture plus a way to wipe the default Prometheus registry
between tests.
"""

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import REGISTRY


def setup_test_tracing(service_name: str = "test-service") -> InMemorySpanExporter:
    """
    Install a TracerProvider that records finished spans in memory.

    Replaces any provider already installed so consecutive tests each get
    their own exporter.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    # bypass the set-once guard on the global provider
    trace._TRACER_PROVIDER = None
    trace._TRACER_PROVIDER_SET_ONCE._done = False
    trace.set_tracer_provider(provider)
    return exporter


def get_spans_by_name(exporter: InMemorySpanExporter, name: str) -> list[ReadableSpan]:
    return [s for s in exporter.get_finished_spans() if s.name == name]


def reset_metrics() -> None:
    """
    Unregister every user-created collector from the default registry.

    Platform collectors (``gc``, ``process``, ``platform``) carry no
    ``_name`` attribute and are left in place.
    """
    user_collectors = {
        collector
        for collector in REGISTRY._names_to_collectors.values()
        if hasattr(collector, "_name")
    }
    for collector in user_collectors:
        REGISTRY.unregister(collector)
