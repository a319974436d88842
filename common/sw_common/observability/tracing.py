import os
import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)


def init_tracing(service_name: str, endpoint: str | None = None) -> None:
    """
    Install a global tracer provider exporting spans over OTLP/HTTP.

    Args:
        service_name: Value of the ``service.name`` resource attribute.
        endpoint: Collector base URL. Defaults to
            ``$OTEL_EXPORTER_OTLP_ENDPOINT`` or ``http://localhost:4318``;
            ``/v1/traces`` is appended when missing.
    """
    if endpoint is None:
        endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")

    traces_endpoint = endpoint if endpoint.endswith("/v1/traces") else f"{endpoint.rstrip('/')}/v1/traces"

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint)))
    trace.set_tracer_provider(provider)

    logger.info("Tracing initialized for %s (exporting to %s)", service_name, traces_endpoint)


def shutdown_tracing() -> None:
    """Flush and shut down the global tracer provider, if it supports it."""
    provider = trace.get_tracer_provider()
    if not hasattr(provider, "shutdown"):
        return
    try:
        provider.shutdown()
        logger.info("Tracer shutdown complete")
    except Exception as exc:
        logger.warning("Tracer shutdown warning: %s", exc)
