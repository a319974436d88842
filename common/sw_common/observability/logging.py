"""
JSON log lines for StatusWatch processes.

Every record is rendered as one JSON object with ``timestamp`` (epoch
seconds), ``level``, ``logger`` and ``message``, followed by whatever was
passed through ``extra=``. While a span is active the OpenTelemetry ids are
added as ``trace_id`` / ``span_id`` so log lines can be joined to traces.

Output goes to stderr; setting ``LOG_FILE`` also appends the same lines to
that file (parent directories are created). The file doubles as a target
for the service's own log-file check.

::

    from sw_common.observability.logging import setup_logging, get_logger

    setup_logging()
    get_logger("scheduler").info("cycle done", extra={"snapshot": "ab12"})
"""

import logging
import os
from pathlib import Path

from opentelemetry.instrumentation.logging import LoggingInstrumentor
from pythonjsonlogger.json import JsonFormatter


LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# record attributes set by LoggingInstrumentor -> output keys
_OTEL_FIELDS = {
    "otelTraceID": "trace_id",
    "otelSpanID": "span_id",
    "otelServiceName": "service",
}

_setup_done = False


class JsonTraceFormatter(JsonFormatter):
    """JSON formatter with fixed core fields and trace correlation ids."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        for attr, key in _OTEL_FIELDS.items():
            value = log_record.pop(attr, None) or getattr(record, attr, None)
            # "0" is what the instrumentor writes outside of a span
            if value and value != "0":
                log_record[key] = value


def _json_handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(JsonTraceFormatter(LOG_FORMAT))
    return handler


def _file_handler(path: str) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return _json_handler(logging.FileHandler(path, encoding="utf-8"))


def setup_logging(level: int = logging.INFO) -> None:
    """
    Send JSON logs from the root logger to stderr (and ``$LOG_FILE``).

    Only the first call has any effect.
    """
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    LoggingInstrumentor().instrument(set_logging_format=False)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(_json_handler(logging.StreamHandler()))

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        root.addHandler(_file_handler(log_file))
        logging.getLogger("observability").info("Also logging to %s", log_file)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
