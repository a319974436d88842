"""
Starlette middleware: per-request metrics and one access-log line per request.

::

    app.add_middleware(
        MetricsMiddleware,
        counter=HTTP_REQUESTS,            # labels: method, path, status
        latency=HTTP_REQUEST_DURATION,    # optional, labels: method, path
        ignored_paths={"/metrics"},
    )
    app.add_middleware(RequestLogMiddleware)
"""

import logging
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests by method, path and status; optionally time them.

    Paths in ``ignored_paths`` (typically the scrape endpoint itself) are
    neither counted nor timed.
    """

    def __init__(
        self,
        app,
        counter: Counter,
        ignored_paths: set[str] | None = None,
        latency: Histogram | None = None,
    ):
        super().__init__(app)
        self.counter = counter
        self.latency = latency
        self.ignored_paths = frozenset(ignored_paths or ())

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in self.ignored_paths:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)

        self.counter.labels(method=request.method, path=path, status=response.status_code).inc()
        if self.latency is not None:
            self.latency.labels(method=request.method, path=path).observe(time.perf_counter() - started)
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Access log: ``GET /api/health 200 3ms`` with the parts as extras.

    Server errors are logged at WARNING, everything else at INFO.
    """

    def __init__(self, app, logger_name: str = "requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - started) * 1000)

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        self.logger.log(
            level,
            "%s %s %d %dms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "http_method": request.method,
                "http_path": request.url.path,
                "http_status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
