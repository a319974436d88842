"""Tests for sw_common.observability.middleware submodule."""

import logging
import unittest

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from sw_common.observability.middleware import MetricsMiddleware, RequestLogMiddleware
from sw_common.observability.metrics import create_counter, create_histogram
from sw_common.observability.testing import reset_metrics


def _app_with(*middleware):
    app = FastAPI()
    for cls, kwargs in middleware:
        app.add_middleware(cls, **kwargs)

    @app.get("/api/pingstatus")
    def ping_status():
        return {"success": True}

    @app.get("/metrics")
    def metrics():
        return "ok"

    @app.get("/boom")
    def boom():
        raise HTTPException(status_code=503, detail="down")

    return app


class TestMetricsMiddleware(unittest.TestCase):

    def setUp(self):
        reset_metrics()
        self.counter = create_counter(
            "test_http_mw_total",
            "test counter",
            ["method", "path", "status"],
        )
        app = _app_with((MetricsMiddleware, {"counter": self.counter, "ignored_paths": {"/metrics"}}))
        self.client = TestClient(app)

    def tearDown(self):
        reset_metrics()

    def _count(self, path, status=200):
        return self.counter.labels(method="GET", path=path, status=status)._value.get()

    def test_counts_each_request(self):
        self.client.get("/api/pingstatus")
        self.client.get("/api/pingstatus")
        self.assertEqual(self._count("/api/pingstatus"), 2.0)

    def test_records_status_codes(self):
        self.client.get("/api/nope")
        self.assertEqual(self._count("/api/nope", 404), 1.0)

    def test_ignored_path_not_counted(self):
        self.client.get("/metrics")
        self.assertEqual(self._count("/metrics"), 0.0)


class TestMetricsMiddlewareLatency(unittest.TestCase):

    def setUp(self):
        reset_metrics()
        self.counter = create_counter("test_http_lat_total", "test counter", ["method", "path", "status"])
        self.latency = create_histogram("test_http_lat_seconds", "test latency", labelnames=["method", "path"])
        app = _app_with((MetricsMiddleware, {
            "counter": self.counter,
            "latency": self.latency,
            "ignored_paths": {"/metrics"},
        }))
        self.client = TestClient(app)

    def tearDown(self):
        reset_metrics()

    def _observations(self, path):
        from prometheus_client import REGISTRY
        return REGISTRY.get_sample_value(
            "test_http_lat_seconds_count", {"method": "GET", "path": path}
        ) or 0.0

    def test_observes_request_duration(self):
        self.client.get("/api/pingstatus")
        self.client.get("/api/pingstatus")
        self.assertEqual(self._observations("/api/pingstatus"), 2.0)

    def test_ignored_path_not_timed(self):
        self.client.get("/metrics")
        self.assertEqual(self._observations("/metrics"), 0.0)


class TestRequestLogMiddleware(unittest.TestCase):

    def setUp(self):
        app = _app_with((RequestLogMiddleware, {"logger_name": "test-requests"}))
        self.client = TestClient(app)

    def test_logs_method_path_status_and_duration(self):
        with self.assertLogs("test-requests", level=logging.INFO) as captured:
            self.client.get("/api/pingstatus")

        self.assertEqual(len(captured.records), 1)
        record = captured.records[0]
        self.assertRegex(record.getMessage(), r"^GET /api/pingstatus 200 \d+ms$")
        self.assertEqual(record.http_method, "GET")
        self.assertEqual(record.http_path, "/api/pingstatus")
        self.assertEqual(record.http_status, 200)
        self.assertGreaterEqual(record.duration_ms, 0)

    def test_logs_error_responses(self):
        with self.assertLogs("test-requests", level=logging.INFO) as captured:
            self.client.get("/missing")

        self.assertEqual(captured.records[0].http_status, 404)
        self.assertEqual(captured.records[0].levelno, logging.INFO)

    def test_server_errors_logged_as_warning(self):
        with self.assertLogs("test-requests", level=logging.INFO) as captured:
            self.client.get("/boom")

        record = captured.records[0]
        self.assertEqual(record.http_status, 503)
        self.assertEqual(record.levelno, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
