"""Tests for the Prometheus request middleware."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from chainpay.metrics.middleware import PrometheusMiddleware


@pytest.fixture
def app_with_metrics() -> tuple[FastAPI, CollectorRegistry]:
    registry = CollectorRegistry()
    app = FastAPI()
    app.add_middleware(PrometheusMiddleware, registry=registry)

    @app.get("/subscriptions/{intent_id}")
    async def get_subscription(intent_id: str) -> dict[str, str]:
        return {"id": intent_id}

    return app, registry


class TestPrometheusMiddleware:
    def test_counts_by_route_template(self, app_with_metrics):
        app, registry = app_with_metrics
        client = TestClient(app)
        client.get("/subscriptions/0xa")
        client.get("/subscriptions/0xb")

        value = registry.get_sample_value(
            "http_request_total",
            {"method": "GET", "path": "/subscriptions/{intent_id}", "status_code": "200", "app": "chainpay"},
        )
        assert value == 2.0

    def test_records_duration(self, app_with_metrics):
        app, registry = app_with_metrics
        TestClient(app).get("/subscriptions/0xa")
        names = [m.name for m in registry.collect()]
        assert "http_request_duration_seconds" in names

    def test_unmatched_path_uses_raw_url(self, app_with_metrics):
        app, registry = app_with_metrics
        TestClient(app).get("/nope")
        value = registry.get_sample_value(
            "http_request_total",
            {"method": "GET", "path": "/nope", "status_code": "404", "app": "chainpay"},
        )
        assert value == 1.0
