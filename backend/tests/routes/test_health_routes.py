"""
Routes: /health and /metrics
"""

from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.dependencies import get_db
from app.main import app
from app.routes.v1 import prometheus as prometheus_v1


class TestHealth:
    def test_healthy_with_database(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"
        assert body["environment"] == "test"
        assert body["timestamp"].endswith("Z")
        assert "X-Commit-Sha" in response.headers

    def test_degraded_without_database(self, client):
        broken = MagicMock()
        broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        app.dependency_overrides[get_db] = lambda: broken

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "unreachable"
        assert response.json()["status"] == "degraded"


class TestMetrics:
    def test_exposes_prometheus_text(self):
        metrics_app = FastAPI()
        metrics_app.include_router(prometheus_v1.router)

        response = TestClient(metrics_app).get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert b"scheduler_prometheus_scrapes_total" in response.content
        assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"


class TestUnknownRoutes:
    def test_problem_document_for_404(self, client):
        response = client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["ok"] is False
        assert body["status"] == 404
        assert body["title"] == "Not Found"
        assert body["instance"] == "/api/v1/nothing-here"
