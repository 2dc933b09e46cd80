"""
Tests for liveness and readiness probes.
"""
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.db import session as db_session


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "accounts-service"}


def test_ready(client: TestClient):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_not_ready_when_database_unreachable(client: TestClient, monkeypatch):
    def unreachable(bind=None):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(db_session, "check_db_connection", unreachable)

    response = client.get("/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "not_ready", "error": "service not ready"}
