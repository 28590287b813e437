"""
Tests for the health check endpoint.
"""

from sqlalchemy.exc import OperationalError


def test_health_check_returns_200(client):
    response = client.get("/health")
    assert response.status_code == 200


def test_health_check_returns_service_name(client):
    """
    The service name is parsed by monitoring systems, so a change
    to it is a breaking change.
    """
    response = client.get("/health")
    assert response.json()["service"] == "branch-back-office"


def test_health_check_reports_database_status(client):
    response = client.get("/health")
    data = response.json()
    assert data["database"] == "healthy"
    assert data["status"] == "healthy"


def test_health_check_reports_version(client):
    data = client.get("/health").json()
    assert data["version"] == "0.1.0"
    assert "environment" in data


def test_database_failure_reports_degraded(client, db_session, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(db_session, "execute", broken)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "unhealthy"
