from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError


def _email_service(configured: bool):
    service = MagicMock()
    service.is_configured.return_value = configured
    return service


def test_liveness(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "profrate-service"}


def test_readiness_healthy(client):
    with patch("profrate.api.main.get_account_email_service", return_value=_email_service(True)):
        r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["percent"] == 100
    assert body["checks"] == {"database": True, "email": True, "session_secret": True}


def test_readiness_degraded_without_email(client, monkeypatch):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    with patch("profrate.api.main.get_account_email_service", return_value=_email_service(False)):
        r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "degraded"
    assert r.json()["percent"] == 33


def test_readiness_unhealthy_without_database(client):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    with patch("profrate.api.main.SessionLocal", return_value=broken), \
            patch("profrate.api.main.get_account_email_service", return_value=_email_service(True)):
        r = client.get("/api/health")
    assert r.status_code == 503
    body = r.json()
    assert body["status"] == "unhealthy"
    assert body["checks"]["database"] is False
    broken.close.assert_called_once()
