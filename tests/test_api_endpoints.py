from unittest.mock import MagicMock, patch
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from salon_api.main import app
from salon_api.core.middleware import RateLimitMiddleware
from salon_api.db import database

client = TestClient(app)


def test_health_endpoints():
    for path in ("/", "/health", "/api/health"):
        response = client.get(path)
        assert response.status_code == 200
    assert client.get("/health").json()["status"] == "ok"


def test_unknown_route_uses_error_envelope():
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["status"] == "error"


def test_unhandled_errors_become_500():
    safe_client = TestClient(app, raise_server_exceptions=False)
    with patch("salon_api.services.review_service.list_approved", side_effect=RuntimeError("boom")):
        response = safe_client.get("/api/reviews")
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Error interno del servidor"}


def test_cors_preflight():
    response = client.options(
        "/api/services",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_rate_limit_window():
    limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=60)
    assert limiter.hit("1.2.3.4", now=0) is True
    assert limiter.hit("1.2.3.4", now=1) is True
    assert limiter.hit("1.2.3.4", now=2) is False
    # Other clients are counted separately
    assert limiter.hit("5.6.7.8", now=2) is True
    # A new window resets the counter
    assert limiter.hit("1.2.3.4", now=61) is True


def test_rate_limit_drops_expired_windows():
    limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=60)
    limiter.hit("1.2.3.4", now=0)
    limiter.hit("5.6.7.8", now=30)
    limiter.hit("9.9.9.9", now=70)
    assert set(limiter._hits) == {"5.6.7.8", "9.9.9.9"}


def test_rate_limit_ignores_forwarded_for_header():
    mini = FastAPI()
    mini.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)

    @mini.get("/ping")
    def ping():
        return {"ok": True}

    mini_client = TestClient(mini)
    statuses = [
        mini_client.get("/ping", headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
        for i in range(5)
    ]
    assert statuses == [200, 200, 429, 429, 429]


def test_get_db_rolls_back_on_error():
    session = MagicMock()
    with patch.object(database, "SessionLocal", return_value=session):
        dependency = database.get_db()
        assert next(dependency) is session
        with pytest.raises(RuntimeError):
            dependency.throw(RuntimeError("boom"))
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_get_db_closes_without_rollback():
    session = MagicMock()
    with patch.object(database, "SessionLocal", return_value=session):
        dependency = database.get_db()
        next(dependency)
        dependency.close()
    session.rollback.assert_not_called()
    session.close.assert_called_once()
