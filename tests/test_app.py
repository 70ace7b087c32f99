"""
Application level tests: health check, security headers, CSRF, language and CLI.
"""

import io

import pytest
from flask import g

from app import create_app
from extensions import db
import utils.rate_limit as rate_limit


@pytest.fixture
def csrf_app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "CSRF_ENABLED": True,
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_healthz_and_security_headers(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


class TestCsrf:
    """Token checks on state changing requests"""

    def test_post_without_token_is_rejected(self, csrf_app):
        client = csrf_app.test_client()
        response = client.post("/api/poms", json={"code": "101"})
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_post_with_header_token(self, csrf_app):
        client = csrf_app.test_client()
        token = client.get("/api/csrf-token").get_json()["csrf_token"]

        response = client.post("/api/poms", json={"code": "101"}, headers={"X-CSRF-Token": token})
        assert response.status_code == 201

    def test_proxy_is_exempt(self, csrf_app):
        response = csrf_app.test_client().options("/api/image-proxy")
        assert response.status_code == 204


class TestLanguage:
    """Locale selection for API messages"""

    def test_cookie_wins_over_header(self, app):
        with app.test_request_context(headers={"Accept-Language": "ru", "Cookie": "site_lang=en"}):
            app.preprocess_request()
            assert g.lang == "en"

    def test_accept_language_then_default(self, app):
        with app.test_request_context(headers={"Accept-Language": "ru-RU,ru;q=0.9"}):
            app.preprocess_request()
            assert g.lang == "ru"

        with app.test_request_context(headers={"Accept-Language": "de"}):
            app.preprocess_request()
            assert g.lang == "en"


def test_cleanup_command(app):
    result = app.test_cli_runner().invoke(args=["cleanup-uploads", "--days", "1"])
    assert result.exit_code == 0
    assert "Removed 0 draft upload(s)." in result.output


def test_rate_limiter_sliding_window(monkeypatch):
    now = [100.0]
    monkeypatch.setattr(rate_limit.time, "monotonic", lambda: now[0])
    limiter = rate_limit.InMemoryRateLimiter()

    assert limiter.is_allowed("extract:1.2.3.4", limit=2, window_seconds=10)
    assert limiter.is_allowed("extract:1.2.3.4", limit=2, window_seconds=10)
    assert not limiter.is_allowed("extract:1.2.3.4", limit=2, window_seconds=10)
    assert limiter.is_allowed("extract:5.6.7.8", limit=2, window_seconds=10)

    now[0] += 11
    assert limiter.is_allowed("extract:1.2.3.4", limit=2, window_seconds=10)


def test_extract_is_rate_limited(client, app, cad_png):
    app.extensions["rate_limiter"].is_allowed = lambda key, limit, window_seconds: False
    response = client.post(
        "/api/extract", data={"image": (io.BytesIO(cad_png), "cad.png")}, content_type="multipart/form-data"
    )
    assert response.status_code == 429
