"""
Название: «Artwork Studio»
Язык: Python (Flask)
Краткое описание: веб-приложение для извлечения цветов из CAD-макетов ковров,
подбора помпонов, версионирования артворков и экспорта спецификаций в PDF
"""

import hmac
import os
import secrets

import click
from flask import Flask, g, jsonify, request, session
from flask_babel import gettext as _

from config import Config
from extensions import db, cors, babel
import models  # noqa: F401 - регистрирует модели для db.create_all()
from routes.api import register_routes as register_api_routes
from routes.catalog import register_routes as register_catalog_routes
from routes.proxy import register_routes as register_proxy_routes
from utils.cleanup import cleanup_old_uploads
from utils.i18n import resolve_request_language
from utils.rate_limit import InMemoryRateLimiter
from utils.storage import upload_root

CSRF_EXEMPT_ENDPOINTS = {"healthz", "image_proxy", "csrf_token"}


def create_app(overrides: dict | None = None) -> Flask:
    """Фабрика приложения, собирающая все модули воедино."""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Инициализация расширений
    db.init_app(app)

    def select_locale() -> str:
        return getattr(g, "lang", app.config["DEFAULT_LANGUAGE"])

    babel.init_app(app, locale_selector=select_locale)

    if app.config["CORS_ENABLED"]:
        cors.init_app(
            app,
            resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        )

    app.extensions["rate_limiter"] = InMemoryRateLimiter()

    # Гарантируем наличие служебных директорий
    os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        os.makedirs(upload_root(), exist_ok=True)

    # Регистрация роутов по модулям
    register_api_routes(app)
    register_catalog_routes(app)
    register_proxy_routes(app)

    with app.app_context():
        # Создаем отсутствующие таблицы (без изменения существующих колонок)
        db.create_all()

    def _ensure_csrf_token() -> str:
        token = session.get("csrf_token")
        if not token:
            token = secrets.token_urlsafe(32)
            session["csrf_token"] = token
        return token

    def _is_csrf_valid() -> bool:
        expected = session.get("csrf_token")
        provided = request.headers.get("X-CSRF-Token") or request.form.get("csrf_token")
        if not expected or not provided:
            return False
        return hmac.compare_digest(expected, provided)

    @app.before_request
    def resolve_request_language_middleware():
        g.lang = resolve_request_language(
            request=request,
            supported_languages=app.config["SUPPORTED_LANGUAGES"],
            cookie_name=app.config["LANG_COOKIE_NAME"],
            default_language=app.config["DEFAULT_LANGUAGE"],
        )

    @app.before_request
    def enforce_csrf():
        """Проверяет CSRF-токен у изменяющих запросов к API."""
        if not app.config["CSRF_ENABLED"]:
            return None

        if request.method in {"GET", "HEAD", "OPTIONS", "TRACE"}:
            return None

        if request.endpoint in CSRF_EXEMPT_ENDPOINTS:
            return None

        if _is_csrf_valid():
            return None

        return (
            jsonify(
                {
                    "success": False,
                    "error": _("Invalid CSRF token. Refresh the page and try again."),
                }
            ),
            400,
        )

    @app.after_request
    def apply_security_headers(response):
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
        return response

    @app.get("/api/csrf-token")
    def csrf_token():
        return jsonify({"csrf_token": _ensure_csrf_token()})

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    @app.cli.command("cleanup-uploads")
    @click.option("--days", type=int, default=None, help="Retention window in days.")
    def cleanup_uploads_command(days):
        """Удаляет черновые загрузки, не привязанные к артворкам."""
        removed = cleanup_old_uploads(days)
        click.echo(f"Removed {removed} draft upload(s).")

    return app


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        # Очистка старых загрузок при запуске приложения
        cleanup_old_uploads()
    is_production = os.environ.get("FLASK_ENV", "").lower() == "production"
    app.run(debug=not is_production)
