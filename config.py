"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: config.py – конфигурация приложения.

Назначение модуля:
- Определение базовых параметров приложения Flask (секретный ключ, строка подключения к БД).
- Настройка загрузки файлов (папка, максимальный размер, допустимые форматы).
- Параметры извлечения цветов, нумерации артворков и прокси изображений.
"""

import os
import warnings


def _get_env_bool(name: str, default: bool = False) -> bool:
    """Преобразует переменную окружения в bool."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(name: str, default: int) -> int:
    """Преобразует переменную окружения в int."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str] | None = None) -> list[str]:
    """Преобразует переменную окружения вида 'a,b,c' в список."""
    value = os.environ.get(name)
    if value is None:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]


def _is_production() -> bool:
    """Определяет production-режим по FLASK_ENV."""
    return os.environ.get("FLASK_ENV", "").strip().lower() == "production"


DEFAULT_PROXY_HOSTS = ["firebasestorage.googleapis.com", "storage.googleapis.com"]


class Config:
    """Базовая конфигурация приложения."""

    _PRODUCTION = _is_production()

    SECRET_KEY = os.environ.get("SECRET_KEY")
    if not SECRET_KEY:
        if _PRODUCTION:
            raise RuntimeError(
                "SECRET_KEY environment variable is required in production. "
                "Set a strong random value before starting the app."
            )
        SECRET_KEY = "dev-insecure-secret-key"
        warnings.warn(
            "SECRET_KEY is not set. Using insecure development fallback key.",
            RuntimeWarning,
            stacklevel=1,
        )

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:////app/instance/artworks.db" if _PRODUCTION else "sqlite:///artworks.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = _get_env_bool("SESSION_COOKIE_SECURE", default=_PRODUCTION)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")

    CSRF_ENABLED = _get_env_bool("CSRF_ENABLED", default=True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    CORS_ENABLED = _get_env_bool("CORS_ENABLED", default=False)
    CORS_ORIGINS = _get_env_list(
        "CORS_ORIGINS",
        default=[
            "http://127.0.0.1:5000",
            "http://localhost:5000",
        ],
    )

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "static/uploads")
    MAX_CONTENT_LENGTH = 32 * 1024 * 1024
    ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "bmp", "tif", "tiff"}
    ALLOWED_IMAGE_FORMATS = {"png", "jpeg", "webp", "bmp", "tiff"}
    MAX_IMAGE_PIXELS = _get_env_int("MAX_IMAGE_PIXELS", 60_000_000)
    UPLOAD_RETENTION_DAYS = _get_env_int("UPLOAD_RETENTION_DAYS", 7)

    # Извлечение цветов: фиксированные значения вызывающей стороны
    EXTRACT_MAX_COLORS = _get_env_int("EXTRACT_MAX_COLORS", 120)
    EXTRACT_YIELD_EVERY_PIXELS = _get_env_int("EXTRACT_YIELD_EVERY_PIXELS", 300_000)

    ARTWORK_START_NO = _get_env_int("ARTWORK_START_NO", 3157)
    MAX_TEXTURES = 3
    SIZE_UNITS = ("cm", "ft")

    IMAGE_PROXY_ALLOWED_HOSTS = tuple(
        dict.fromkeys(DEFAULT_PROXY_HOSTS + _get_env_list("IMAGE_PROXY_ALLOWED_HOSTS"))
    )
    IMAGE_PROXY_TIMEOUT = _get_env_int("IMAGE_PROXY_TIMEOUT", 10)

    SUPPORTED_LANGUAGES = ("en", "ru")
    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "en").strip().lower() or "en"
    LANG_COOKIE_NAME = os.environ.get("LANG_COOKIE_NAME", "site_lang").strip() or "site_lang"

    @staticmethod
    def allowed_file(filename: str) -> bool:
        """Проверяет расширение загружаемого файла."""
        return (
            "." in filename
            and filename.rsplit(".", 1)[1].lower() in Config.ALLOWED_EXTENSIONS
        )
