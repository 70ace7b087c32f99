"""
Общие фикстуры тестов: приложение на SQLite в памяти и временная папка загрузок.
"""

import io
import os

import numpy as np
import pytest
from PIL import Image

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "CSRF_ENABLED": False,
            "IMAGE_PROXY_ALLOWED_HOSTS": ("storage.example.com",),
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


def make_png(pixels) -> bytes:
    """PNG-байты из массива (H, W, 3) или (H, W, 4)."""
    array = np.asarray(pixels, dtype=np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format="PNG")
    return buffer.getvalue()


def two_colour_cad(width: int = 20, height: int = 10) -> bytes:
    """Левая половина красная, правая синяя."""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, : width // 2] = (255, 0, 0)
    pixels[:, width // 2:] = (0, 0, 255)
    return make_png(pixels)


@pytest.fixture
def cad_png():
    return two_colour_cad()
