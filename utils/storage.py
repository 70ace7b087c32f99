"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/storage.py – файловое хранилище загрузок.

Назначение модуля:
- Проверка загружаемых изображений средствами Pillow.
- Сохранение файлов в папку загрузок по пути `artworks/<id>/<метка>_<имя>`.
- Преобразование путей хранилища в публичные URL и обратно.
"""

from __future__ import annotations

import io
import os
import re
import uuid
from datetime import datetime

from PIL import Image, UnidentifiedImageError
from flask import current_app, url_for
from werkzeug.security import safe_join

from extensions import db
from models.upload import Upload
from utils.image_proxy import fetch_image_bytes

UPLOADS_URL_PREFIX = "/static/uploads/"
FORMAT_TO_EXTENSION = {"jpeg": "jpg", "png": "png", "webp": "webp", "bmp": "bmp", "tiff": "tif"}


class StorageError(Exception):
    """Ошибка сохранения или чтения файла из хранилища."""


def sanitize_file_name(file_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9._-]", "_", file_name or "")


def build_artwork_storage_path(artwork_id: str, label: str, file_name: str) -> str:
    return f"artworks/{artwork_id}/{label}_{sanitize_file_name(file_name)}"


def validate_uploaded_image(file_storage) -> tuple[str | None, str | None]:
    """Проверяет, что файл – корректное изображение допустимого формата.

    Возвращает пару (расширение, сообщение об ошибке); одно из значений всегда `None`.
    """
    cfg = current_app.config
    file_storage.stream.seek(0)
    try:
        with Image.open(file_storage.stream) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return None, "File is not a valid image."
    finally:
        file_storage.stream.seek(0)

    try:
        with Image.open(file_storage.stream) as image:
            image_format = (image.format or "").lower()
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        return None, "File is not a valid image."
    finally:
        file_storage.stream.seek(0)

    if image_format not in cfg["ALLOWED_IMAGE_FORMATS"]:
        return None, "Unsupported image format."

    if width * height > cfg["MAX_IMAGE_PIXELS"]:
        return None, "Image resolution is too large."

    return FORMAT_TO_EXTENSION.get(image_format, image_format), None


def upload_root() -> str:
    """Абсолютный путь папки загрузок (относительный считается от корня приложения)."""
    return os.path.join(current_app.root_path, current_app.config["UPLOAD_FOLDER"])


def _absolute_path(storage_path: str) -> str:
    full_path = safe_join(upload_root(), storage_path)
    if full_path is None:
        raise StorageError(f"Invalid storage path: {storage_path}")
    return full_path


def save_upload(file_storage, storage_path: str, label: str, artwork_id: str | None = None) -> Upload:
    """Сохраняет файл на диск и создаёт запись `Upload` (без commit)."""
    full_path = _absolute_path(storage_path)
    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    file_storage.stream.seek(0)
    try:
        file_storage.save(full_path)
    except OSError as exc:
        raise StorageError(f"Unable to store {storage_path}") from exc

    record = Upload(storage_path=storage_path, label=label, artwork_id=artwork_id)
    db.session.add(record)
    return record


def discard_files(storage_paths) -> int:
    """Удаляет с диска файлы, записанные в откатившейся транзакции.

    Пустые папки артворков удаляются вместе с файлами. Возвращает число удалённых файлов.
    """
    removed = 0
    for storage_path in storage_paths:
        full_path = _absolute_path(storage_path)
        try:
            os.remove(full_path)
            removed += 1
        except FileNotFoundError:
            continue
        except OSError:
            current_app.logger.warning("Unable to remove %s after rollback", storage_path)
            continue

        folder = os.path.dirname(full_path)
        if folder != upload_root() and not os.listdir(folder):
            os.rmdir(folder)
    return removed


def save_draft(file_storage, extension: str) -> Upload:
    """Сохраняет CAD-черновик для извлечения цветов до сохранения артворка."""
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    storage_path = f"drafts/{timestamp}_{uuid.uuid4().hex[:12]}.{extension}"
    return save_upload(file_storage, storage_path, label="draft")


def public_url(storage_path: str) -> str:
    return url_for("uploaded_file", filename=storage_path)


def storage_path_from_url(url: str) -> str | None:
    """Возвращает путь в хранилище для URL собственных загрузок, иначе `None`."""
    if not url or not url.startswith(UPLOADS_URL_PREFIX):
        return None
    return url[len(UPLOADS_URL_PREFIX):] or None


def local_file_for_url(url: str) -> str | None:
    storage_path = storage_path_from_url(url)
    if storage_path is None:
        return None
    full_path = _absolute_path(storage_path)
    return full_path if os.path.isfile(full_path) else None


def attach_draft(url: str, artwork_id: str, label: str) -> None:
    """Привязывает ранее загруженный черновик к артворку, чтобы его не удалила очистка."""
    storage_path = storage_path_from_url(url)
    if storage_path is None:
        return
    record = Upload.query.filter_by(storage_path=storage_path).first()
    if record is not None and record.artwork_id is None:
        record.artwork_id = artwork_id
        record.label = label


def open_stored_image(url: str) -> Image.Image:
    """Открывает изображение из собственного хранилища по его публичному URL."""
    full_path = local_file_for_url(url)
    if full_path is None:
        raise StorageError(f"Stored file not found for {url}")
    try:
        with Image.open(full_path) as image:
            image.load()
            return image.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise StorageError(f"Stored file is not a readable image: {url}") from exc


def open_image_url(url: str) -> Image.Image:
    """Открывает изображение по URL: собственная загрузка или разрешённый хост хранилища."""
    if storage_path_from_url(url) is not None:
        return open_stored_image(url)

    data = fetch_image_bytes(url)
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise StorageError(f"Remote file is not a readable image: {url}") from exc
