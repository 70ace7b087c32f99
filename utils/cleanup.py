"""
Модуль: `utils/cleanup.py`.
Назначение: Очистка устаревших черновых загрузок, не привязанных к артворкам.
"""

import os
from datetime import datetime, timedelta

from flask import current_app

from extensions import db
from models.upload import Upload
from utils.storage import upload_root


def cleanup_old_uploads(days: int | None = None) -> int:
    """Удаляет черновики старше `days` дней и возвращает число удалённых файлов."""
    if days is None:
        days = current_app.config.get("UPLOAD_RETENTION_DAYS", 7)
    cutoff = datetime.utcnow() - timedelta(days=days)
    upload_folder = upload_root()

    old_files = Upload.query.filter(
        Upload.artwork_id.is_(None),
        Upload.created_at < cutoff,
    ).all()

    for f in old_files:
        file_path = os.path.join(upload_folder, f.storage_path)

        if os.path.exists(file_path):
            os.remove(file_path)

        db.session.delete(f)

    db.session.commit()
    current_app.logger.info("Removed %s stale draft uploads", len(old_files))
    return len(old_files)
