"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: models/upload.py – модель загруженного файла.

Назначение модуля:
- Учёт файлов, сохранённых в папке загрузок (CAD, визуализация, вдохновение).
- Хранение относительного пути, метки файла и (при наличии) ссылки на артворк.
"""

from datetime import datetime
from extensions import db


class Upload(db.Model):
    """Класс `Upload` описывает файл в хранилище загрузок."""
    id = db.Column(db.Integer, primary_key=True)
    storage_path = db.Column(db.String(512), nullable=False, unique=True)
    label = db.Column(db.String(32), nullable=False, default="draft")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    # Черновики для извлечения цветов не привязаны к артворку
    artwork_id = db.Column(db.String(32), db.ForeignKey("artwork.id"), nullable=True, index=True)
