"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: models/artwork.py – модель версии артворка.

Назначение модуля:
- Описание ORM-модели Artwork: номер, версия, метаданные заказа и ссылки на файлы.
- Хранение извлечённых цветов с назначенными помпонами и выбранных текстур.
- Каждое сохранение создаёт новую неизменяемую версию (номер.версия).
"""

import uuid
from datetime import datetime

from extensions import db

META_FIELDS = ("buyer", "date", "design", "size", "size_unit", "quality", "notes", "project_ref")


def _new_artwork_id() -> str:
    return uuid.uuid4().hex


class Artwork(db.Model):
    """Класс `Artwork` описывает одну сохранённую версию артворка."""
    id = db.Column(db.String(32), primary_key=True, default=_new_artwork_id)
    artwork_no = db.Column(db.Integer, nullable=False, index=True)
    version = db.Column(db.Integer, nullable=False, default=1)
    artwork_version = db.Column(db.String(32), nullable=False, index=True)
    source_artwork_id = db.Column(db.String(32), nullable=True)

    buyer = db.Column(db.String(200), nullable=False, default="")
    date = db.Column(db.String(10), nullable=False, default="")
    design = db.Column(db.String(200), nullable=False, default="")
    size = db.Column(db.String(100), nullable=False, default="")
    size_unit = db.Column(db.String(8), nullable=False, default="cm")
    quality = db.Column(db.String(200), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")
    project_ref = db.Column(db.String(200), nullable=False, default="")

    cad_url = db.Column(db.String(1024), nullable=False, default="")
    visualisation_url = db.Column(db.String(1024), nullable=False, default="")
    inspiration_url = db.Column(db.String(1024), nullable=False, default="")
    ignore_bottom_pct = db.Column(db.Float, nullable=False, default=0)

    colors = db.Column(db.JSON, nullable=False, default=list)
    textures = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    @property
    def meta(self) -> dict:
        return {field: getattr(self, field) or "" for field in META_FIELDS}

    def search_text(self) -> str:
        """Строка для полнотекстового фильтра списка артворков."""
        parts = [self.id, self.artwork_version, *self.meta.values()]
        return " ".join(part for part in parts if part).lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "artwork_no": self.artwork_no,
            "version": self.version,
            "artwork_version": self.artwork_version,
            "source_artwork_id": self.source_artwork_id,
            "meta": self.meta,
            "cad_url": self.cad_url,
            "visualisation_url": self.visualisation_url,
            "inspiration_url": self.inspiration_url,
            "ignore_bottom_pct": self.ignore_bottom_pct,
            "colors": list(self.colors or []),
            "textures": list(self.textures or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
