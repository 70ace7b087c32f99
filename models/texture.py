"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: models/texture.py – модель текстуры (референса фактуры).
"""

import uuid
from datetime import datetime

from extensions import db


class Texture(db.Model):
    """Класс `Texture` описывает референс фактуры ворса."""
    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = db.Column(db.String(200), nullable=False, default="")
    quality = db.Column(db.String(200), nullable=False, default="")
    material = db.Column(db.String(200), nullable=False, default="")
    finish = db.Column(db.String(200), nullable=False, default="")
    image_url = db.Column(db.String(1024), nullable=False, default="")
    thumb_url = db.Column(db.String(1024), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def image(self) -> str:
        return self.thumb_url or self.image_url or ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quality": self.quality,
            "material": self.material,
            "finish": self.finish,
            "image_url": self.image_url,
            "thumb_url": self.thumb_url,
        }
