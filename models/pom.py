"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: models/pom.py – модель помпона (образца пряжи).

Назначение модуля:
- Описание ORM-модели Pom: серия, код, материал и фотографии образца.
- Правила формирования подписи помпона и выбора лицевого/бокового изображения.
"""

import uuid
from datetime import datetime

from extensions import db


class Pom(db.Model):
    """Класс `Pom` описывает физический образец пряжи."""
    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    series = db.Column(db.String(100), nullable=False, default="")
    code = db.Column(db.String(100), nullable=False)
    material = db.Column(db.String(200), nullable=False, default="")
    front_url = db.Column(db.String(1024), nullable=False, default="")
    side_url = db.Column(db.String(1024), nullable=False, default="")
    thumb_front_url = db.Column(db.String(1024), nullable=False, default="")
    thumb_side_url = db.Column(db.String(1024), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def label(self) -> str:
        """Подпись вида «серия-код» или просто код, если серии нет."""
        return f"{self.series}-{self.code}" if self.series else self.code

    @property
    def front_image(self) -> str:
        # Сначала миниатюры, затем полноразмерные фото, затем боковой ракурс
        return (
            self.thumb_front_url
            or self.front_url
            or self.thumb_side_url
            or self.side_url
            or ""
        )

    @property
    def side_image(self) -> str:
        return (
            self.side_url
            or self.thumb_side_url
            or self.front_url
            or self.thumb_front_url
            or ""
        )

    def sort_label(self) -> str:
        return f"{self.code or self.id} {self.material}".strip().lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "series": self.series,
            "code": self.code,
            "material": self.material,
            "label": self.label,
            "front_url": self.front_url,
            "side_url": self.side_url,
            "thumb_front_url": self.thumb_front_url,
            "thumb_side_url": self.thumb_side_url,
            "front_image": self.front_image,
            "side_image": self.side_image,
        }
