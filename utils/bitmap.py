"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/bitmap.py – растровое представление изображения.

Назначение модуля:
- Хранение декодированного изображения в виде сетки RGBA-пикселей.
- Построение растра из объекта Pillow или из «сырых» RGBA-байтов.
"""

from __future__ import annotations

import numpy as np
from PIL import Image


class Bitmap:
    """Двумерная сетка пикселей с четырьмя каналами (R, G, B, A)."""

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError("Bitmap expects an array of shape (height, width, 4)")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_image(cls, image: Image.Image) -> "Bitmap":
        """Создаёт растр из изображения Pillow (любой режим приводится к RGBA)."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.asarray(image, dtype=np.uint8))

    @classmethod
    def from_rgba(cls, width: int, height: int, data) -> "Bitmap":
        """Создаёт растр из плоской последовательности RGBA-значений в построчном порядке."""
        buffer = np.asarray(bytearray(data) if isinstance(data, (bytes, bytearray)) else data, dtype=np.uint8)
        if buffer.size != width * height * 4:
            raise ValueError(
                f"Expected {width * height * 4} channel values for {width}x{height}, got {buffer.size}"
            )
        return cls(buffer.reshape((height, width, 4)))

    def rows(self, count: int) -> np.ndarray:
        """Возвращает первые `count` строк в виде плоского массива пикселей (N, 4)."""
        return self.pixels[:count].reshape(-1, 4)

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height})"
