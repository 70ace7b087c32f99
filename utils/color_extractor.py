"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/color_extractor.py – извлечение точных доминирующих цветов.

Назначение модуля:
- Подсчёт частот точных RGB-цветов непрозрачных пикселей (без кластеризации).
- Исключение нижней полосы изображения (подписи, водяные знаки в CAD-экспорте).
- Отбор самых частых цветов ограниченной кучей размера `max_colors`.
- Периодическая передача управления планировщику asyncio во время сканирования.

Порядок при равных частотах: выигрывает цвет с меньшим числовым ключом
`(r << 16) | (g << 8) | b`, как при вытеснении из кучи, так и в итоговом списке.
"""

from __future__ import annotations

import asyncio
import heapq
import math
from collections import Counter
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from utils.bitmap import Bitmap

DEFAULT_MAX_COLORS = 120
DEFAULT_YIELD_EVERY_PIXELS = 350_000
MIN_YIELD_EVERY_PIXELS = 50_000
MAX_YIELD_EVERY_PIXELS = 2_000_000
MAX_IGNORE_BOTTOM_PCT = 12


class InvalidInputError(ValueError):
    """Растр отсутствует или имеет нулевую ширину/высоту."""


@dataclass(frozen=True)
class ExtractedColor:
    hex: str
    pct: float

    def to_dict(self) -> dict:
        return {"hex": self.hex, "pct": self.pct}


def _clamp(value, lower, upper):
    return min(upper, max(lower, value))


def _to_number(value, default):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


@dataclass(frozen=True)
class ExtractionOptions:
    """Параметры извлечения; значения нормализуются методом `normalized`."""

    ignore_bottom_pct: float = 0
    max_colors: float = DEFAULT_MAX_COLORS
    yield_every_pixels: int = DEFAULT_YIELD_EVERY_PIXELS

    @classmethod
    def from_mapping(cls, data: dict | None) -> "ExtractionOptions":
        data = data or {}
        return cls(
            ignore_bottom_pct=data.get("ignore_bottom_pct", 0),
            max_colors=data.get("max_colors", DEFAULT_MAX_COLORS),
            yield_every_pixels=data.get("yield_every_pixels", DEFAULT_YIELD_EVERY_PIXELS),
        ).normalized()

    def normalized(self) -> "ExtractionOptions":
        """Приводит параметры к допустимым диапазонам."""
        ignore = _to_number(self.ignore_bottom_pct, 0.0)
        if math.isinf(ignore):
            ignore = 0.0

        max_colors = _to_number(self.max_colors, None)
        if max_colors is None:
            max_colors = DEFAULT_MAX_COLORS
        elif not math.isinf(max_colors):
            max_colors = max(1, math.floor(max_colors))
        elif max_colors < 0:
            max_colors = 1

        yield_every = _to_number(self.yield_every_pixels, 0) or DEFAULT_YIELD_EVERY_PIXELS
        if math.isinf(yield_every):
            yield_every = MAX_YIELD_EVERY_PIXELS

        return ExtractionOptions(
            ignore_bottom_pct=_clamp(ignore, 0, MAX_IGNORE_BOTTOM_PCT),
            max_colors=max_colors,
            yield_every_pixels=int(_clamp(yield_every, MIN_YIELD_EVERY_PIXELS, MAX_YIELD_EVERY_PIXELS)),
        )


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def key_to_hex(rgb_key: int) -> str:
    return rgb_to_hex((rgb_key >> 16) & 255, (rgb_key >> 8) & 255, rgb_key & 255)


def scan_height_for(height: int, ignore_bottom_pct: float) -> int:
    """Число сканируемых строк сверху с учётом отбрасываемой нижней полосы."""
    ignore_rows = math.floor(height * _clamp(ignore_bottom_pct, 0, MAX_IGNORE_BOTTOM_PCT) / 100)
    return max(1, height - ignore_rows)


def take_top_counts(histogram: Mapping[int, int], top_n: float) -> list[tuple[int, int]]:
    """Отбирает из гистограммы `top_n` пар (ключ, частота) с наибольшей частотой.

    Куча упорядочена по возрастанию (частота, -ключ): в корне лежит самый
    редкий цвет, а среди равных по частоте – с наибольшим ключом. Новая пара
    вытесняет корень только если она строго «больше» его. Гистограмма
    читается через `items()` без копирования, куча не больше `top_n`.
    """
    if math.isinf(top_n) or top_n >= len(histogram):
        return sorted(histogram.items(), key=lambda entry: (-entry[1], entry[0]))

    heap: list[tuple[int, int]] = []
    for rgb_key, count in histogram.items():
        item = (count, -rgb_key)
        if len(heap) < top_n:
            heapq.heappush(heap, item)
        elif item > heap[0]:
            heapq.heapreplace(heap, item)

    return sorted(((-neg_key, count) for count, neg_key in heap), key=lambda entry: (-entry[1], entry[0]))


async def _yield_control() -> None:
    await asyncio.sleep(0)


def _count_chunk(histogram: Counter, chunk: np.ndarray) -> int:
    opaque = chunk[chunk[:, 3] != 0]
    if not len(opaque):
        return 0

    rgb = opaque[:, :3].astype(np.uint32)
    keys = (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]
    unique_keys, counts = np.unique(keys, return_counts=True)
    histogram.update(dict(zip(unique_keys.tolist(), counts.tolist())))
    return int(len(opaque))


async def extract_colors(bitmap: Bitmap | None, options=None, *, cancel_event=None) -> list[ExtractedColor] | None:
    """Возвращает самые частые непрозрачные цвета растра по убыванию доли.

    `options` – `ExtractionOptions` или словарь с теми же ключами.
    Если передан `cancel_event` (объект с методом `is_set()`) и он выставлен
    в момент очередной передачи управления, возвращается `None`.
    """
    if bitmap is None:
        raise InvalidInputError("Bitmap is required for color extraction.")
    if not bitmap.width or not bitmap.height:
        raise InvalidInputError("Bitmap has invalid dimensions.")

    if isinstance(options, ExtractionOptions):
        options = options.normalized()
    else:
        options = ExtractionOptions.from_mapping(options)

    scan_height = scan_height_for(bitmap.height, options.ignore_bottom_pct)
    pixels = bitmap.rows(scan_height)
    total = len(pixels)
    step = options.yield_every_pixels

    histogram: Counter = Counter()
    considered_pixels = 0

    for start in range(0, total, step):
        end = min(start + step, total)
        considered_pixels += _count_chunk(histogram, pixels[start:end])

        # Отдаём управление после каждых полных `step` обработанных пикселей
        if end - start == step:
            await _yield_control()
            if cancel_event is not None and cancel_event.is_set():
                return None

    if considered_pixels == 0:
        return []

    top_entries = take_top_counts(histogram, options.max_colors)
    colors = [
        ExtractedColor(hex=key_to_hex(rgb_key), pct=round(count / considered_pixels * 100, 2))
        for rgb_key, count in top_entries
    ]
    return sorted(colors, key=lambda color: -color.pct)


def extract_colors_sync(bitmap: Bitmap | None, options=None, *, cancel_event=None) -> list[ExtractedColor] | None:
    """Синхронная обёртка над `extract_colors` для обработчиков Flask."""
    return asyncio.run(extract_colors(bitmap, options, cancel_event=cancel_event))
