"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/pom_mapping.py – сопоставление цветов и помпонов.

Назначение модуля:
- Нормализация записей цветов перед сохранением артворка.
- Назначение помпона цвету и дозаполнение сохранённых цветов данными помпона.
"""

from __future__ import annotations

import re

HEX_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

POM_FIELDS = (
    "pomId",
    "pomSeries",
    "pomCode",
    "pomLabel",
    "pomMaterial",
    "pomFrontUrl",
    "pomSideUrl",
)


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_color_record(raw) -> dict | None:
    """Проверяет один цвет из запроса; `None`, если HEX или доля некорректны."""
    if not isinstance(raw, dict):
        return None

    hex_value = _clean(raw.get("hex"))
    if not HEX_PATTERN.match(hex_value):
        return None

    try:
        pct = float(raw.get("pct", 0) or 0)
    except (TypeError, ValueError):
        return None
    if not 0 <= pct <= 100:
        return None

    record = {"hex": hex_value.lower(), "pct": pct}
    for field in POM_FIELDS:
        record[field] = _clean(raw.get(field)) or None
    return record


def normalize_color_list(raw_colors) -> list[dict] | None:
    if not isinstance(raw_colors, list) or not raw_colors:
        return None

    normalized = []
    for raw in raw_colors:
        record = normalize_color_record(raw)
        if record is None:
            return None
        normalized.append(record)
    return normalized


def assign_pom(color: dict, pom) -> dict:
    """Возвращает копию цвета с назначенным помпоном."""
    return {
        **color,
        "pomId": pom.id,
        "pomSeries": pom.series or None,
        "pomCode": pom.code or None,
        "pomLabel": pom.label or None,
        "pomMaterial": pom.material or None,
        "pomFrontUrl": pom.front_image or None,
        "pomSideUrl": pom.side_image or None,
    }


def hydrate_colors(colors: list[dict], poms_by_id: dict) -> list[dict]:
    """Дозаполняет пустые поля помпона у сохранённых цветов по `pomId`.

    Значения, введённые пользователем (например, материал), не перезаписываются.
    """
    hydrated = []
    for color in colors or []:
        pom = poms_by_id.get(color.get("pomId") or "")
        if pom is None:
            hydrated.append(dict(color))
            continue
        fallback = assign_pom({}, pom)
        hydrated.append(
            {
                **color,
                **{field: color.get(field) or fallback[field] for field in POM_FIELDS},
            }
        )
    return hydrated
