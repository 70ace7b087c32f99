"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/artwork_versions.py – нумерация и версионирование артворков.

Назначение модуля:
- Выдача следующего номера артворка и следующей версии для номера.
- Разбор и формирование подписи «номер.версия».
- Нормализация метаданных заказа перед сохранением.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from extensions import db
from models.artwork import Artwork

DEFAULT_START_NO = 3157


def _start_no() -> int:
    return int(current_app.config.get("ARTWORK_START_NO", DEFAULT_START_NO))


def _to_positive_int(value) -> int | None:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_artwork_label(label) -> tuple[int | None, int | None]:
    """Разбирает подпись вида `3157.2` на номер и версию."""
    if not label or not isinstance(label, str):
        return None, None
    no_part, _, version_part = label.partition(".")
    return _to_positive_int(no_part), _to_positive_int(version_part)


def format_artwork_label(artwork_no, version, start_no: int = DEFAULT_START_NO) -> str:
    if not artwork_no or not version:
        return f"{start_no}.1"
    return f"{artwork_no}.{version}"


def resolve_artwork_no(record: dict) -> int | None:
    direct = _to_positive_int(record.get("artwork_no"))
    if direct:
        return direct
    return parse_artwork_label(record.get("artwork_version"))[0]


def resolve_artwork_version(record: dict) -> int:
    direct = _to_positive_int(record.get("version"))
    if direct:
        return direct
    return parse_artwork_label(record.get("artwork_version"))[1] or 1


def next_artwork_no() -> int:
    """Следующий свободный номер артворка (не меньше стартового)."""
    start_no = _start_no()
    current_max = db.session.query(func.max(Artwork.artwork_no)).scalar()
    if current_max is None:
        return start_no
    return max(start_no, current_max + 1)


def next_version_for(artwork_no: int) -> int:
    """Следующая версия для указанного номера артворка."""
    versions = db.session.query(Artwork.version, Artwork.artwork_version).filter(
        Artwork.artwork_no == artwork_no
    )
    max_version = 0
    for version, label in versions:
        resolved = resolve_artwork_version({"version": version, "artwork_version": label})
        max_version = max(max_version, resolved)
    return max_version + 1


def allocate_version(source: Artwork | None) -> tuple[int, int]:
    """Возвращает пару (номер, версия) для нового сохранения.

    Новый артворк получает следующий номер и версию 1, сохранение на основе
    существующего – номер источника и следующую версию этого номера.
    """
    if source is None:
        return next_artwork_no(), 1

    artwork_no = resolve_artwork_no(
        {"artwork_no": source.artwork_no, "artwork_version": source.artwork_version}
    ) or next_artwork_no()
    return artwork_no, next_version_for(artwork_no)


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_meta(raw: dict | None, size_units: tuple[str, ...] = ("cm", "ft")) -> dict:
    """Приводит метаданные к полному набору полей с обрезанными строками."""
    raw = raw or {}
    size_unit = _clean(raw.get("size_unit") or raw.get("sizeUnit")).lower()
    return {
        "buyer": _clean(raw.get("buyer")),
        "date": _clean(raw.get("date")) or date.today().isoformat(),
        "design": _clean(raw.get("design") or raw.get("title")),
        "size": _clean(raw.get("size")),
        "size_unit": size_unit if size_unit in size_units else size_units[0],
        "quality": _clean(raw.get("quality")),
        "notes": _clean(raw.get("notes")),
        "project_ref": _clean(raw.get("project_ref") or raw.get("projectRef") or raw.get("project")),
    }
