"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: utils/pdf_export.py – формирование PDF-листа артворка.

Назначение модуля:
- Подготовка данных листа: метаданные, цветовой гид с помпонами, текстуры, изображения.
- Формирование имени файла из номера, заказчика, дизайна, размера и качества.
- Отрисовка листа A4 средствами Pillow и сохранение в PDF.
"""

from __future__ import annotations

import io
import re
from datetime import date, datetime
from typing import Callable, Optional

from PIL import Image, ImageDraw, ImageFont, ImageOps

REFERENCE_MODES = ("auto", "inspiration", "visualisation", "none")
NOT_AVAILABLE = "N/A"
MAX_TEXTURES = 3

# A4 при 150 dpi
PAGE_SIZE = (1240, 1754)
PAGE_MARGIN = 60
SWATCH_COLUMNS = 4


def _clean(value, fallback: str = "") -> str:
    if not isinstance(value, str):
        return fallback
    return value.strip() or fallback


def _first_non_empty(values) -> str:
    for value in values:
        cleaned = _clean(value)
        if cleaned:
            return cleaned
    return ""


def format_date_label(value) -> str:
    """Дата в формате ДД.ММ.ГГГГ; нераспознанная строка возвращается как есть."""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d.%m.%Y")
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10]).strftime("%d.%m.%Y")
        except ValueError:
            return value.strip()
    return date.today().strftime("%d.%m.%Y")


def _sanitize_file_token(value) -> str:
    token = re.sub(r'[<>:"/\\|?*]+', " ", _clean(value))
    token = re.sub(r"\s+", " ", token)
    return re.sub(r"\.+$", "", token).strip()


def _normalize_size_for_file(size, size_unit) -> str:
    raw_size = _clean(size)
    if not raw_size:
        return ""

    compact_size = re.sub(r"\s+", "", re.sub(r"[xX*]", "x", raw_size))
    compact_unit = re.sub(r"\s+", "", _clean(size_unit))
    if compact_unit and not compact_size.lower().endswith(compact_unit.lower()):
        return f"{compact_size}{compact_unit}"
    return compact_size


def _normalize_pom_lookup(value) -> str:
    return re.sub(r"\s+", "", _clean(value)).lower()


def _build_pom_lookup(poms_by_id: dict) -> dict:
    lookup = {}
    for pom_id, pom in poms_by_id.items():
        combined = f"{pom.series}-{pom.code}" if pom.series and pom.code else ""
        for key in (pom_id, combined, pom.code):
            normalized = _normalize_pom_lookup(key)
            if normalized and normalized not in lookup:
                lookup[normalized] = pom
    return lookup


def map_colors(colors: list[dict], poms_by_id: dict) -> list[dict]:
    """Сопоставляет цвета артворка с помпонами (по id, затем по подписи/коду)."""
    lookup = _build_pom_lookup(poms_by_id)
    mapped = []

    for index, color in enumerate(colors or []):
        pom_id = _clean(color.get("pomId"))
        color_series = _clean(color.get("pomSeries"))
        color_code = _clean(color.get("pomCode"))
        color_label = _clean(color.get("pomLabel"))
        combined = f"{color_series}-{color_code}" if color_series and color_code else ""

        pom = poms_by_id.get(pom_id) if pom_id else None
        if pom is None:
            keys = [_normalize_pom_lookup(key) for key in (color_label, combined, color_code, pom_id)]
            pom = next((lookup[key] for key in keys if key and key in lookup), None)

        pom_series = color_series or (pom.series if pom else "")
        pom_code = color_code or (pom.code if pom else "")
        if pom_series or pom_code:
            fallback_label = f"{pom_series}-{pom_code}" if pom_series else pom_code
        else:
            fallback_label = "Unmapped"

        mapped.append(
            {
                "id": f"{color.get('hex') or 'color'}-{index}",
                "hex": _clean(color.get("hex"), "#000000"),
                "pct": float(color.get("pct") or 0),
                "pom_label": color_label or fallback_label,
                "pom_material": _clean(color.get("pomMaterial")) or (pom.material if pom else ""),
                "pom_front_url": _first_non_empty([pom.front_image if pom else "", color.get("pomFrontUrl")]),
                "pom_side_url": _first_non_empty([pom.side_image if pom else "", color.get("pomSideUrl")]),
                "swatch_name": f"COLOR CODE {chr(65 + index % 26)} - SWATCH {index + 1:02d}",
            }
        )
    return mapped


def map_textures(texture_ids: list, textures_by_id: dict) -> list[dict]:
    mapped = []
    for index, texture_id in enumerate((texture_ids or [])[:MAX_TEXTURES]):
        texture = textures_by_id.get(texture_id)
        if texture is None:
            mapped.append(
                {"id": texture_id, "name": str(texture_id), "quality": "", "material": "", "finish": "", "image_url": ""}
            )
            continue
        mapped.append(
            {
                "id": texture.id,
                "name": _clean(texture.name, f"Yarn {chr(65 + index)}"),
                "quality": _clean(texture.quality),
                "material": _clean(texture.material),
                "finish": _clean(texture.finish),
                "image_url": texture.image,
            }
        )
    return mapped


def derive_content(colors: list[dict]) -> str:
    """Состав ковра: до трёх уникальных материалов помпонов через « / »."""
    unique = []
    for color in colors:
        material = _clean(color.get("pom_material"))
        if material and material.lower() not in (entry.lower() for entry in unique):
            unique.append(material)
    return " / ".join(unique[:3])


def resolve_hero_url(artwork, reference_mode: str) -> str:
    inspiration = _clean(artwork.inspiration_url)
    visualisation = _clean(artwork.visualisation_url)
    if reference_mode == "none":
        return ""
    if reference_mode == "inspiration":
        return inspiration
    if reference_mode == "visualisation":
        return visualisation
    return visualisation or inspiration


def resolve_artwork_reference(artwork) -> str:
    if artwork.artwork_version:
        return artwork.artwork_version
    if artwork.artwork_no and artwork.version:
        return f"{artwork.artwork_no}.{artwork.version}"
    return artwork.id or "Artwork"


def build_pdf_payload(artwork, poms=(), textures=(), reference_mode: str = "auto") -> dict:
    """Готовит словарь с данными для отрисовки листа артворка."""
    if reference_mode not in REFERENCE_MODES:
        reference_mode = "auto"

    poms_by_id = {pom.id: pom for pom in poms if pom is not None and pom.id}
    textures_by_id = {texture.id: texture for texture in textures if texture is not None}
    colors = map_colors(artwork.colors or [], poms_by_id)
    meta = artwork.meta

    return {
        "artwork_reference": resolve_artwork_reference(artwork),
        "generated_date": format_date_label(date.today()),
        "meta": {
            "buyer": _clean(meta["buyer"]),
            "date": format_date_label(meta["date"]),
            "design": _clean(meta["design"], NOT_AVAILABLE),
            "size": _clean(meta["size"], NOT_AVAILABLE),
            "size_unit": _clean(meta["size_unit"]),
            "quality": _clean(meta["quality"], NOT_AVAILABLE),
            "project_ref": _clean(meta["project_ref"], NOT_AVAILABLE),
            "content": derive_content(colors) or NOT_AVAILABLE,
            "notes": _clean(meta["notes"]),
        },
        "cad_url": _clean(artwork.cad_url),
        "hero_url": resolve_hero_url(artwork, reference_mode),
        "reference_mode": reference_mode,
        "colors": colors,
        "textures": map_textures(artwork.textures or [], textures_by_id),
    }


def build_pdf_file_name(payload: dict) -> str:
    meta = payload.get("meta") or {}

    def _known(value):
        return value if value != NOT_AVAILABLE else ""

    size_token = _normalize_size_for_file(_known(meta.get("size")), meta.get("size_unit"))
    tokens = [
        payload.get("artwork_reference"),
        _known(meta.get("buyer")),
        _known(meta.get("design")),
        size_token,
        _known(meta.get("quality")),
    ]
    cleaned = [token for token in map(_sanitize_file_token, tokens) if token]
    stem = (" ".join(cleaned) or "Artwork")[:180].strip()
    return f"{stem}.pdf"


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Преобразует HEX-цвет вида #RRGGBB в RGB-кортеж."""
    normalized = color.lstrip("#")
    return (
        int(normalized[0:2], 16),
        int(normalized[2:4], 16),
        int(normalized[4:6], 16),
    )


def _text_color_for_background(r: int, g: int, b: int) -> tuple[int, int, int]:
    """Возвращает белый или темный цвет текста в зависимости от яркости фона."""
    luminance = 0.2126 * r + 0.7152 * g + 0.0722 * b
    return (20, 20, 20) if luminance > 150 else (245, 245, 245)


ImageLoader = Callable[[str], Optional[Image.Image]]


def _paste_fitted(page: Image.Image, draw: ImageDraw.ImageDraw, image, box, caption: str, font) -> None:
    x1, y1, x2, y2 = box
    draw.rectangle(box, fill=(238, 240, 244), outline=(210, 214, 220), width=1)
    if image is None:
        draw.text((x1 + 12, y1 + 12), f"{caption}: not available", fill=(120, 124, 130), font=font)
        return
    fitted = ImageOps.contain(image.convert("RGB"), (x2 - x1 - 2, y2 - y1 - 2))
    offset_x = x1 + 1 + (x2 - x1 - 2 - fitted.width) // 2
    offset_y = y1 + 1 + (y2 - y1 - 2 - fitted.height) // 2
    page.paste(fitted, (offset_x, offset_y))


def _draw_swatch(page, draw, color: dict, box, load_image: ImageLoader, font) -> None:
    x1, y1, x2, y2 = box
    swatch_bottom = y1 + 150
    r, g, b = _hex_to_rgb(color["hex"])

    draw.rectangle((x1, y1, x2, swatch_bottom), fill=(r, g, b))
    draw.text((x1 + 10, y1 + 10), color["hex"].upper(), fill=_text_color_for_background(r, g, b), font=font)

    pom_image = load_image(color["pom_front_url"]) if color["pom_front_url"] else None
    if pom_image is not None:
        thumb = ImageOps.fit(pom_image.convert("RGB"), (90, 90))
        page.paste(thumb, (x2 - 100, swatch_bottom - 100))

    lines = [
        color["swatch_name"],
        f"{color['pom_label']}  {color['pct']:.2f}%",
        color["pom_material"],
    ]
    for line_index, line in enumerate(line for line in lines if line):
        draw.text((x1 + 6, swatch_bottom + 8 + line_index * 16), line, fill=(33, 37, 41), font=font)
    draw.rectangle(box, outline=(210, 214, 220), width=1)


def _no_images(url: str) -> None:
    return None


def _new_page() -> tuple[Image.Image, ImageDraw.ImageDraw]:
    page = Image.new("RGB", PAGE_SIZE, (255, 255, 255))
    return page, ImageDraw.Draw(page)


def _draw_footer(draw, reference: str, page_no: int, font) -> None:
    draw.text(
        (PAGE_MARGIN, PAGE_SIZE[1] - PAGE_MARGIN + 20),
        f"{reference} - page {page_no}",
        fill=(120, 124, 130),
        font=font,
    )


def render_artwork_pdf(payload: dict, load_image: ImageLoader | None = None) -> bytes:
    """Рисует лист артворка и возвращает содержимое PDF-файла.

    `load_image(url)` возвращает изображение Pillow или `None`; недоступные
    изображения заменяются подписью-заглушкой.
    """
    if load_image is None:
        load_image = _no_images

    font = ImageFont.load_default()
    meta = payload["meta"]
    width, height = PAGE_SIZE
    content_width = width - 2 * PAGE_MARGIN
    pages = []

    page, draw = _new_page()
    y = PAGE_MARGIN
    draw.text((PAGE_MARGIN, y), f"ARTWORK {payload['artwork_reference']}", fill=(20, 20, 20), font=font)
    draw.text((width - PAGE_MARGIN - 160, y), payload["generated_date"], fill=(90, 94, 100), font=font)
    y += 30

    # Изображения: CAD слева, референс справа
    image_height = 520
    half = (content_width - 20) // 2
    cad_image = load_image(payload["cad_url"]) if payload["cad_url"] else None
    _paste_fitted(page, draw, cad_image, (PAGE_MARGIN, y, PAGE_MARGIN + half, y + image_height), "Final Artwork / CAD", font)
    hero_image = load_image(payload["hero_url"]) if payload["hero_url"] else None
    _paste_fitted(
        page, draw, hero_image, (PAGE_MARGIN + half + 20, y, width - PAGE_MARGIN, y + image_height), "Reference", font
    )
    y += image_height + 24

    rows = [
        ("Buyer", meta["buyer"]),
        ("Project Ref", meta["project_ref"]),
        ("Design No", meta["design"]),
        ("Quality", meta["quality"]),
        ("Size", f"{meta['size']} {meta['size_unit']}".strip()),
        ("Content", meta["content"]),
        ("Date", meta["date"]),
    ]
    for key, value in rows:
        if not value:
            continue
        draw.text((PAGE_MARGIN, y), key, fill=(90, 94, 100), font=font)
        draw.text((PAGE_MARGIN + 160, y), value, fill=(20, 20, 20), font=font)
        y += 20
    y += 16

    draw.text((PAGE_MARGIN, y), "Colour Guide", fill=(20, 20, 20), font=font)
    y += 24

    card_gap = 16
    card_width = (content_width - (SWATCH_COLUMNS - 1) * card_gap) // SWATCH_COLUMNS
    card_height = 220
    bottom_limit = height - PAGE_MARGIN

    colors = payload["colors"]
    for row_start in range(0, len(colors), SWATCH_COLUMNS):
        if y + card_height > bottom_limit:
            _draw_footer(draw, payload["artwork_reference"], len(pages) + 1, font)
            pages.append(page)
            page, draw = _new_page()
            y = PAGE_MARGIN
        for column, color in enumerate(colors[row_start:row_start + SWATCH_COLUMNS]):
            x1 = PAGE_MARGIN + column * (card_width + card_gap)
            _draw_swatch(page, draw, color, (x1, y, x1 + card_width, y + card_height), load_image, font)
        y += card_height + card_gap

    textures = payload["textures"]
    if textures:
        block_height = 24 + 200 + 60
        if y + block_height > bottom_limit:
            _draw_footer(draw, payload["artwork_reference"], len(pages) + 1, font)
            pages.append(page)
            page, draw = _new_page()
            y = PAGE_MARGIN
        draw.text((PAGE_MARGIN, y), "Textures", fill=(20, 20, 20), font=font)
        y += 24
        texture_width = (content_width - 2 * card_gap) // MAX_TEXTURES
        for index, texture in enumerate(textures):
            x1 = PAGE_MARGIN + index * (texture_width + card_gap)
            texture_image = load_image(texture["image_url"]) if texture["image_url"] else None
            _paste_fitted(page, draw, texture_image, (x1, y, x1 + texture_width, y + 200), texture["name"], font)
            details = " / ".join(part for part in (texture["quality"], texture["material"], texture["finish"]) if part)
            draw.text((x1, y + 208), texture["name"], fill=(33, 37, 41), font=font)
            if details:
                draw.text((x1, y + 226), details, fill=(90, 94, 100), font=font)
        y += 200 + 60

    notes = meta.get("notes")
    if notes:
        if y + 80 > bottom_limit:
            _draw_footer(draw, payload["artwork_reference"], len(pages) + 1, font)
            pages.append(page)
            page, draw = _new_page()
            y = PAGE_MARGIN
        draw.text((PAGE_MARGIN, y), "Notes", fill=(20, 20, 20), font=font)
        draw.multiline_text((PAGE_MARGIN, y + 22), notes, fill=(33, 37, 41), font=font)

    _draw_footer(draw, payload["artwork_reference"], len(pages) + 1, font)
    pages.append(page)

    buffer = io.BytesIO()
    pages[0].save(
        buffer,
        format="PDF",
        save_all=True,
        append_images=pages[1:],
        resolution=150.0,
        title=f"Artwork {payload['artwork_reference']}",
    )
    return buffer.getvalue()

