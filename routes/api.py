"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: routes/api.py – REST-подобные API-маршруты.

Назначение модуля:
- Загрузка CAD-изображения и извлечение точных доминирующих цветов.
- Сохранение версий артворков (номер.версия) с файлами, цветами и текстурами.
- Выгрузка PDF-листа артворка.
- Выдача загруженных файлов из папки загрузок.
"""

import io
import json
import uuid

from PIL import Image, UnidentifiedImageError
from flask import current_app, request, jsonify, send_file, send_from_directory
from flask_babel import gettext as _

from config import Config
from extensions import db
from models.artwork import Artwork
from models.pom import Pom
from models.texture import Texture
from utils.artwork_versions import allocate_version, format_artwork_label, next_artwork_no, normalize_meta
from utils.bitmap import Bitmap
from utils.color_extractor import ExtractionOptions, InvalidInputError, extract_colors_sync
from utils.image_proxy import ProxyError
from utils.pdf_export import REFERENCE_MODES, build_pdf_file_name, build_pdf_payload, render_artwork_pdf
from utils.pom_mapping import hydrate_colors, normalize_color_list
from utils.rate_limit import rate_limited
from utils.storage import (
    StorageError,
    attach_draft,
    build_artwork_storage_path,
    discard_files,
    open_image_url,
    public_url,
    save_draft,
    save_upload,
    upload_root,
    validate_uploaded_image,
)

Image.MAX_IMAGE_PIXELS = Config.MAX_IMAGE_PIXELS

ASSET_LABELS = ("cad", "visualisation", "inspiration")


def _allowed_file(filename: str) -> bool:
    return Config.allowed_file(filename)


def _api_error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _extraction_options(raw_ignore_bottom_pct) -> ExtractionOptions:
    cfg = current_app.config
    return ExtractionOptions(
        ignore_bottom_pct=raw_ignore_bottom_pct,
        max_colors=cfg["EXTRACT_MAX_COLORS"],
        yield_every_pixels=cfg["EXTRACT_YIELD_EVERY_PIXELS"],
    ).normalized()


def _run_extraction(image: Image.Image, options: ExtractionOptions) -> list[dict]:
    bitmap = Bitmap.from_image(image)
    colors = extract_colors_sync(bitmap, options)
    current_app.logger.info(
        "Extracted %s colors from %sx%s bitmap (ignore bottom %s%%)",
        len(colors),
        bitmap.width,
        bitmap.height,
        options.ignore_bottom_pct,
    )
    return [color.to_dict() for color in colors]


def _load_pom_map() -> dict:
    return {pom.id: pom for pom in Pom.query.all()}


def _read_artwork_payload() -> dict | None:
    """Читает данные сохранения из JSON или из multipart-формы.

    Возвращает `None`, если тело JSON не является объектом.
    """
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        return data if isinstance(data, dict) else None

    form = request.form
    data = {key: form.get(key) for key in form.keys()}
    for key in ("colors", "textures", "meta"):
        raw = form.get(key)
        if raw:
            try:
                data[key] = json.loads(raw)
            except ValueError:
                data[key] = None
    return data


def _text_field(data: dict, key: str) -> str | None:
    """Строковое поле запроса без пробелов по краям; `None`, если тип не строка."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        return None
    return value.strip()


def _normalize_texture_ids(raw_textures):
    if raw_textures in (None, ""):
        return []
    if not isinstance(raw_textures, list) or not all(isinstance(item, str) for item in raw_textures):
        return None
    texture_ids = list(dict.fromkeys(item.strip() for item in raw_textures if item.strip()))
    if len(texture_ids) > current_app.config["MAX_TEXTURES"]:
        return None
    return texture_ids


def _validate_assets(data: dict) -> str | None:
    """Проверяет все присланные файлы и URL до записи чего-либо на диск."""
    for label in ASSET_LABELS:
        file = request.files.get(label)
        if file is not None and file.filename:
            if not _allowed_file(file.filename):
                return _("Invalid file type for %(label)s.", label=label)
            _extension, validation_error = validate_uploaded_image(file)
            if validation_error is not None:
                return _(validation_error)
        elif _text_field(data, f"{label}_url") is None:
            return _("Invalid URL for %(label)s.", label=label)
    return None


def _persist_asset(label: str, artwork_id: str, data: dict, written: list[str]) -> str:
    """Сохраняет проверенный файл метки `label` или принимает уже существующий URL.

    Пути записанных файлов добавляются в `written`, чтобы их можно было удалить при откате.
    """
    file = request.files.get(label)
    if file is not None and file.filename:
        storage_path = build_artwork_storage_path(artwork_id, label, file.filename)
        save_upload(file, storage_path, label=label, artwork_id=artwork_id)
        written.append(storage_path)
        return public_url(storage_path)

    url = _text_field(data, f"{label}_url")
    if url:
        attach_draft(url, artwork_id, label)
    return url


def register_routes(app):
    @app.route("/api/extract", methods=["POST"])
    def extract_from_upload():
        """Обработчик загрузки CAD-изображения и извлечения цветов."""
        try:
            if rate_limited("extract", limit=40, window_seconds=10 * 60):
                return _api_error(_("Too many uploads. Please try again later."), 429)

            if "image" not in request.files:
                return _api_error(_("No file was uploaded."), 400)

            file = request.files["image"]

            # Проверяем, что пользователь действительно выбрал файл
            if file.filename == "":
                return _api_error(_("No file selected."), 400)

            if not _allowed_file(file.filename):
                return _api_error(_("Invalid file type."), 400)

            extension, validation_error = validate_uploaded_image(file)
            if validation_error is not None:
                return _api_error(_(validation_error), 400)

            options = _extraction_options(request.form.get("ignore_bottom_pct", 0))

            try:
                with Image.open(file.stream) as image:
                    image.load()
                    width, height = image.size
                    colors = _run_extraction(image, options)
            except InvalidInputError:
                return _api_error(_("Image has invalid dimensions."), 400)
            except (UnidentifiedImageError, OSError):
                current_app.logger.exception("Failed to decode uploaded CAD image")
                return _api_error(_("Unable to read the CAD image."), 400)

            if not colors:
                return _api_error(_("No colors were detected. Try a different CAD image."), 422)

            draft = save_draft(file, extension)
            db.session.commit()

            return jsonify(
                {
                    "success": True,
                    "filename": draft.storage_path,
                    "url": public_url(draft.storage_path),
                    "width": width,
                    "height": height,
                    "ignore_bottom_pct": options.ignore_bottom_pct,
                    "colors": colors,
                }
            )

        except Exception:
            db.session.rollback()
            current_app.logger.exception("Critical error while extracting colors from upload")
            return _api_error(_("Internal server error"), 500)

    @app.route("/api/artworks/<artwork_id>/extract", methods=["POST"])
    def extract_from_artwork(artwork_id: str):
        """Повторное извлечение цветов из CAD сохранённого артворка с новой нижней полосой."""
        try:
            if rate_limited("extract", limit=40, window_seconds=10 * 60):
                return _api_error(_("Too many requests. Please try again later."), 429)

            artwork = db.session.get(Artwork, artwork_id)
            if artwork is None:
                return _api_error(_("Artwork not found."), 404)

            if not artwork.cad_url:
                return _api_error(_("CAD upload is required before extracting colors."), 400)

            data = request.get_json(silent=True) or {}
            if not isinstance(data, dict):
                return _api_error(_("Invalid request body."), 400)
            options = _extraction_options(data.get("ignore_bottom_pct", artwork.ignore_bottom_pct))

            try:
                image = open_image_url(artwork.cad_url)
            except (StorageError, ProxyError):
                current_app.logger.warning("CAD image for artwork %s is unavailable", artwork_id)
                return _api_error(_("Unable to load CAD image for extraction."), 404)

            with image:
                colors = _run_extraction(image, options)
            if not colors:
                return _api_error(_("No colors were detected. Try a different CAD image."), 422)

            return jsonify(
                {
                    "success": True,
                    "ignore_bottom_pct": options.ignore_bottom_pct,
                    "colors": colors,
                }
            )

        except Exception:
            current_app.logger.exception("Error re-extracting colors for artwork %s", artwork_id)
            return _api_error(_("Internal server error"), 500)

    @app.get("/api/artworks")
    def list_artworks():
        """Список артворков, новые сверху, с необязательным поиском `q`."""
        search = (request.args.get("q") or "").strip().lower()
        artworks = Artwork.query.order_by(Artwork.created_at.desc()).all()
        if search:
            artworks = [artwork for artwork in artworks if search in artwork.search_text()]
        return jsonify({"success": True, "artworks": [artwork.to_dict() for artwork in artworks]})

    @app.get("/api/artworks/next-label")
    def next_artwork_label():
        artwork_no = next_artwork_no()
        return jsonify(
            {
                "success": True,
                "artwork_no": artwork_no,
                "version": 1,
                "label": format_artwork_label(artwork_no, 1, app.config["ARTWORK_START_NO"]),
            }
        )

    @app.get("/api/artworks/<artwork_id>")
    def get_artwork(artwork_id: str):
        artwork = db.session.get(Artwork, artwork_id)
        if artwork is None:
            return _api_error(_("Artwork not found."), 404)

        payload = artwork.to_dict()
        payload["colors"] = hydrate_colors(payload["colors"], _load_pom_map())
        return jsonify({"success": True, "artwork": payload})

    @app.route("/api/artworks", methods=["POST"])
    def save_artwork():
        """Сохраняет новую версию артворка.

        Без `source_artwork_id` выдаётся следующий номер и версия 1, иначе
        номер источника и его следующая версия. Исходная запись не меняется.
        """
        written: list[str] = []
        try:
            if rate_limited("artwork_save", limit=60, window_seconds=10 * 60):
                return _api_error(_("Too many requests. Please try again later."), 429)

            data = _read_artwork_payload()
            if data is None:
                return _api_error(_("Invalid request body."), 400)

            colors = normalize_color_list(data.get("colors"))
            if not colors:
                return _api_error(_("Extract colors before saving."), 400)

            texture_ids = _normalize_texture_ids(data.get("textures"))
            if texture_ids is None:
                return _api_error(
                    _("You can select up to %(count)s textures.", count=app.config["MAX_TEXTURES"]), 400
                )
            if texture_ids:
                known = {texture.id for texture in Texture.query.filter(Texture.id.in_(texture_ids))}
                if len(known) != len(texture_ids):
                    return _api_error(_("Unknown texture selected."), 400)

            source = None
            source_artwork_id = _text_field(data, "source_artwork_id")
            if source_artwork_id is None:
                return _api_error(_("Invalid source artwork id."), 400)
            if source_artwork_id:
                source = db.session.get(Artwork, source_artwork_id)
                if source is None:
                    return _api_error(_("Artwork not found for editing."), 404)

            asset_error = _validate_assets(data)
            if asset_error is not None:
                return _api_error(asset_error, 400)

            cad_file = request.files.get("cad")
            if not (cad_file is not None and cad_file.filename) and not _text_field(data, "cad_url"):
                return _api_error(_("CAD file is required."), 400)

            meta_source = data.get("meta") if isinstance(data.get("meta"), dict) else data
            meta = normalize_meta(meta_source, app.config["SIZE_UNITS"])

            options = _extraction_options(data.get("ignore_bottom_pct", 0))
            artwork_no, version = allocate_version(source)

            artwork = Artwork(
                id=uuid.uuid4().hex,
                artwork_no=artwork_no,
                version=version,
                artwork_version=format_artwork_label(artwork_no, version, app.config["ARTWORK_START_NO"]),
                source_artwork_id=source.id if source else None,
                ignore_bottom_pct=options.ignore_bottom_pct,
                colors=colors,
                textures=texture_ids,
                **meta,
            )
            db.session.add(artwork)
            db.session.flush()

            urls = {label: _persist_asset(label, artwork.id, data, written) for label in ASSET_LABELS}
            artwork.cad_url = urls["cad"]
            artwork.visualisation_url = urls["visualisation"]
            artwork.inspiration_url = urls["inspiration"]
            db.session.commit()

            current_app.logger.info("Saved artwork %s (%s)", artwork.artwork_version, artwork.id)
            return jsonify({"success": True, "artwork": artwork.to_dict()}), 201

        except StorageError:
            db.session.rollback()
            discard_files(written)
            current_app.logger.exception("Failed to store artwork files")
            return _api_error(_("Save failed: unable to store files."), 500)
        except Exception:
            db.session.rollback()
            discard_files(written)
            current_app.logger.exception("Error saving artwork")
            return _api_error(_("Internal server error"), 500)

    @app.get("/api/artworks/<artwork_id>/pdf")
    def export_artwork_pdf(artwork_id: str):
        """Выгрузка PDF-листа артворка с выбранным режимом референса."""
        try:
            if rate_limited("export", limit=120, window_seconds=10 * 60):
                return _api_error(_("Too many exports. Please try again later."), 429)

            artwork = db.session.get(Artwork, artwork_id)
            if artwork is None:
                return _api_error(_("Artwork not found."), 404)

            reference_mode = (request.args.get("reference") or "auto").strip().lower()
            if reference_mode not in REFERENCE_MODES:
                return _api_error(_("Unsupported reference mode."), 400)

            cache = {}

            def load_image(url):
                if url not in cache:
                    try:
                        cache[url] = open_image_url(url)
                    except (StorageError, ProxyError):
                        current_app.logger.warning("PDF image did not resolve: %s", url)
                        cache[url] = None
                return cache[url]

            textures = Texture.query.filter(Texture.id.in_(artwork.textures or [])).all()
            payload = build_pdf_payload(artwork, Pom.query.all(), textures, reference_mode)
            content = render_artwork_pdf(payload, load_image)

            return send_file(
                io.BytesIO(content),
                mimetype="application/pdf",
                as_attachment=True,
                download_name=build_pdf_file_name(payload),
            )

        except Exception:
            current_app.logger.exception("Error exporting artwork PDF")
            return _api_error(_("Internal server error"), 500)

    @app.route("/static/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(upload_root(), filename)

    @app.route("/favicon.ico")
    def favicon():
        return "", 204
