"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: routes/catalog.py – справочники помпонов и текстур.

Назначение модуля:
- Получение, создание и удаление помпонов (образцов пряжи) и текстур.
- Назначение помпона извлечённому цвету.
"""

from flask import current_app, request, jsonify
from flask_babel import gettext as _

from extensions import db
from models.pom import Pom
from models.texture import Texture
from utils.image_proxy import to_storage_proxy_url
from utils.pom_mapping import assign_pom, normalize_color_record

POM_FIELDS = ("series", "code", "material", "front_url", "side_url", "thumb_front_url", "thumb_side_url")
TEXTURE_FIELDS = ("name", "quality", "material", "finish", "image_url", "thumb_url")


def _api_error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _pom_payload(pom: Pom) -> dict:
    """Данные помпона; изображения облачного хранилища отдаются через прокси."""
    payload = pom.to_dict()
    payload["front_image"] = to_storage_proxy_url(pom.front_image)
    payload["side_image"] = to_storage_proxy_url(pom.side_image)
    return payload


def _texture_payload(texture: Texture) -> dict:
    payload = texture.to_dict()
    payload["image"] = to_storage_proxy_url(texture.image)
    return payload


def _clean_fields(data: dict, fields: tuple) -> dict:
    values = {}
    for field in fields:
        value = data.get(field)
        values[field] = value.strip() if isinstance(value, str) else ""
    return values


def register_routes(app):
    @app.get("/api/poms")
    def list_poms():
        poms = sorted(Pom.query.all(), key=lambda pom: pom.sort_label())
        return jsonify({"success": True, "poms": [_pom_payload(pom) for pom in poms]})

    @app.route("/api/poms", methods=["POST"])
    def create_pom():
        try:
            data = request.get_json(silent=True) or {}
            values = _clean_fields(data, POM_FIELDS)
            if not values["code"]:
                return _api_error(_("Pom code is required."), 400)

            pom_id = data.get("id")
            if isinstance(pom_id, str) and pom_id.strip():
                if db.session.get(Pom, pom_id.strip()) is not None:
                    return _api_error(_("A pom with this id already exists."), 400)
                values["id"] = pom_id.strip()

            pom = Pom(**values)
            db.session.add(pom)
            db.session.commit()
            return jsonify({"success": True, "pom": _pom_payload(pom)}), 201

        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error creating pom")
            return _api_error(_("Internal server error"), 500)

    @app.get("/api/poms/<pom_id>")
    def get_pom(pom_id: str):
        pom = db.session.get(Pom, pom_id)
        if pom is None:
            return _api_error(_("Pom not found."), 404)
        return jsonify({"success": True, "pom": _pom_payload(pom)})

    @app.route("/api/poms/<pom_id>", methods=["DELETE"])
    def delete_pom(pom_id: str):
        try:
            pom = db.session.get(Pom, pom_id)
            if pom is None:
                return _api_error(_("Pom not found."), 404)
            db.session.delete(pom)
            db.session.commit()
            return jsonify({"success": True})

        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error deleting pom %s", pom_id)
            return _api_error(_("Internal server error"), 500)

    @app.route("/api/poms/<pom_id>/assign", methods=["POST"])
    def assign_pom_to_color(pom_id: str):
        """Возвращает цвет с заполненными полями выбранного помпона."""
        pom = db.session.get(Pom, pom_id)
        if pom is None:
            return _api_error(_("Pom not found."), 404)

        data = request.get_json(silent=True) or {}
        color = normalize_color_record(data.get("color"))
        if color is None:
            return _api_error(_("A valid color with a HEX code is required."), 400)

        return jsonify({"success": True, "color": assign_pom(color, pom)})

    @app.get("/api/textures")
    def list_textures():
        textures = sorted(Texture.query.all(), key=lambda texture: (texture.name or "").strip().lower())
        return jsonify({"success": True, "textures": [_texture_payload(texture) for texture in textures]})

    @app.route("/api/textures", methods=["POST"])
    def create_texture():
        try:
            data = request.get_json(silent=True) or {}
            values = _clean_fields(data, TEXTURE_FIELDS)
            if not values["name"]:
                return _api_error(_("Texture name is required."), 400)

            texture = Texture(**values)
            db.session.add(texture)
            db.session.commit()
            return jsonify({"success": True, "texture": _texture_payload(texture)}), 201

        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error creating texture")
            return _api_error(_("Internal server error"), 500)

    @app.get("/api/textures/<texture_id>")
    def get_texture(texture_id: str):
        texture = db.session.get(Texture, texture_id)
        if texture is None:
            return _api_error(_("Texture not found."), 404)
        return jsonify({"success": True, "texture": _texture_payload(texture)})

    @app.route("/api/textures/<texture_id>", methods=["DELETE"])
    def delete_texture(texture_id: str):
        try:
            texture = db.session.get(Texture, texture_id)
            if texture is None:
                return _api_error(_("Texture not found."), 404)
            db.session.delete(texture)
            db.session.commit()
            return jsonify({"success": True})

        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error deleting texture %s", texture_id)
            return _api_error(_("Internal server error"), 500)
