"""
Tests for the artwork PDF sheet: payload mapping, file naming and rendering.
"""

from PIL import Image

from models.artwork import Artwork
from models.pom import Pom
from models.texture import Texture
from utils.pdf_export import (
    build_pdf_file_name,
    build_pdf_payload,
    derive_content,
    format_date_label,
    map_colors,
    map_textures,
    render_artwork_pdf,
    resolve_hero_url,
)


def make_artwork(**overrides):
    values = {
        "id": "a1",
        "artwork_no": 3157,
        "version": 2,
        "artwork_version": "3157.2",
        "buyer": "Acme",
        "date": "2025-03-01",
        "design": "Sunset",
        "size": "240 x 300",
        "size_unit": "cm",
        "quality": "Hand Tufted",
        "notes": "Keep border tight",
        "project_ref": "",
        "cad_url": "/static/uploads/artworks/a1/cad_cad.png",
        "visualisation_url": "",
        "inspiration_url": "https://storage.example.com/inspo.jpg",
        "colors": [
            {"hex": "#ff0000", "pct": 60.0, "pomId": "p1"},
            {"hex": "#0000ff", "pct": 30.0, "pomLabel": "nzw-102"},
            {"hex": "#00ff00", "pct": 10.0},
        ],
        "textures": ["t1", "ghost"],
    }
    values.update(overrides)
    return Artwork(**values)


POMS = [
    Pom(id="p1", series="NZW", code="101", material="NZ Wool", front_url="https://storage.example.com/p1.jpg"),
    Pom(id="p2", series="NZW", code="102", material="Bamboo Silk"),
]
TEXTURES = [Texture(id="t1", name="", quality="Cut pile", material="Wool", finish="Matte")]


class TestMapping:
    """Colour, texture and meta mapping"""

    def test_colors_matched_by_id_then_label(self):
        colors = map_colors(make_artwork().colors, {pom.id: pom for pom in POMS})

        assert colors[0]["pom_label"] == "NZW-101"
        assert colors[0]["pom_front_url"] == "https://storage.example.com/p1.jpg"
        assert colors[1]["pom_material"] == "Bamboo Silk"
        assert colors[2]["pom_label"] == "Unmapped"
        assert [color["swatch_name"] for color in colors] == [
            "COLOR CODE A - SWATCH 01",
            "COLOR CODE B - SWATCH 02",
            "COLOR CODE C - SWATCH 03",
        ]

    def test_textures_default_names_and_unknown_ids(self):
        textures = map_textures(["t1", "ghost"], {texture.id: texture for texture in TEXTURES})
        assert textures[0]["name"] == "Yarn A"
        assert textures[0]["finish"] == "Matte"
        assert textures[1]["name"] == "ghost"

    def test_texture_list_is_capped(self):
        assert len(map_textures(["a", "b", "c", "d"], {})) == 3

    def test_content_uses_unique_materials(self):
        colors = [{"pom_material": m} for m in ("Wool", "wool", "Silk", "Linen", "Jute")]
        assert derive_content(colors) == "Wool / Silk / Linen"

    def test_hero_url_modes(self):
        artwork = make_artwork(visualisation_url="/static/uploads/vis.png")
        assert resolve_hero_url(artwork, "auto") == "/static/uploads/vis.png"
        assert resolve_hero_url(artwork, "inspiration") == "https://storage.example.com/inspo.jpg"
        assert resolve_hero_url(artwork, "none") == ""
        assert resolve_hero_url(make_artwork(), "auto") == "https://storage.example.com/inspo.jpg"

    def test_date_label(self):
        assert format_date_label("2025-03-01") == "01.03.2025"
        assert format_date_label("soon") == "soon"

    def test_payload(self):
        payload = build_pdf_payload(make_artwork(), POMS, TEXTURES, "bogus")

        assert payload["artwork_reference"] == "3157.2"
        assert payload["reference_mode"] == "auto"
        assert payload["meta"]["project_ref"] == "N/A"
        assert payload["meta"]["content"] == "NZ Wool / Bamboo Silk"
        assert payload["meta"]["date"] == "01.03.2025"
        assert len(payload["colors"]) == 3
        assert len(payload["textures"]) == 2


class TestFileName:
    """Download file name built from the sheet data"""

    def test_full_name(self):
        payload = build_pdf_payload(make_artwork(), POMS, TEXTURES)
        assert build_pdf_file_name(payload) == "3157.2 Acme Sunset 240x300cm Hand Tufted.pdf"

    def test_placeholders_and_forbidden_characters_are_dropped(self):
        payload = build_pdf_payload(
            make_artwork(buyer='A/B "Rugs"', design="", size="", quality=""), POMS, TEXTURES
        )
        assert build_pdf_file_name(payload) == "3157.2 A B Rugs.pdf"

    def test_default_name(self):
        assert build_pdf_file_name({}) == "Artwork.pdf"


class TestRender:
    """PDF rendering with Pillow"""

    def test_render_without_images(self):
        payload = build_pdf_payload(make_artwork(), POMS, TEXTURES)
        content = render_artwork_pdf(payload)
        assert content.startswith(b"%PDF")

    def test_render_many_colors_spans_pages(self):
        colors = [{"hex": f"#{i:02x}{i:02x}{i:02x}", "pct": 1.0} for i in range(60)]
        payload = build_pdf_payload(make_artwork(colors=colors), POMS, TEXTURES)
        requested = []

        def load_image(url):
            requested.append(url)
            return Image.new("RGB", (64, 48), (200, 120, 40))

        content = render_artwork_pdf(payload, load_image)
        assert content.startswith(b"%PDF")
        assert payload["cad_url"] in requested
