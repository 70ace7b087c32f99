"""
Tests for artwork numbering, version labels and meta normalisation.
"""

from datetime import date

from extensions import db
from models.artwork import Artwork
from utils.artwork_versions import (
    allocate_version,
    format_artwork_label,
    next_artwork_no,
    next_version_for,
    normalize_meta,
    parse_artwork_label,
    resolve_artwork_no,
    resolve_artwork_version,
)


def add_artwork(no, version, label=None):
    artwork = Artwork(
        artwork_no=no,
        version=version,
        artwork_version=label or f"{no}.{version}",
        colors=[{"hex": "#ff0000", "pct": 100.0}],
    )
    db.session.add(artwork)
    db.session.commit()
    return artwork


class TestLabels:
    """Parsing and formatting of `<no>.<version>` labels"""

    def test_parse_label(self):
        assert parse_artwork_label("3157.2") == (3157, 2)
        assert parse_artwork_label("3157") == (3157, None)
        assert parse_artwork_label("abc.x") == (None, None)
        assert parse_artwork_label(None) == (None, None)

    def test_format_label(self):
        assert format_artwork_label(3200, 4) == "3200.4"
        assert format_artwork_label(None, None) == "3157.1"
        assert format_artwork_label(0, 1, start_no=10) == "10.1"

    def test_resolve_prefers_direct_fields(self):
        assert resolve_artwork_no({"artwork_no": 3300, "artwork_version": "3100.1"}) == 3300
        assert resolve_artwork_no({"artwork_version": "3100.5"}) == 3100
        assert resolve_artwork_version({"version": "3", "artwork_version": "3100.5"}) == 3
        assert resolve_artwork_version({"artwork_version": "3100.5"}) == 5
        assert resolve_artwork_version({}) == 1


class TestAllocation:
    """Number and version allocation against the database"""

    def test_first_artwork_uses_start_number(self, app_ctx):
        assert next_artwork_no() == 3157
        assert allocate_version(None) == (3157, 1)

    def test_start_number_comes_from_config(self, app_ctx):
        app_ctx.config["ARTWORK_START_NO"] = 5000
        assert next_artwork_no() == 5000

    def test_next_number_follows_maximum(self, app_ctx):
        add_artwork(3157, 1)
        add_artwork(3160, 2)
        assert next_artwork_no() == 3161

    def test_new_version_keeps_source_number(self, app_ctx):
        source = add_artwork(3157, 1)
        add_artwork(3157, 2)
        add_artwork(3158, 1)

        assert next_version_for(3157) == 3
        assert allocate_version(source) == (3157, 3)

    def test_version_recovered_from_label(self, app_ctx):
        add_artwork(3157, 0, label="3157.4")
        assert next_version_for(3157) == 5
        assert next_version_for(9999) == 1


class TestNormalizeMeta:
    """Meta fields are trimmed and completed"""

    def test_defaults(self):
        meta = normalize_meta(None)
        assert meta["date"] == date.today().isoformat()
        assert meta["size_unit"] == "cm"
        assert meta["buyer"] == ""

    def test_trims_and_maps_legacy_keys(self):
        meta = normalize_meta(
            {
                "buyer": "  Acme  ",
                "title": "Sunset",
                "sizeUnit": "FT",
                "project": "PR-7",
                "date": "2025-03-01",
            }
        )
        assert meta["buyer"] == "Acme"
        assert meta["design"] == "Sunset"
        assert meta["size_unit"] == "ft"
        assert meta["project_ref"] == "PR-7"
        assert meta["date"] == "2025-03-01"

    def test_unknown_unit_falls_back(self):
        assert normalize_meta({"size_unit": "inch"})["size_unit"] == "cm"
