"""
Tests for upload validation, draft storage and cleanup.
"""

import io
import os
from datetime import datetime, timedelta

import pytest
from werkzeug.datastructures import FileStorage

from conftest import two_colour_cad
from extensions import db
from models.artwork import Artwork
from models.upload import Upload
from utils.cleanup import cleanup_old_uploads
from utils.storage import (
    StorageError,
    attach_draft,
    build_artwork_storage_path,
    discard_files,
    local_file_for_url,
    open_stored_image,
    sanitize_file_name,
    save_draft,
    save_upload,
    storage_path_from_url,
    upload_root,
    validate_uploaded_image,
)


def file_storage(data: bytes, name: str = "cad.png") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type="image/png")


class TestPaths:
    """Storage paths and public URLs"""

    def test_sanitize_file_name(self):
        assert sanitize_file_name("my rug (v2).png") == "my_rug__v2_.png"

    def test_artwork_storage_path(self):
        assert build_artwork_storage_path("abc", "cad", "Rug 1.png") == "artworks/abc/cad_Rug_1.png"

    def test_storage_path_from_url(self):
        assert storage_path_from_url("/static/uploads/drafts/x.png") == "drafts/x.png"
        assert storage_path_from_url("https://storage.example.com/x.png") is None
        assert storage_path_from_url("/static/uploads/") is None

    def test_path_traversal_is_rejected(self, app_ctx):
        with pytest.raises(StorageError):
            local_file_for_url("/static/uploads/../secrets.txt")


class TestValidation:
    """Pillow based image validation"""

    def test_valid_png(self, app_ctx):
        assert validate_uploaded_image(file_storage(two_colour_cad())) == ("png", None)

    def test_not_an_image(self, app_ctx):
        extension, error = validate_uploaded_image(file_storage(b"plain text"))
        assert extension is None
        assert error == "File is not a valid image."

    def test_too_many_pixels(self, app_ctx):
        app_ctx.config["MAX_IMAGE_PIXELS"] = 100
        _extension, error = validate_uploaded_image(file_storage(two_colour_cad(20, 10)))
        assert error == "Image resolution is too large."


class TestDrafts:
    """Draft uploads, attachment and cleanup"""

    def test_save_and_open_draft(self, app_ctx):
        draft = save_draft(file_storage(two_colour_cad()), "png")
        db.session.commit()

        assert draft.storage_path.startswith("drafts/")
        assert os.path.isfile(os.path.join(upload_root(), draft.storage_path))

        image = open_stored_image(f"/static/uploads/{draft.storage_path}")
        assert image.size == (20, 10)

    def test_missing_file_raises(self, app_ctx):
        with pytest.raises(StorageError):
            open_stored_image("/static/uploads/drafts/nothing.png")

    def test_cleanup_removes_only_unattached_old_drafts(self, app_ctx):
        stale = save_draft(file_storage(two_colour_cad()), "png")
        kept = save_draft(file_storage(two_colour_cad()), "png")
        fresh = save_draft(file_storage(two_colour_cad()), "png")
        artwork = Artwork(artwork_no=3157, version=1, artwork_version="3157.1", colors=[])
        db.session.add(artwork)
        db.session.flush()

        attach_draft(f"/static/uploads/{kept.storage_path}", artwork.id, "cad")
        old = datetime.utcnow() - timedelta(days=30)
        stale.created_at = old
        kept.created_at = old
        db.session.commit()
        stale_path, kept_path, fresh_path = stale.storage_path, kept.storage_path, fresh.storage_path

        assert cleanup_old_uploads() == 1
        remaining = {upload.storage_path for upload in Upload.query.all()}
        assert remaining == {kept_path, fresh_path}
        assert not os.path.exists(os.path.join(upload_root(), stale_path))
        assert kept.label == "cad"


def test_discard_files_removes_files_and_empty_folder(app_ctx):
    storage_path = build_artwork_storage_path("a1", "cad", "cad.png")
    save_upload(file_storage(two_colour_cad()), storage_path, label="cad", artwork_id="a1")
    db.session.rollback()
    folder = os.path.join(upload_root(), "artworks", "a1")
    assert os.path.isdir(folder)

    assert discard_files([storage_path, "artworks/a1/missing.png"]) == 1
    assert not os.path.exists(folder)
    assert os.path.isdir(upload_root())
