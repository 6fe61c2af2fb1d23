"""
Tests for bucket uploads.
"""
import re

import pytest

import config
from core.errors import ErrorCode, PlatformError
from services import file_upload_service

from tests.conftest import DONOR_ID

MB = 1024 * 1024


class FakeUpload:
    """Minimal UploadFile: filename, content_type, size and async read."""

    def __init__(self, filename, content_type, data: bytes, size=None):
        self.filename = filename
        self.content_type = content_type
        self.size = size
        self._data = data
        self._pos = 0

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            n = len(self._data) - self._pos
        chunk = self._data[self._pos:self._pos + n]
        self._pos += len(chunk)
        return chunk


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOADS_DIR", tmp_path)
    monkeypatch.setattr(config, "PUBLIC_BASE_URL", "https://clearcause.example")
    return tmp_path


class TestValidateFile:
    """Tests for validate_file."""

    def test_accepts_png_avatar(self):
        file_upload_service.validate_file("me.png", "image/png", 1 * MB, "profile-avatars")

    def test_avatar_size_limit(self):
        with pytest.raises(PlatformError) as exc:
            file_upload_service.validate_file("me.png", "image/png", 3 * MB, "profile-avatars")
        assert exc.value.code == ErrorCode.FILE_TOO_LARGE
        assert exc.value.status_code == 413
        assert exc.value.message == "File size exceeds 2.0MB limit"

    def test_pdf_only_where_allowed(self):
        file_upload_service.validate_file("receipt.pdf", "application/pdf", MB, "milestone-proofs")
        with pytest.raises(PlatformError) as exc:
            file_upload_service.validate_file("receipt.pdf", "application/pdf", MB, "campaign-images")
        assert exc.value.code == ErrorCode.INVALID_FILE_TYPE

    def test_extension_must_match(self):
        with pytest.raises(PlatformError) as exc:
            file_upload_service.validate_file("photo.exe", "image/jpeg", MB, "campaign-images")
        assert exc.value.code == ErrorCode.INVALID_FILE_TYPE

    def test_unknown_bucket(self):
        with pytest.raises(PlatformError) as exc:
            file_upload_service.validate_file("a.png", "image/png", 10, "secrets")
        assert exc.value.code == ErrorCode.VALIDATION_ERROR


class TestGenerateFilePath:
    """Tests for generate_file_path."""

    def test_sanitises_name(self):
        path = file_upload_service.generate_file_path(DONOR_ID, "my photo (1).JPG")
        assert re.fullmatch(rf"{DONOR_ID}-\d{{13}}-my_photo__1_\.JPG", path)

    def test_folder_prefix(self):
        path = file_upload_service.generate_file_path(DONOR_ID, "a.png", "campaigns/")
        assert path.startswith(f"campaigns/{DONOR_ID}-")


class TestUploadFile:
    """Tests for upload_file and delete_file."""

    @pytest.mark.asyncio
    async def test_stores_file(self, uploads_dir):
        upload = FakeUpload("water.png", "image/png", b"\x89PNG" + b"0" * 100)
        result = await file_upload_service.upload_file("campaign-images", DONOR_ID, upload)

        stored = uploads_dir / "campaign-images" / result["path"]
        assert stored.read_bytes().startswith(b"\x89PNG")
        assert result["publicUrl"] == f"https://clearcause.example/uploads/campaign-images/{result['path']}"

    @pytest.mark.asyncio
    async def test_oversized_stream_removed(self, uploads_dir):
        """Size unknown up front; the limit is enforced while streaming."""
        upload = FakeUpload("big.png", "image/png", b"0" * (2 * MB + 1))
        with pytest.raises(PlatformError) as exc:
            await file_upload_service.upload_file("profile-avatars", DONOR_ID, upload)
        assert exc.value.code == ErrorCode.FILE_TOO_LARGE
        assert list((uploads_dir / "profile-avatars").iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete(self, uploads_dir):
        upload = FakeUpload("doc.pdf", "application/pdf", b"%PDF-1.7")
        result = await file_upload_service.upload_file("charity-documents", DONOR_ID, upload, "permits")

        assert await file_upload_service.delete_file("charity-documents", result["path"]) is True
        assert await file_upload_service.delete_file("charity-documents", result["path"]) is False

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, uploads_dir):
        with pytest.raises(PlatformError) as exc:
            await file_upload_service.delete_file("charity-documents", "../../etc/passwd")
        assert exc.value.code == ErrorCode.VALIDATION_ERROR
