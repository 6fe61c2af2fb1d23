"""
File Upload Service - local bucket storage served under /uploads
"""
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os

import config
from core.errors import ErrorCode, PlatformError, file_upload_error, with_error_handling

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
MB = 1024 * 1024

_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

BUCKETS = {
    "campaign-images": {"max_size": 5 * MB, "types": _IMAGE_TYPES, "extensions": _IMAGE_EXTENSIONS},
    "milestone-proofs": {"max_size": 10 * MB, "types": _IMAGE_TYPES | {"application/pdf"},
                         "extensions": _IMAGE_EXTENSIONS | {".pdf"}},
    "charity-documents": {"max_size": 10 * MB, "types": _IMAGE_TYPES | {"application/pdf"},
                          "extensions": _IMAGE_EXTENSIONS | {".pdf"}},
    "profile-avatars": {"max_size": 2 * MB, "types": _IMAGE_TYPES, "extensions": _IMAGE_EXTENSIONS},
}


def _rules(bucket: str) -> Dict[str, Any]:
    if bucket not in BUCKETS:
        raise PlatformError(ErrorCode.VALIDATION_ERROR, f"Unknown storage bucket: {bucket}", 400)
    return BUCKETS[bucket]


def validate_file(filename: str, content_type: Optional[str], size: Optional[int], bucket: str) -> None:
    """Raise if the file breaks the bucket's size, type or extension rules"""
    rules = _rules(bucket)
    if size is not None and size > rules["max_size"]:
        raise PlatformError(
            ErrorCode.FILE_TOO_LARGE,
            f"File size exceeds {rules['max_size'] / MB:.1f}MB limit", 413,
        )
    if content_type not in rules["types"]:
        raise PlatformError(
            ErrorCode.INVALID_FILE_TYPE,
            f"File type {content_type} is not allowed. Allowed types: {', '.join(sorted(rules['extensions']))}",
            400,
        )
    extension = Path(filename or "").suffix.lower()
    if extension not in rules["extensions"]:
        raise PlatformError(
            ErrorCode.INVALID_FILE_TYPE,
            f"File extension {extension or '(none)'} is not allowed. "
            f"Allowed: {', '.join(sorted(rules['extensions']))}",
            400,
        )


def generate_file_path(user_id: str, filename: str, folder: Optional[str] = None) -> str:
    sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "file")
    stem, dot, extension = sanitized.rpartition(".")
    if not dot:
        stem, extension = sanitized, ""
    name = f"{user_id}-{int(time.time() * 1000)}-{stem or 'file'}"
    if extension:
        name = f"{name}.{extension}"
    return f"{folder.strip('/')}/{name}" if folder else name


def _resolve(bucket: str, path: str) -> Path:
    root = (config.UPLOADS_DIR / bucket).resolve()
    target = (root / path).resolve()
    if root not in target.parents:
        raise PlatformError(ErrorCode.VALIDATION_ERROR, "Invalid file path", 400)
    return target


def get_public_url(bucket: str, path: str) -> str:
    return f"{config.PUBLIC_BASE_URL}/uploads/{bucket}/{path}"


@with_error_handling
async def upload_file(bucket: str, user_id: str, upload, folder: Optional[str] = None) -> Dict[str, str]:
    """Stream an UploadFile into the bucket directory"""
    rules = _rules(bucket)
    validate_file(upload.filename, upload.content_type, getattr(upload, "size", None), bucket)

    path = generate_file_path(user_id, upload.filename, folder)
    target = _resolve(bucket, path)
    await aiofiles.os.makedirs(target.parent, exist_ok=True)

    written = 0
    try:
        async with aiofiles.open(target, "wb") as f:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > rules["max_size"]:
                    raise file_upload_error("size")
                await f.write(chunk)
    except PlatformError:
        await aiofiles.os.remove(target)
        raise
    except OSError as e:
        logger.error(f"Upload to {bucket}/{path} failed: {e}")
        raise file_upload_error("upload")

    logger.info(f"Stored {written} bytes at {bucket}/{path}")
    return {"path": path, "publicUrl": get_public_url(bucket, path)}


@with_error_handling
async def delete_file(bucket: str, path: str) -> bool:
    _rules(bucket)
    target = _resolve(bucket, path)
    if not await aiofiles.os.path.exists(target):
        return False
    await aiofiles.os.remove(target)
    logger.info(f"Deleted {bucket}/{path}")
    return True
