# Bucket-style object storage on the local filesystem.
# Objects live under KEYAT_STORAGE_ROOT/<bucket>/<path> and are served by the app under /storage.
from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path, PurePosixPath
from typing import Optional

logger = logging.getLogger("keyat.storage")

BUCKETS = frozenset({"property-images", "avatars"})


class StorageError(Exception):
    """Raised for unknown buckets, unsafe object paths and failed writes."""


def storage_root() -> Path:
    return Path(os.getenv("KEYAT_STORAGE_ROOT", "./storage"))


def public_base_url() -> str:
    return os.getenv("KEYAT_STORAGE_PUBLIC_URL", "/storage").rstrip("/")


def max_upload_bytes() -> int:
    try:
        return int(os.getenv("KEYAT_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    except ValueError:
        return 10 * 1024 * 1024


def _object_path(bucket: str, path: str) -> Path:
    if bucket not in BUCKETS:
        raise StorageError(f"Unknown bucket '{bucket}'")
    rel = PurePosixPath(path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise StorageError(f"Invalid object path '{path}'")
    return storage_root().joinpath(bucket, *rel.parts)


def object_name(prefix: str, filename: Optional[str]) -> str:
    """Build a collision-resistant object name: <prefix>/<millis>-<random>.<ext>"""
    ext = ""
    if filename and "." in filename:
        ext = "." + filename.rsplit(".", 1)[1].lower()
    return f"{prefix}/{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"


def upload(bucket: str, path: str, data: bytes) -> str:
    """Write an object and return its path within the bucket."""
    target = _object_path(bucket, path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise StorageError(f"Failed to store {bucket}/{path}: {exc}") from exc
    logger.info("storage.upload", extra={"bucket": bucket, "path": path, "size": len(data)})
    return path


def delete(bucket: str, path: str) -> bool:
    target = _object_path(bucket, path)
    try:
        target.unlink()
        return True
    except FileNotFoundError:
        return False


def get_public_url(bucket: str, path: str) -> str:
    _object_path(bucket, path)
    return f"{public_base_url()}/{bucket}/{path}"
