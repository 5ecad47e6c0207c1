"""Blob storage for uploaded item photos."""

from __future__ import annotations

import base64
import binascii
import logging
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tools.observability import instrument_tool

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


class BlobStoreError(RuntimeError):
    """Raised when an uploaded image cannot be decoded or written."""


@dataclass(frozen=True)
class StoredBlob:
    path: str
    public_url: Optional[str] = None


def decode_image_payload(payload: str) -> tuple[bytes, str]:
    """Decode a data URL or bare base64 string into ``(bytes, extension)``."""

    matched = _DATA_URL.match(payload.strip())
    mime = "image/jpeg"
    data = payload.strip()
    if matched:
        mime = (matched.group("mime") or mime).lower()
        data = matched.group("data")
    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise BlobStoreError("Uploaded image is not valid base64") from exc
    if not raw:
        raise BlobStoreError("Uploaded image is empty")
    return raw, _EXTENSIONS.get(mime, "jpg")


class LocalBlobStore:
    """Write blobs under ``base_dir`` at ``<user_id>/<ms timestamp>-<suffix>.<ext>``."""

    def __init__(self, base_dir: str | Path = "data/blobs", base_url: Optional[str] = None) -> None:
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/") if base_url else None

    @instrument_tool("store_uploaded_image")
    def store_image(self, user_id: str, payload: str) -> StoredBlob:
        raw, extension = decode_image_payload(payload)
        key = f"{user_id}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}.{extension}"
        target = self.base_dir / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(raw)
        except OSError as exc:
            raise BlobStoreError(f"Failed to write blob {key}: {exc}") from exc
        logger.info("Stored uploaded image", extra={"blob_key": key, "size_bytes": len(raw)})
        public_url = f"{self.base_url}/{key}" if self.base_url else None
        return StoredBlob(path=key, public_url=public_url)


__all__ = ["BlobStoreError", "LocalBlobStore", "StoredBlob", "decode_image_payload"]
