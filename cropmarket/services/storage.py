"""
Local file storage for avatars and listing photos, served under a public URL.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path

from cropmarket.config import Settings, get_settings
from cropmarket.exceptions import StorageError, ValidationError
from cropmarket.security.validators import validate_id

logger = logging.getLogger(__name__)

BUCKETS = frozenset({"avatars", "listings"})

IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

_SAFE_STEM = re.compile(r"[^A-Za-z0-9_-]+")


class FileStorage:
    """
    Bucketed file store rooted at ``settings.storage_path``.

    Files land at ``<root>/<bucket>/<owner_id>/<random>-<name><ext>`` and are
    addressed publicly as ``<public_storage_url>/<bucket>/<owner_id>/<file>``.
    """

    def __init__(self, root: str | Path | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.root = Path(root or self.settings.storage_path)

    def upload(self, bucket: str, owner_id: str, filename: str, data: bytes, content_type: str) -> str:
        """
        Store an image and return its public URL.

        Raises:
            ValidationError: Unknown bucket, non-image content, empty or oversized file.
            StorageError: The file could not be written.
        """
        if bucket not in BUCKETS:
            raise ValidationError(f"unknown bucket {bucket!r}", field="bucket")
        owner_id = validate_id(owner_id, field="owner_id")

        extension = IMAGE_EXTENSIONS.get((content_type or "").lower())
        if extension is None:
            raise ValidationError("only JPEG, PNG, WebP or GIF images are accepted", field="file")
        if not data:
            raise ValidationError("is empty", field="file")
        if len(data) > self.settings.max_avatar_bytes:
            raise ValidationError(
                f"exceeds maximum size of {self.settings.max_avatar_bytes} bytes",
                field="file",
            )

        stem = _SAFE_STEM.sub("-", Path(filename or "upload").stem).strip("-")[:40] or "upload"
        stored_name = f"{uuid.uuid4().hex[:12]}-{stem}{extension}"
        target_dir = self.root / bucket / owner_id
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / stored_name).write_bytes(data)
        except OSError as e:
            logger.error("Failed to store upload", extra={"bucket": bucket, "owner_id": owner_id})
            raise StorageError(bucket=bucket) from e

        return f"{self.settings.public_storage_url}/{bucket}/{owner_id}/{stored_name}"
