"""
Hash-verified uploads to the output object store.
"""

import base64
import hashlib
from enum import Enum

from loguru import logger

from ...providers.base import StorageProvider

WEBP_MIME = "image/webp"
JSON_MIME = "application/json"


class ArtifactSize(Enum):
    """Rendition of an uploaded image."""
    SMALL = "small"
    LARGE = "large"


class UploadOutcome(Enum):
    UPLOADED = "uploaded"
    SKIPPED = "skipped"


def compute_hash(data: bytes) -> str:
    """Base64 MD5, the digest format object stores report for blobs."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def artifact_path(item_id: str, size: ArtifactSize, extension: str = "webp") -> str:
    return f"{item_id}-{size.value}.{extension}"


class IdempotentUploader:
    """Uploads objects only when the stored copy is absent or differs."""

    def __init__(self, storage: StorageProvider):
        self.storage = storage

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        log=None,
    ) -> UploadOutcome:
        """
        Upload `data` to `path` unless the store already holds identical content.

        Args:
            path: Destination object path
            data: Payload bytes
            content_type: MIME type stored with the object
            cache_control: Cache-Control header stored with the object
            log: Optional bound logger carrying item context

        Returns:
            UploadOutcome.SKIPPED when the existing object's hash matches,
            UploadOutcome.UPLOADED otherwise
        """
        log = log or logger
        info = await self.storage.stat_object(path)

        if info.exists:
            if info.content_hash is not None:
                local_hash = compute_hash(data)
                if local_hash == info.content_hash:
                    log.debug("Object {} exists and hash matches, skipping upload", path, hash=local_hash)
                    return UploadOutcome.SKIPPED
                log.debug(
                    "Object {} exists but hash doesn't match, re-uploading",
                    path,
                    hash_local=local_hash,
                    hash_remote=info.content_hash,
                )
            else:
                log.warning("Object {} exists but has no hash, re-uploading", path)

        await self.storage.put_object(path, data, content_type, cache_control)
        return UploadOutcome.UPLOADED

    async def upload_image(
        self,
        item_id: str,
        size: ArtifactSize,
        data: bytes,
        cache_control: str,
        log=None,
    ) -> UploadOutcome:
        return await self.upload(artifact_path(item_id, size), data, WEBP_MIME, cache_control, log=log)

    async def upload_json(self, path: str, payload: bytes, cache_control: str,
                          log=None) -> UploadOutcome:
        return await self.upload(path, payload, JSON_MIME, cache_control, log=log)
