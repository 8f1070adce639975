import base64
import hashlib
import json
from pathlib import Path
from typing import Any, Dict

import aiofiles
from loguru import logger

from ..base import StorageProvider, ObjectInfo
from ...exceptions import UploadException
from ...utils.error_handler import convert_exceptions

META_SUFFIX = ".meta.json"


class LocalStorageProvider(StorageProvider):
    """Local filesystem-based object store."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Local Storage Provider.

        Args:
            config: {
                        "base_path": str -> Root directory for local storage (default: ./local_storage)
                    }
        """
        self.config = config
        self.base_path = Path(config.get("base_path") or "./local_storage").resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalStorageProvider initialized at {self.base_path}")

    def _get_file_path(self, path: str) -> Path:
        file_path = (self.base_path / path.lstrip("/")).resolve()
        if self.base_path not in file_path.parents:
            raise UploadException(f"Object path escapes storage root: {path}")
        return file_path

    @convert_exceptions({OSError: UploadException})
    async def stat_object(self, path: str) -> ObjectInfo:
        file_path = self._get_file_path(path)
        if not file_path.is_file():
            return ObjectInfo(exists=False)

        digest = hashlib.md5()
        async with aiofiles.open(file_path, "rb") as f:
            while chunk := await f.read(1024 * 1024):
                digest.update(chunk)
        return ObjectInfo(exists=True, content_hash=base64.b64encode(digest.digest()).decode("ascii"))

    @convert_exceptions({OSError: UploadException})
    async def put_object(self, path: str, data: bytes, content_type: str, cache_control: str) -> None:
        file_path = self._get_file_path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)
        meta = {"content_type": content_type, "cache_control": cache_control}
        async with aiofiles.open(file_path.with_name(file_path.name + META_SUFFIX), "w", encoding="utf-8") as f:
            await f.write(json.dumps(meta))
        logger.debug(f"Wrote {len(data)} bytes to {file_path}")

    async def close(self):
        """No-op for local provider (for interface consistency)."""
        logger.debug("LocalStorageProvider closed (no-op).")
