import asyncio
import hashlib
import mimetypes
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
from loguru import logger

from ..base import SourceProvider, RemoteEntry, ListingPage, FOLDER_MIME_TYPE
from ...exceptions import ListingException, DownloadException
from ...utils.error_handler import convert_exceptions


async def get_file_sha1(file_path: str) -> str:
    """Hash a file asynchronously in chunks."""
    hash_func = hashlib.sha1()
    async with aiofiles.open(file_path, "rb") as file:
        while chunk := await file.read(8192):
            hash_func.update(chunk)
    return hash_func.hexdigest()


def _scan(folder: Path) -> List[os.DirEntry]:
    with os.scandir(folder) as it:
        return sorted(it, key=lambda e: e.name)


class LocalFolderSourceProvider(SourceProvider):
    """
    Image source backed by a local directory tree.

    Ids are POSIX paths relative to the configured `root_folder`; absolute
    paths are accepted as well, so the crawl root can be given either way.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.page_size = int(config.get("page_size") or 100)
        self.root_id = config.get("root_folder") or "."
        self.root = Path(self.root_id).resolve()

    def _resolve(self, item_id: str) -> Path:
        if item_id == self.root_id:
            return self.root
        path = Path(item_id)
        return path if path.is_absolute() else self.root / path

    def _to_id(self, path: str) -> str:
        return Path(os.path.relpath(path, self.root)).as_posix()

    @convert_exceptions({OSError: ListingException, ValueError: ListingException})
    async def list_children(self, folder_id: str, continuation_token: Optional[str] = None) -> ListingPage:
        offset = int(continuation_token) if continuation_token else 0
        children = await asyncio.to_thread(_scan, self._resolve(folder_id))
        window = children[offset:offset + self.page_size]

        entries = []
        for child in window:
            child_id = self._to_id(child.path)
            if child.is_dir():
                entries.append(RemoteEntry(id=child_id, name=child.name, mime_type=FOLDER_MIME_TYPE))
            else:
                mime_type = mimetypes.guess_type(child.name)[0] or "application/octet-stream"
                entries.append(RemoteEntry(
                    id=child_id,
                    name=child.name,
                    mime_type=mime_type,
                    digest=await get_file_sha1(child.path),
                ))

        next_offset = offset + len(window)
        next_token = str(next_offset) if next_offset < len(children) else None
        logger.trace(f"Listed {len(entries)} entries in {folder_id} (offset {offset})")
        return ListingPage(entries=entries, next_token=next_token)

    async def download(self, item_id: str) -> bytes:
        try:
            async with aiofiles.open(self._resolve(item_id), "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise DownloadException(f"File not found: {item_id}", status_code=404) from e
        except OSError as e:
            raise DownloadException(f"Error reading {item_id}: {e}") from e

    async def close(self):
        """No-op for local provider (for interface consistency)."""
        logger.debug("LocalFolderSourceProvider closed (no-op).")
