"""
Shared fixtures: in-memory source and storage providers plus synthetic
geotagged images.
"""

import asyncio
import io
import os
from typing import Dict, List, Optional, Set, Tuple

import piexif
import pytest
from PIL import Image

from treesync.exceptions import DownloadException, ListingException, UploadException
from treesync.ingestion.storage import compute_hash
from treesync.providers.base import (
    FOLDER_MIME_TYPE,
    ListingPage,
    ObjectInfo,
    RemoteEntry,
    SourceProvider,
    StorageProvider,
)

# 33.716812 N, 117.759817 W
LAT_DMS = ((33, 1), (43, 1), (5232, 10000))
LON_DMS = ((117, 1), (45, 1), (353412, 10000))
DATETIME_ORIGINAL = "2025:01:18 12:14:00"
OFFSET_TIME_ORIGINAL = "-08:00"


def build_exif(
    lat=LAT_DMS,
    lat_ref="N",
    lon=LON_DMS,
    lon_ref="W",
    datetime_original: Optional[str] = DATETIME_ORIGINAL,
    offset: Optional[str] = OFFSET_TIME_ORIGINAL,
) -> bytes:
    gps = {}
    if lat is not None:
        gps[piexif.GPSIFD.GPSLatitude] = lat
    if lat_ref is not None:
        gps[piexif.GPSIFD.GPSLatitudeRef] = lat_ref.encode("ascii")
    if lon is not None:
        gps[piexif.GPSIFD.GPSLongitude] = lon
    if lon_ref is not None:
        gps[piexif.GPSIFD.GPSLongitudeRef] = lon_ref.encode("ascii")

    exif = {}
    if datetime_original is not None:
        exif[piexif.ExifIFD.DateTimeOriginal] = datetime_original.encode("ascii")
    if offset is not None:
        exif[piexif.ExifIFD.OffsetTimeOriginal] = offset.encode("ascii")

    return piexif.dump({"0th": {}, "Exif": exif, "GPS": gps, "1st": {}, "thumbnail": None})


def make_image(size: Tuple[int, int] = (1200, 800), fmt: str = "JPEG", exif: Optional[bytes] = None,
               color=(34, 139, 34)) -> bytes:
    buffer = io.BytesIO()
    image = Image.new("RGB", size, color)
    if exif is not None:
        image.save(buffer, format=fmt, exif=exif)
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_tagged_jpeg(size: Tuple[int, int] = (1200, 800), **exif_fields) -> bytes:
    return make_image(size=size, fmt="JPEG", exif=build_exif(**exif_fields))


class FakeSourceProvider(SourceProvider):
    """Folder tree held in memory; ids are slash-joined paths."""

    def __init__(self, page_size: int = 100, download_delay: float = 0.0):
        self.children: Dict[str, List[RemoteEntry]] = {}
        self.files: Dict[str, bytes] = {}
        self.page_size = page_size
        self.download_delay = download_delay
        self.failing_folders: Set[str] = set()
        self.failing_downloads: Set[str] = set()
        self.list_calls: List[Tuple[str, Optional[str]]] = []
        self.downloads: List[str] = []
        self.closed = False

    def add_folder(self, parent_id: str, name: str) -> str:
        folder_id = f"{parent_id}/{name}"
        self.children.setdefault(parent_id, []).append(
            RemoteEntry(id=folder_id, name=name, mime_type=FOLDER_MIME_TYPE)
        )
        self.children.setdefault(folder_id, [])
        return folder_id

    def add_file(self, parent_id: str, name: str, data: bytes, mime_type: str = "image/jpeg",
                 file_id: Optional[str] = None) -> str:
        file_id = file_id or f"{parent_id}/{name}"
        self.children.setdefault(parent_id, []).append(
            RemoteEntry(id=file_id, name=name, mime_type=mime_type, digest=f"sha-{name}")
        )
        self.files[file_id] = data
        return file_id

    def add_entry(self, parent_id: str, entry: RemoteEntry) -> None:
        self.children.setdefault(parent_id, []).append(entry)

    async def list_children(self, folder_id: str, continuation_token: Optional[str] = None) -> ListingPage:
        self.list_calls.append((folder_id, continuation_token))
        await asyncio.sleep(0)
        if folder_id in self.failing_folders:
            raise ListingException(f"listing failed for {folder_id}")

        entries = self.children.get(folder_id, [])
        offset = int(continuation_token) if continuation_token else 0
        window = entries[offset:offset + self.page_size]
        next_offset = offset + len(window)
        next_token = str(next_offset) if next_offset < len(entries) else None
        return ListingPage(entries=list(window), next_token=next_token)

    async def download(self, item_id: str) -> bytes:
        self.downloads.append(item_id)
        await asyncio.sleep(self.download_delay)
        if item_id in self.failing_downloads or item_id not in self.files:
            raise DownloadException(f"download failed for {item_id}", status_code=500)
        return self.files[item_id]

    async def close(self):
        self.closed = True


class FakeStorageProvider(StorageProvider):
    """Object store held in memory, reporting base64 MD5 hashes."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.metadata: Dict[str, Tuple[str, str]] = {}
        self.puts: List[str] = []
        self.hashless: Set[str] = set()
        self.failing_paths: Set[str] = set()
        self.closed = False

    async def stat_object(self, path: str) -> ObjectInfo:
        await asyncio.sleep(0)
        if path not in self.objects:
            return ObjectInfo(exists=False)
        if path in self.hashless:
            return ObjectInfo(exists=True, content_hash=None)
        return ObjectInfo(exists=True, content_hash=compute_hash(self.objects[path]))

    async def put_object(self, path: str, data: bytes, content_type: str, cache_control: str) -> None:
        await asyncio.sleep(0)
        if path in self.failing_paths:
            raise UploadException(f"write failed for {path}")
        self.puts.append(path)
        self.objects[path] = data
        self.metadata[path] = (content_type, cache_control)
        self.hashless.discard(path)

    async def close(self):
        self.closed = True


@pytest.fixture
def tagged_jpeg() -> bytes:
    return make_tagged_jpeg()


@pytest.fixture
def source() -> FakeSourceProvider:
    return FakeSourceProvider()


@pytest.fixture
def storage() -> FakeStorageProvider:
    return FakeStorageProvider()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep a developer's .env and exported settings out of the tests."""
    monkeypatch.chdir(tmp_path)
    for prefix in ("SOURCE_", "STORAGE_", "PIPELINE_", "LOG_"):
        for key in list(os.environ):
            if key.startswith(prefix):
                monkeypatch.delenv(key, raising=False)


@pytest.fixture
def jpeg_factory():
    """Builds JPEGs with the given size and EXIF fields (see build_exif)."""
    return make_tagged_jpeg


@pytest.fixture
def image_factory():
    """Builds images without EXIF in any Pillow-writable format."""
    return make_image


@pytest.fixture
def exif_factory():
    return build_exif
