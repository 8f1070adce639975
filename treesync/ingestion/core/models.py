"""
Data models for the image ingestion pipeline.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Tag(Enum):
    """Classification of an image by the top-level folder it was found under."""
    UNKNOWN = "unknown"
    MARKED = "marked"
    UNMARKED = "unmarked"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Tag":
        """Map a folder name to a tag; unrecognized names are UNKNOWN."""
        for tag in cls:
            if tag is not cls.UNKNOWN and tag.value == name:
                return tag
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class ImageFormat(Enum):
    """Image encodings the converter can decode."""
    HEIF = "image/heif"
    JPEG = "image/jpeg"
    PNG = "image/png"
    WEBP = "image/webp"

    @classmethod
    def from_mime(cls, mime_type: Optional[str]) -> Optional["ImageFormat"]:
        if not mime_type:
            return None
        mime_type = mime_type.split(";", 1)[0].strip().lower()
        if mime_type == "image/heic":
            return cls.HEIF
        for fmt in cls:
            if fmt.value == mime_type:
                return fmt
        return None


SUPPORTED_MIME_TYPES = frozenset({"image/heif", "image/heic", "image/jpeg", "image/png", "image/webp"})


@dataclass(frozen=True)
class FolderRef:
    """Reference to a remote folder, only held while its subtree is walked."""
    id: str
    name: str


@dataclass(frozen=True)
class SourceItem:
    """One remote image file discovered by the crawl."""
    id: str
    name: str
    tag: Tag
    full_path: str
    digest: str
    format: ImageFormat

    def as_log_fields(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tag": self.tag.value,
            "full_path": self.full_path,
            "digest": self.digest,
            "format": self.format.value,
        }


@dataclass(frozen=True)
class GeoLocation:
    """Signed decimal degrees; south and west are negative."""
    lat: float
    lon: float


@dataclass(frozen=True)
class ProcessedRecord:
    """A source item enriched with its location and capture time."""
    item: SourceItem
    location: GeoLocation
    timestamp: datetime


@dataclass
class ConvertedArtifact:
    """WEBP outputs for one image, uploaded then discarded."""
    # Bounded-width image used for popups
    preview: bytes
    # Full-size image used for full screen display
    full: bytes


@dataclass(frozen=True)
class ItemContext:
    """Per-item context carried through every pipeline stage for logging."""
    run_id: str
    item: SourceItem
    extra: Dict[str, Any] = field(default_factory=dict)

    def for_stage(self, stage: str) -> "ItemContext":
        return replace(self, extra={**self.extra, "stage": stage})

    def as_log_fields(self) -> Dict[str, Any]:
        fields = {"run_id": self.run_id, "image": self.item.as_log_fields()}
        fields.update(self.extra)
        return fields
