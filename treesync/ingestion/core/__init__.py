"""Core models for the ingestion pipeline."""

from .models import (
    Tag,
    ImageFormat,
    SUPPORTED_MIME_TYPES,
    FolderRef,
    SourceItem,
    GeoLocation,
    ProcessedRecord,
    ConvertedArtifact,
    ItemContext,
)

__all__ = [
    "Tag",
    "ImageFormat",
    "SUPPORTED_MIME_TYPES",
    "FolderRef",
    "SourceItem",
    "GeoLocation",
    "ProcessedRecord",
    "ConvertedArtifact",
    "ItemContext",
]
