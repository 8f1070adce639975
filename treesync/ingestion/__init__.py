"""
Tree Image Ingestion Pipeline

This package crawls a folder tree of tree photographs, converts every image
to WEBP renditions, reads its GPS position and capture time from EXIF, and
publishes the renditions plus a GeoJSON index to an object store.
"""

from .crawler import ImageCrawler, CrawlStream, ItemChannel
from .geojson import record_to_feature, build_feature_collection, serialize_feature_collection
from .pipeline import IngestionPipeline, RunStats, run_ingestion
from .processing import ImageConverter, extract_metadata, supported_mime_types
from .storage import IdempotentUploader, ArtifactSize, UploadOutcome
from .core import (
    Tag,
    ImageFormat,
    FolderRef,
    SourceItem,
    GeoLocation,
    ProcessedRecord,
    ConvertedArtifact,
    ItemContext,
)
from . import core
from . import processing
from . import storage

__all__ = [
    # Main pipeline
    "IngestionPipeline",
    "RunStats",
    "run_ingestion",
    # Components
    "ImageCrawler",
    "CrawlStream",
    "ItemChannel",
    "ImageConverter",
    "IdempotentUploader",
    # Convenience functions
    "extract_metadata",
    "supported_mime_types",
    "record_to_feature",
    "build_feature_collection",
    "serialize_feature_collection",
    # Models
    "Tag",
    "ImageFormat",
    "FolderRef",
    "SourceItem",
    "GeoLocation",
    "ProcessedRecord",
    "ConvertedArtifact",
    "ItemContext",
    "ArtifactSize",
    "UploadOutcome",
    # Modules
    "core",
    "processing",
    "storage",
]
