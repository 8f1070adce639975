"""Image conversion and metadata extraction."""

from .converter import ImageConverter, supported_mime_types
from .metadata import extract_metadata, read_location, read_timestamp, ExifFields

__all__ = [
    "ImageConverter",
    "supported_mime_types",
    "extract_metadata",
    "read_location",
    "read_timestamp",
    "ExifFields",
]
