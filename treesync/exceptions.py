from typing import Dict, Optional


class TreeSyncException(Exception):
    """Base exception for the tree sync pipeline."""

    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigurationException(TreeSyncException):
    """Raised when configuration is missing or invalid."""
    pass


class ProviderException(TreeSyncException):
    """Raised when an external provider fails."""
    pass


class SourceException(ProviderException):
    """Raised when the image source fails to list or download."""
    pass


class ListingException(SourceException):
    """Raised when a folder listing fails."""
    pass


class DownloadException(SourceException):
    """Raised when an image download fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class MissingRequiredFieldException(SourceException):
    """Raised when a listing entry lacks a required field."""

    def __init__(self, field: str):
        super().__init__(f"missing required field: {field}", error_code="MISSING_REQUIRED_FIELD")
        self.field = field


class MetadataException(TreeSyncException):
    """Raised when EXIF metadata cannot be read."""
    pass


class MissingFieldException(MetadataException):
    """Raised when a required EXIF tag is absent."""

    def __init__(self, tag: str):
        super().__init__(f"exif missing field: {tag}", error_code="EXIF_MISSING_FIELD")
        self.tag = tag


class InvalidFieldTypeException(MetadataException):
    """Raised when an EXIF tag holds a value of the wrong type or shape."""

    def __init__(self, tag: str, value=None):
        super().__init__(
            f"exif invalid field type: {tag}",
            error_code="EXIF_INVALID_FIELD_TYPE",
            details={"value": repr(value)},
        )
        self.tag = tag


class ConversionException(TreeSyncException):
    """Raised when an image cannot be converted."""
    pass


class UnsupportedFormatException(ConversionException):
    """Raised when no converter handles a mime type."""
    pass


class UploadException(ProviderException):
    """Raised when an object store write or probe fails."""
    pass


class PipelineException(TreeSyncException):
    """Raised when the run as a whole fails."""
    pass
