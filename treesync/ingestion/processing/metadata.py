"""
Extraction of geolocation and capture time from EXIF metadata.
"""

import io
import math
import re
from datetime import datetime
from numbers import Real
from typing import Any, Optional, Protocol, Tuple

import pillow_heif
from PIL import Image, UnidentifiedImageError

from ..core import GeoLocation
from ...exceptions import MetadataException, MissingFieldException, InvalidFieldTypeException

# Lets Pillow read EXIF out of HEIF/HEIC containers
pillow_heif.register_heif_opener()

EXIF_IFD = 0x8769
GPS_IFD = 0x8825

# Tag name -> (IFD, tag id)
TAGS = {
    "GPSLatitudeRef": (GPS_IFD, 0x0001),
    "GPSLatitude": (GPS_IFD, 0x0002),
    "GPSLongitudeRef": (GPS_IFD, 0x0003),
    "GPSLongitude": (GPS_IFD, 0x0004),
    "DateTimeOriginal": (EXIF_IFD, 0x9003),
    "OffsetTimeOriginal": (EXIF_IFD, 0x9011),
}

TIMESTAMP_FORMAT = "%Y:%m:%d %H:%M:%S %z"
OFFSET_PATTERN = re.compile(r"[+-]\d{2}:\d{2}")


class FieldLookup(Protocol):
    def get(self, tag: str) -> Optional[Any]: ...


class ExifFields:
    """EXIF tags of one image, looked up by name."""

    def __init__(self, exif: Image.Exif):
        self._ifds = {
            EXIF_IFD: exif.get_ifd(EXIF_IFD),
            GPS_IFD: exif.get_ifd(GPS_IFD),
        }

    @classmethod
    def from_bytes(cls, data: bytes) -> "ExifFields":
        try:
            with Image.open(io.BytesIO(data)) as image:
                return cls(image.getexif())
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise MetadataException(f"exif parse error: {e}") from e

    def get(self, tag: str) -> Optional[Any]:
        ifd, tag_id = TAGS[tag]
        return self._ifds[ifd].get(tag_id)


def _require(fields: FieldLookup, tag: str) -> Any:
    value = fields.get(tag)
    if value is None:
        raise MissingFieldException(tag)
    return value


def _text(value: Any, tag: str) -> str:
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError as e:
            raise MetadataException(f"exif utf8 parse error: {e}") from e
    if not isinstance(value, str):
        raise InvalidFieldTypeException(tag, value)
    return value.strip("\x00 ")


def _rational(value: Any, tag: str) -> float:
    # piexif-style (numerator, denominator) pairs are accepted as well
    if isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, int) for v in value):
        numerator, denominator = value
        if denominator == 0:
            raise InvalidFieldTypeException(tag, value)
        result = numerator / denominator
    elif isinstance(value, Real):
        # Pillow yields NaN for a 0/0 rational
        result = float(value)
    else:
        raise InvalidFieldTypeException(tag, value)
    if not math.isfinite(result):
        raise InvalidFieldTypeException(tag, value)
    return result


def read_coordinate(fields: FieldLookup, tag: str, ref_tag: str) -> float:
    """Decimal degrees for one GPS axis, negative for south and west."""
    value = _require(fields, tag)
    ref = _require(fields, ref_tag)

    if not isinstance(value, (tuple, list)):
        raise InvalidFieldTypeException(tag, value)
    direction = -1.0 if _text(ref, ref_tag) in ("S", "W") else 1.0

    if len(value) != 3:
        raise InvalidFieldTypeException(tag, value)
    degrees, minutes, seconds = (_rational(v, tag) for v in value)
    return (degrees + minutes / 60.0 + seconds / 3600.0) * direction


def read_location(fields: FieldLookup) -> GeoLocation:
    lat = read_coordinate(fields, "GPSLatitude", "GPSLatitudeRef")
    lon = read_coordinate(fields, "GPSLongitude", "GPSLongitudeRef")
    return GeoLocation(lat=lat, lon=lon)


def read_timestamp(fields: FieldLookup) -> datetime:
    """Original capture time at the UTC offset recorded in the image."""
    timestamp = _text(_require(fields, "DateTimeOriginal"), "DateTimeOriginal")
    offset = _text(_require(fields, "OffsetTimeOriginal"), "OffsetTimeOriginal")
    if not OFFSET_PATTERN.fullmatch(offset):
        raise MetadataException(f"time parse error: invalid offset {offset!r}")

    try:
        return datetime.strptime(f"{timestamp} {offset}", TIMESTAMP_FORMAT)
    except ValueError as e:
        raise MetadataException(f"time parse error: {e}") from e


def extract_metadata(data: bytes) -> Tuple[GeoLocation, datetime]:
    """
    Read the geolocation and capture timestamp embedded in an image.

    Args:
        data: Raw image bytes (any container Pillow or pillow-heif can open)

    Returns:
        Tuple of (GeoLocation, timezone-aware capture datetime)

    Raises:
        MetadataException: If the tags are missing, malformed or unreadable
    """
    fields = ExifFields.from_bytes(data)
    timestamp = read_timestamp(fields)
    location = read_location(fields)
    return location, timestamp
