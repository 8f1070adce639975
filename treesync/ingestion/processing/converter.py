"""
Conversion of source images into web-friendly WEBP renditions.

Each supported encoding is decoded by a dedicated routine, chosen once per
image from its `ImageFormat`; all of them feed the same WEBP encoder.
"""

import io

import pillow_heif
from loguru import logger
from PIL import Image, ImageOps

from ..core import ConvertedArtifact, ImageFormat, SUPPORTED_MIME_TYPES
from ...exceptions import ConversionException, UnsupportedFormatException
from ...utils.error_handler import convert_exceptions


def supported_mime_types() -> frozenset:
    return SUPPORTED_MIME_TYPES


def _decode_heif(data: bytes) -> Image.Image:
    heif_file = pillow_heif.open_heif(io.BytesIO(data), convert_hdr_to_8bit=True)
    image = Image.frombytes(
        heif_file.mode,
        heif_file.size,
        heif_file.data,
        "raw",
        heif_file.mode,
        heif_file.stride,
    )
    return image.convert("RGB")


def _decode_general(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image = ImageOps.exif_transpose(image)
    return image.convert("RGB")


class ImageConverter:
    """Converts images to a full-size and a bounded-width WEBP."""

    def __init__(self, preview_width: int = 600, quality: int = 75):
        self.preview_width = preview_width
        self.quality = quality

    def _encode(self, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="WEBP", quality=self.quality)
        return buffer.getvalue()

    def _preview(self, image: Image.Image) -> Image.Image:
        width, height = image.size
        if width <= self.preview_width:
            return image
        preview_height = max(1, round(height * self.preview_width / width))
        return image.resize((self.preview_width, preview_height), Image.Resampling.LANCZOS)

    @convert_exceptions({Exception: ConversionException})
    def convert(self, fmt: ImageFormat, data: bytes) -> ConvertedArtifact:
        """
        Convert raw image bytes into WEBP renditions.

        Args:
            fmt: Encoding of `data`
            data: Raw image bytes

        Returns:
            ConvertedArtifact with the preview and full-size WEBP bytes
        """
        if fmt is ImageFormat.HEIF:
            image = _decode_heif(data)
        elif fmt in (ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.WEBP):
            image = _decode_general(data)
        else:
            raise UnsupportedFormatException(f"no available converter for {fmt}")

        logger.trace(f"Decoded {fmt.value} image of size {image.size}")
        return ConvertedArtifact(
            preview=self._encode(self._preview(image)),
            full=self._encode(image),
        )
