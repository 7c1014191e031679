"""Image format detection from magic bytes."""

from __future__ import annotations

from dataclasses import dataclass

JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
RIFF_MAGIC = b"RIFF"
WEBP_MAGIC = b"WEBP"

# Bytes needed to recognise every accepted format.
SNIFF_LENGTH = 12


@dataclass(frozen=True, slots=True)
class ImageFormat:
    mime_type: str
    extension: str


JPEG = ImageFormat("image/jpeg", "jpg")
PNG = ImageFormat("image/png", "png")
WEBP = ImageFormat("image/webp", "webp")

ACCEPTED_FORMATS: tuple[ImageFormat, ...] = (JPEG, PNG, WEBP)


def detect_image_format(data: bytes) -> ImageFormat | None:
    """Identify JPEG, PNG or WebP content from its leading bytes.

    File extensions and claimed MIME types are deliberately ignored.
    """

    if data.startswith(JPEG_MAGIC):
        return JPEG
    if data.startswith(PNG_MAGIC):
        return PNG
    if len(data) >= SNIFF_LENGTH and data[:4] == RIFF_MAGIC and data[8:12] == WEBP_MAGIC:
        return WEBP
    return None
