"""
Pillow-backed decode/resize/encode engine.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Tuple

import pillow_jxl  # noqa: F401  registers the JXL plugin with Pillow
from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from ..models.records import TransformSpec
from .errors import DerivationFailed, NotAnImage

register_heif_opener()

# Pillow save format per output extension
OUTPUT_FORMATS = {
    "avif": "AVIF",
    "heif": "HEIF",
    "jxl": "JXL",
}

CONTENT_TYPES = {
    "avif": "image/avif",
    "heif": "image/heif",
    "jxl": "image/jxl",
}

DEFAULT_QUALITY = 75

_DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError)


@dataclass(frozen=True)
class DecodedImage:
    width: int
    height: int
    format: str


@dataclass(frozen=True)
class DerivedImage:
    data: bytes
    width: int
    height: int


def content_type_for(extension: str) -> str:
    """MIME type to serve an artifact with the given extension."""
    if extension in CONTENT_TYPES:
        return CONTENT_TYPES[extension]
    Image.preinit()
    return Image.MIME.get(extension.upper(), "application/octet-stream")


def target_size(width: int, height: int, tallest_side: int) -> Tuple[int, int]:
    """Scale (width, height) so the longer side is exactly `tallest_side`."""
    if width >= height:
        return tallest_side, max(1, round(height * tallest_side / width))
    return max(1, round(width * tallest_side / height)), tallest_side


class PillowImageEngine:
    """Decode sources and derive variants. All methods are blocking."""

    def __init__(self, quality: int = DEFAULT_QUALITY):
        self.quality = quality

    def decode(self, data: bytes) -> DecodedImage:
        """Fully decode `data` to confirm it is an image."""
        try:
            with Image.open(BytesIO(data)) as im:
                im.load()
                fmt = (im.format or "").lower()
                return DecodedImage(width=im.width, height=im.height, format=fmt or "bin")
        except _DECODE_ERRORS as exc:
            raise NotAnImage(str(exc) or "unrecognized image data") from exc

    def derive(self, data: bytes, spec: TransformSpec) -> DerivedImage:
        if spec.tallest_side is None:
            raise DerivationFailed("A tallest side is required to derive a variant")
        output_format = OUTPUT_FORMATS.get(spec.extension)
        if output_format is None:
            raise DerivationFailed(f"Unsupported output extension: {spec.extension}")

        try:
            with Image.open(BytesIO(data)) as source:
                im = source.convert("RGBA" if _has_alpha(source) else "RGB")
        except _DECODE_ERRORS as exc:
            raise NotAnImage(str(exc) or "unrecognized image data") from exc

        size = target_size(im.width, im.height, spec.tallest_side)
        try:
            resized = im.resize(size, Image.Resampling.LANCZOS)
            buffer = BytesIO()
            resized.save(buffer, format=output_format, quality=self.quality)
        except (OSError, ValueError, KeyError) as exc:
            raise DerivationFailed(f"Encoding {spec.extension} failed: {exc}") from exc
        return DerivedImage(data=buffer.getvalue(), width=resized.width, height=resized.height)


def _has_alpha(im: Image.Image) -> bool:
    return im.mode in ("RGBA", "LA", "PA") or (im.mode == "P" and "transparency" in im.info)
