"""
Canonicalization of request options into a TransformSpec.
"""

from typing import Optional

from ..models.records import TransformSpec

DEFAULT_EXTENSION = "avif"
SUPPORTED_EXTENSIONS = ("avif", "heif", "jxl")


def normalize_extension(extension: Optional[str]) -> str:
    """Return a supported extension, falling back to the default."""
    if not isinstance(extension, str):
        return DEFAULT_EXTENSION
    cleaned = extension.strip().lower().lstrip(".")
    if cleaned not in SUPPORTED_EXTENSIONS:
        return DEFAULT_EXTENSION
    return cleaned


def canonicalize(tallest_side: Optional[int] = None, extension: Optional[str] = None) -> TransformSpec:
    return TransformSpec(tallest_side=tallest_side, extension=normalize_extension(extension))
