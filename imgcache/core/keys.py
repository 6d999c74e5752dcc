"""Content key derivation for sources and variants."""

import hashlib
import re

from ..models.records import TransformSpec

DIGEST_SIZE = 32
_KEY_PATTERN = re.compile(rf"[0-9a-f]{{{DIGEST_SIZE * 2}}}")


def _digest(data: bytes) -> str:
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).hexdigest()


def key_for_url(url: str) -> str:
    """Key of a source, known before its bytes are fetched."""
    return _digest(url.encode("utf-8"))


def key_for_bytes(data: bytes) -> str:
    return _digest(data)


def key_for_variant(source_key: str, spec: TransformSpec) -> str:
    """Artifact key of the rendition of `source_key` described by `spec`."""
    return _digest(f"{source_key}:{spec.canonical()}".encode("utf-8"))


def is_valid_key(value: str) -> bool:
    return bool(_KEY_PATTERN.fullmatch(value or ""))
