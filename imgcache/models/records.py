"""
Persisted records for cached sources and their derived variants.
"""

import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransformSpec(BaseModel):
    """Canonical form of the transform options of a request."""
    model_config = ConfigDict(frozen=True)

    tallest_side: Optional[int] = Field(None, gt=0)
    extension: str

    def canonical(self) -> str:
        """Stable serialization used for key derivation."""
        return json.dumps(self.model_dump(), sort_keys=True, separators=(",", ":"))


class SourceRecord(BaseModel):
    """The fetched original, keyed by the digest of its URL."""
    model_config = ConfigDict(frozen=True)

    key: str
    digest: str
    extension: str
    width: int
    height: int


class Variant(BaseModel):
    """A rendition derived from a source by one TransformSpec."""
    model_config = ConfigDict(frozen=True)

    key: str
    digest: str
    extension: str
    width: int
    height: int
    spec: TransformSpec


class MetadataRecord(BaseModel):
    source: SourceRecord
    variants: List[Variant] = Field(default_factory=list)

    def has_variant(self, key: str) -> bool:
        return any(variant.key == key for variant in self.variants)
