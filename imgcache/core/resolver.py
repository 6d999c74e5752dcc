"""Decide whether a recorded image already satisfies a transform request."""

from typing import List, Optional, Union

from ..models.records import MetadataRecord, SourceRecord, TransformSpec, Variant

ImageEntry = Union[SourceRecord, Variant]


def flatten_entries(record: MetadataRecord) -> List[ImageEntry]:
    return [record.source, *record.variants]


def _matches_tallest(entry: ImageEntry, tallest_side: int, extension: str) -> bool:
    return max(entry.width, entry.height) == tallest_side and entry.extension == extension


def resolve_variant(record: MetadataRecord, spec: TransformSpec) -> Optional[ImageEntry]:
    """
    Return the first recorded entry matching `spec` exactly, or None on a miss.

    Entries are scanned source first, then variants in insertion order. A spec
    without a tallest side asks for the original and resolves to the source.
    """
    if spec.tallest_side is None:
        return record.source
    for entry in flatten_entries(record):
        if _matches_tallest(entry, spec.tallest_side, spec.extension):
            return entry
    return None
