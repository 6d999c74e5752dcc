"""
File-backed metadata records, one JSON document per source key.

Every mutation of a record is a read-modify-write under that key's lock,
and documents are replaced atomically (temp file + rename) so a reader never
sees a truncated document.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import ValidationError

from ..models.records import MetadataRecord, SourceRecord, Variant
from .errors import MetadataCorrupt, MetadataNotFound
from .keys import is_valid_key

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64


class MetadataStore:
    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def _path(self, source_key: str) -> Path:
        if not is_valid_key(source_key):
            raise ValueError(f"Invalid content key: {source_key!r}")
        return self.root / f"{source_key}.json"

    def _lock_for(self, source_key: str) -> threading.Lock:
        """Striped lock for `source_key`; the pool size bounds memory use."""
        if not is_valid_key(source_key):
            raise ValueError(f"Invalid content key: {source_key!r}")
        return self._locks[int(source_key[:8], 16) % len(self._locks)]

    def _read(self, source_key: str) -> Optional[MetadataRecord]:
        path = self._path(source_key)
        try:
            payload = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise MetadataCorrupt(f"Cannot read metadata for {source_key}: {exc}") from exc
        try:
            return MetadataRecord.model_validate_json(payload)
        except ValidationError as exc:
            raise MetadataCorrupt(f"Invalid metadata document for {source_key}") from exc

    def _write(self, record: MetadataRecord) -> None:
        path = self._path(record.source.key)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{record.source.key}.", suffix=".json.tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(record.model_dump_json())
                handle.flush()
                os.fsync(handle.fileno())
            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def load(self, source_key: str) -> Optional[MetadataRecord]:
        """Return the record for `source_key`, or None if there is none yet."""
        return self._read(source_key)

    def create(self, source: SourceRecord) -> MetadataRecord:
        """Persist a fresh record for `source` unless one already exists."""
        with self._lock_for(source.key):
            existing = self._read(source.key)
            if existing is not None:
                return existing
            record = MetadataRecord(source=source, variants=[])
            self._write(record)
            logger.info("[metadata] created record %s (%dx%d %s)", source.key, source.width, source.height, source.extension)
            return record

    def append_variant(self, source_key: str, variant: Variant) -> MetadataRecord:
        """Append `variant` unless a variant with the same key is recorded."""
        with self._lock_for(source_key):
            record = self._read(source_key)
            if record is None:
                raise MetadataNotFound(source_key)
            if record.has_variant(variant.key):
                return record
            record = record.model_copy(update={"variants": [*record.variants, variant]})
            self._write(record)
            logger.info(
                "[metadata] %s: appended variant %s (%dx%d %s)",
                source_key,
                variant.key,
                variant.width,
                variant.height,
                variant.extension,
            )
            return record
