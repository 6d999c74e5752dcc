"""
Blob store for source and variant bytes, one file per content key.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from .errors import ArtifactNotFound
from .keys import is_valid_key

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Write-once files named by content key under a single directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        if not is_valid_key(key):
            raise ValueError(f"Invalid content key: {key!r}")
        return self.root / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> bytes:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise ArtifactNotFound(key) from exc

    def write(self, key: str, data: bytes) -> Path:
        """Write `data` under `key`; readers never observe a partial file."""
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("[artifacts] wrote %s (%d bytes)", key, len(data))
        return path

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)
        logger.info("[artifacts] removed %s", key)
