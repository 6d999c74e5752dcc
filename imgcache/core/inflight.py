"""
Track keys that are currently being fetched or derived so concurrent
requests for the same key fail fast instead of duplicating the work.
"""
from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from .errors import Busy


class InFlightGuard:
    """Set of in-flight keys guarded by a mutex. One per cache instance."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._keys: set[str] = set()

    def try_begin(self, key: str) -> bool:
        """Mark `key` in flight. Returns False if it already was."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def end(self, key: str) -> None:
        with self._lock:
            self._keys.discard(key)

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._keys)

    @contextmanager
    def claim(self, key: str) -> Iterator[str]:
        """Hold `key` for the duration of the block or raise Busy."""
        if not self.try_begin(key):
            raise Busy(key)
        try:
            yield key
        finally:
            self.end(key)
