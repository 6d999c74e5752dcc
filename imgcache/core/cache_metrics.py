"""
Lightweight in-memory cache counters for observability and tuning.
"""

from threading import Lock
from typing import Dict

COUNTERS = (
    "requests",
    "source_hits",
    "source_fetches",
    "variant_hits",
    "derivations",
    "busy",
    "failures",
)


class CacheMetrics:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counts: Dict[str, int] = {name: 0 for name in COUNTERS}

    def record(self, name: str) -> None:
        if name not in self._counts:
            return
        with self._lock:
            self._counts[name] += 1

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of the current counters."""
        with self._lock:
            return dict(self._counts)
