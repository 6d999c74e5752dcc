"""
In-memory ring buffer of recent log records, served by the /logs endpoints.
"""
from __future__ import annotations

import logging
import threading
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Tuple

BUFFER_MAX = 2000

CACHE_LOGGERS = (
    "imgcache.core.orchestrator",
    "imgcache.core.metadata_store",
    "imgcache.core.artifact_store",
    "imgcache.core.fetch",
    "imgcache.api.images",
)


class LogBuffer:
    def __init__(self, maxlen: int = BUFFER_MAX) -> None:
        self._entries: Deque[Dict[str, object]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._next_id = 1

    def append(self, level: str, logger_name: str, message: str, created: float) -> None:
        ts = datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
        with self._lock:
            self._entries.append({
                "id": self._next_id,
                "ts": ts,
                "level": level,
                "logger": logger_name,
                "message": message,
                "line": f"{ts} {level} {logger_name}: {message}",
            })
            self._next_id += 1

    def entries(self, since_id: Optional[int], limit: int) -> Tuple[List[Dict[str, object]], Optional[int]]:
        with self._lock:
            items = list(self._entries)
        newest = int(items[-1]["id"]) if items else None
        if since_id is not None:
            items = [entry for entry in items if int(entry["id"]) > since_id]
        if limit and len(items) > limit:
            items = items[-limit:]
        return items, (int(items[-1]["id"]) if items else newest)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_id = 1


class LogBufferHandler(logging.Handler):
    def __init__(self, buffer: LogBuffer, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == "uvicorn.access":
            return
        try:
            message = record.getMessage()
            if record.exc_info:
                message = f"{message}\n{''.join(traceback.format_exception(*record.exc_info))}".rstrip()
            self.buffer.append(record.levelname, record.name, message, record.created)
        except Exception:
            self.handleError(record)


log_buffer = LogBuffer()
_handler: Optional[LogBufferHandler] = None


def install_log_buffer(level: str = "INFO") -> None:
    """Attach the buffer handler to the root and uvicorn loggers once."""
    global _handler
    if _handler is not None:
        return
    _handler = LogBufferHandler(log_buffer)
    for name in ("", "uvicorn"):
        logging.getLogger(name).addHandler(_handler)
    # uvicorn leaves the root logger at WARNING; cache progress is logged at INFO
    for name in CACHE_LOGGERS:
        logger = logging.getLogger(name)
        if logger.level == logging.NOTSET:
            logger.setLevel(level.upper())
