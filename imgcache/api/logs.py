"""
Recent log endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter, Query

from ..core.log_buffer import CACHE_LOGGERS, log_buffer

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
@router.get("/")
async def get_logs(
    since_id: int | None = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=2000),
    scope: str = Query("all", pattern="^(all|cache|errors)$"),
) -> Dict[str, Any]:
    """Get buffered log entries."""
    items, last_id = log_buffer.entries(since_id, limit)
    if scope == "cache":
        items = [entry for entry in items if str(entry.get("logger") or "").startswith(CACHE_LOGGERS)]
    elif scope == "errors":
        items = [entry for entry in items if str(entry.get("level") or "").upper() in {"ERROR", "WARNING"}]
    return {"items": items, "last_id": last_id}


@router.post("/clear")
async def clear_logs() -> Dict[str, Any]:
    log_buffer.clear()
    return {"cleared": True}
