import asyncio
import os
from pathlib import Path

from fastapi import APIRouter, Depends, status

from ..core.orchestrator import DerivationOrchestrator
from .deps import get_orchestrator

router = APIRouter()


def check_directory(path: Path) -> dict:
    """Report whether `path` exists and is readable and writable."""
    exists = path.is_dir()
    return {
        "path": str(path),
        "status": "online" if exists and os.access(path, os.R_OK | os.W_OK) else "offline",
    }


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict:
    return {"status": "ok"}


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
async def detailed_health(cache: DerivationOrchestrator = Depends(get_orchestrator)) -> dict:
    """Detailed health check with storage status and cache counters."""
    images, metadata = await asyncio.gather(
        asyncio.to_thread(check_directory, cache.artifacts.root),
        asyncio.to_thread(check_directory, cache.metadata.root),
    )
    storage_ok = images["status"] == "online" and metadata["status"] == "online"
    return {
        "status": "online" if storage_ok else "degraded",
        "storage": {"images": images, "metadata": metadata},
        "cache": cache.metrics.snapshot(),
        "in_flight": len(cache.guard.in_flight()),
    }
