import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .api.routes_health import router as health_router
from .api.logs import router as logs_router
from .api.images import router as images_router
from .api.deps import get_orchestrator
from .core.config import settings
from .core.log_buffer import install_log_buffer

logger = logging.getLogger(__name__)


def ensure_storage_writable() -> None:
    """Create the storage directories and fail startup if they are not writable."""
    cache = get_orchestrator()
    for folder in (cache.artifacts.root, cache.metadata.root):
        if not os.access(folder, os.R_OK | os.W_OK):
            raise RuntimeError(f"Storage folder {folder} is not readable and writable")
        logger.info("Writing works for: %s", folder)


@asynccontextmanager
async def lifespan(app: FastAPI):
    install_log_buffer(settings.LOG_LEVEL)
    ensure_storage_writable()
    yield


app = FastAPI(title="imgcache", description="Content-addressable cache for derived images", lifespan=lifespan)

app.include_router(health_router)
app.include_router(logs_router)
# Catch-all POST route, registered last
app.include_router(images_router)


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
