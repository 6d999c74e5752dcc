"""
Image derivation endpoint: POST /<source url> with transform options.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from ..core.config import settings
from ..core.errors import (
    Busy,
    DerivationFailed,
    FetchFailed,
    ImageCacheError,
    InvalidSourceURL,
    MetadataCorrupt,
    NotAnImage,
)
from ..core.image_engine import content_type_for
from ..core.orchestrator import DerivationOrchestrator
from ..core.transform import canonicalize
from ..schemas.images import ImageResult, TransformOptions
from .deps import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

# Some proxies merge the slashes of "https://" when it appears in a path.
_COLLAPSED_SCHEME = re.compile(r"^(https?):/(?!/)", re.IGNORECASE)


def source_url_from_path(path: str, query: str = "") -> str:
    url = _COLLAPSED_SCHEME.sub(r"\1://", path.lstrip("/"))
    if query:
        url = f"{url}?{query}"
    return url


@router.post("/{source_url:path}")
async def derive_image(
    source_url: str,
    request: Request,
    options: Optional[TransformOptions] = Body(None),
    cache: DerivationOrchestrator = Depends(get_orchestrator),
):
    options = options or TransformOptions()
    if options.tallest_side is not None and options.tallest_side > settings.MAX_TALLEST_SIDE:
        raise HTTPException(
            status_code=422,
            detail=f"tallestSide must be at most {settings.MAX_TALLEST_SIDE}",
        )

    url = source_url_from_path(source_url, request.url.query)
    spec = canonicalize(options.tallest_side, options.extension)

    try:
        image = await cache.resolve(url, spec)
    except Busy:
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="This image is already being fetched or derived, retry later.",
            headers={"Retry-After": "1"},
        )
    except (NotAnImage, InvalidSourceURL):
        raise HTTPException(status_code=400, detail="The requested URL could not be parsed as image.")
    except DerivationFailed as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except FetchFailed as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    except MetadataCorrupt:
        logger.exception("[images] metadata unreadable for %s", url)
        raise HTTPException(status_code=500, detail="Cached metadata is unreadable.")
    except ImageCacheError as exc:
        logger.exception("[images] cache error for %s", url)
        raise HTTPException(status_code=500, detail=f"Image cache error: {type(exc).__name__}")

    if options.return_image:
        return FileResponse(cache.artifact_path(image), media_type=content_type_for(image.extension))
    return ImageResult(hash=image.key, filename=image.filename)
