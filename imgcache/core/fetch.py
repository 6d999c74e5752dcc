"""
Download source images over HTTP.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from .errors import FetchFailed, InvalidSourceURL

logger = logging.getLogger(__name__)


def _is_safe_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class HttpFetcher:
    """Fetch a URL into memory, refusing bodies larger than `max_bytes`."""

    def __init__(
        self,
        timeout: float = 10.0,
        max_bytes: int = 50 * 1024 * 1024,
        follow_redirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.follow_redirects = follow_redirects
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        if not _is_safe_url(url):
            raise InvalidSourceURL(f"Not an absolute http(s) URL: {url}")

        logger.info("[fetch] downloading %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=self.follow_redirects,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    chunks = []
                    received = 0
                    async for chunk in resp.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise FetchFailed(f"{url} exceeds {self.max_bytes} bytes")
                        chunks.append(chunk)
        except httpx.HTTPStatusError as exc:
            raise FetchFailed(f"{url} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchFailed(f"{url} could not be fetched: {exc}") from exc

        logger.info("[fetch] completed %s (%d bytes)", url, received)
        return b"".join(chunks)
