"""
Resolve a (source URL, transform) request to a cached artifact.

A request moves through these states:

    RESOLVING_SOURCE -> RESOLVED | FETCHING -> SOURCE_READY
    -> RESOLVING_VARIANT -> HIT_EXISTING | DERIVING -> DONE

and ends in DONE or FAILED. The source of a URL is fetched at most once:
the first request claims the URL key in the in-flight guard, and any request
arriving while the claim is held fails with Busy instead of fetching again.
Derivation of a new variant is claimed the same way on the variant key.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..models.records import MetadataRecord, SourceRecord, TransformSpec, Variant
from .artifact_store import ArtifactStore
from .cache_metrics import CacheMetrics
from .errors import Busy, ImageCacheError, NotAnImage
from .inflight import InFlightGuard
from .keys import key_for_bytes, key_for_url, key_for_variant
from .metadata_store import MetadataStore
from .resolver import ImageEntry, resolve_variant

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    RESOLVING_SOURCE = "resolving_source"
    RESOLVED = "resolved"
    FETCHING = "fetching"
    SOURCE_READY = "source_ready"
    RESOLVING_VARIANT = "resolving_variant"
    HIT_EXISTING = "hit_existing"
    DERIVING = "deriving"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolvedImage:
    """Descriptor of the artifact answering a request."""
    key: str
    extension: str
    width: int
    height: int
    derived: bool = False

    @property
    def filename(self) -> str:
        return f"{self.key}.{self.extension}"

    @classmethod
    def from_entry(cls, entry: ImageEntry, derived: bool = False) -> "ResolvedImage":
        return cls(
            key=entry.key,
            extension=entry.extension,
            width=entry.width,
            height=entry.height,
            derived=derived,
        )


class DerivationOrchestrator:
    """
    Ties key derivation, the in-flight guard, both stores and the resolver
    together. `fetcher` needs an async `fetch(url) -> bytes`; `engine` needs
    blocking `decode(bytes)` and `derive(bytes, spec)` methods.
    """

    def __init__(
        self,
        artifacts: ArtifactStore,
        metadata: MetadataStore,
        fetcher,
        engine,
        guard: Optional[InFlightGuard] = None,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.artifacts = artifacts
        self.metadata = metadata
        self.fetcher = fetcher
        self.engine = engine
        self.guard = guard or InFlightGuard()
        self.metrics = metrics or CacheMetrics()

    def _trace(self, key: str, state: RequestState) -> None:
        logger.debug("[cache] %s -> %s", key[:12], state.value)

    async def resolve(self, url: str, spec: TransformSpec) -> ResolvedImage:
        """Return the artifact for `url` transformed by the canonical `spec`."""
        url_key = key_for_url(url)
        self.metrics.record("requests")
        try:
            record = await self._ensure_source(url, url_key)

            self._trace(url_key, RequestState.RESOLVING_VARIANT)
            match = resolve_variant(record, spec)
            if match is not None:
                self._trace(url_key, RequestState.HIT_EXISTING)
                self.metrics.record("variant_hits")
                logger.info(
                    "[cache] %s matched existing image %s (%dx%d %s)",
                    url,
                    match.key,
                    match.width,
                    match.height,
                    match.extension,
                )
                result = ResolvedImage.from_entry(match)
            else:
                variant = await self._derive_variant(record, spec)
                result = ResolvedImage.from_entry(variant, derived=True)
        except Busy:
            self.metrics.record("busy")
            logger.info("[cache] %s busy, caller should retry", url)
            raise
        except ImageCacheError as exc:
            self._trace(url_key, RequestState.FAILED)
            self.metrics.record("failures")
            logger.warning("[cache] request for %s failed: %s: %s", url, type(exc).__name__, exc)
            raise
        self._trace(url_key, RequestState.DONE)
        return result

    async def _load_ready_record(self, url_key: str) -> Optional[MetadataRecord]:
        record = await asyncio.to_thread(self.metadata.load, url_key)
        if record is None:
            return None
        if not await asyncio.to_thread(self.artifacts.exists, url_key):
            return None
        return record

    async def _ensure_source(self, url: str, url_key: str) -> MetadataRecord:
        self._trace(url_key, RequestState.RESOLVING_SOURCE)
        record = await self._load_ready_record(url_key)
        if record is not None:
            self._trace(url_key, RequestState.RESOLVED)
            self.metrics.record("source_hits")
            return record

        with self.guard.claim(url_key):
            # A request that held the claim may have finished meanwhile
            record = await self._load_ready_record(url_key)
            if record is not None:
                self._trace(url_key, RequestState.RESOLVED)
                self.metrics.record("source_hits")
                return record

            if await asyncio.to_thread(self.artifacts.exists, url_key):
                data = await asyncio.to_thread(self.artifacts.read, url_key)
                fetched = False
            else:
                self._trace(url_key, RequestState.FETCHING)
                self.metrics.record("source_fetches")
                data = await self.fetcher.fetch(url)
                fetched = True

            try:
                decoded = await asyncio.to_thread(self.engine.decode, data)
            except NotAnImage:
                if not fetched:
                    await asyncio.to_thread(self.artifacts.remove, url_key)
                logger.warning("[cache] %s could not be parsed as image", url)
                raise

            if fetched:
                await asyncio.to_thread(self.artifacts.write, url_key, data)
            source = SourceRecord(
                key=url_key,
                digest=key_for_bytes(data),
                extension=decoded.format,
                width=decoded.width,
                height=decoded.height,
            )
            record = await asyncio.to_thread(self.metadata.create, source)
            self._trace(url_key, RequestState.SOURCE_READY)
            return record

    async def _derive_variant(self, record: MetadataRecord, spec: TransformSpec) -> ImageEntry:
        source_key = record.source.key
        variant_key = key_for_variant(source_key, spec)

        with self.guard.claim(variant_key):
            current = await asyncio.to_thread(self.metadata.load, source_key)
            if current is not None:
                match = resolve_variant(current, spec)
                if match is not None:
                    self.metrics.record("variant_hits")
                    return match

            self._trace(source_key, RequestState.DERIVING)
            self.metrics.record("derivations")
            source_bytes = await asyncio.to_thread(self.artifacts.read, source_key)
            derived = await asyncio.to_thread(self.engine.derive, source_bytes, spec)

            if await asyncio.to_thread(self.artifacts.exists, variant_key):
                # Artifacts are write-once; describe the bytes already on disk
                stored = await asyncio.to_thread(self.artifacts.read, variant_key)
            else:
                await asyncio.to_thread(self.artifacts.write, variant_key, derived.data)
                stored = derived.data

            variant = Variant(
                key=variant_key,
                digest=key_for_bytes(stored),
                extension=spec.extension,
                width=derived.width,
                height=derived.height,
                spec=spec,
            )
            await asyncio.to_thread(self.metadata.append_variant, source_key, variant)
            logger.info(
                "[cache] created variant %s from %s (%dx%d %s)",
                variant_key,
                source_key,
                variant.width,
                variant.height,
                variant.extension,
            )
            return variant

    def artifact_path(self, image: ResolvedImage) -> Path:
        """File holding the bytes of `image`, for streaming responses."""
        return self.artifacts.path_for(image.key)
