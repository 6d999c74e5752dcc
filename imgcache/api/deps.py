"""
Shared dependencies for the API routers.
"""

from functools import lru_cache

from ..core.artifact_store import ArtifactStore
from ..core.config import Settings, settings
from ..core.fetch import HttpFetcher
from ..core.image_engine import PillowImageEngine
from ..core.metadata_store import MetadataStore
from ..core.orchestrator import DerivationOrchestrator


def build_orchestrator(config: Settings) -> DerivationOrchestrator:
    """Wire a cache instance from settings."""
    return DerivationOrchestrator(
        artifacts=ArtifactStore(config.image_dir()),
        metadata=MetadataStore(config.metadata_dir()),
        fetcher=HttpFetcher(
            timeout=config.FETCH_TIMEOUT_SECONDS,
            max_bytes=config.MAX_SOURCE_BYTES,
            follow_redirects=config.FOLLOW_REDIRECTS,
        ),
        engine=PillowImageEngine(quality=config.ENCODE_QUALITY),
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> DerivationOrchestrator:
    """FastAPI dependency returning the application's cache instance."""
    return build_orchestrator(settings)
