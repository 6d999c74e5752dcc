"""
Shared fixtures: file-backed stores in a temp dir plus fake fetcher/engine.
"""

import asyncio
import re
import threading

import pytest
from fastapi.testclient import TestClient

from imgcache.api.deps import get_orchestrator
from imgcache.core.artifact_store import ArtifactStore
from imgcache.core.errors import DerivationFailed, FetchFailed, NotAnImage
from imgcache.core.image_engine import DecodedImage, DerivedImage, target_size
from imgcache.core.metadata_store import MetadataStore
from imgcache.core.orchestrator import DerivationOrchestrator
from imgcache.main import app

_FAKE_IMAGE = re.compile(rb"IMG:(\d+)x(\d+):(\w+)")


def fake_image(width: int, height: int, fmt: str = "png") -> bytes:
    return f"IMG:{width}x{height}:{fmt}".encode()


class FakeFetcher:
    """Serves canned payloads; can be held open with `gate` to simulate a slow download."""

    def __init__(self, payloads=None):
        self.payloads = dict(payloads or {})
        self.calls = []
        self.gate = None
        self.started = None

    def hold(self):
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def fetch(self, url):
        self.calls.append(url)
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        payload = self.payloads.get(url)
        if payload is None:
            raise FetchFailed(f"{url} returned HTTP 404")
        return payload


class FakeEngine:
    """Understands the `IMG:<w>x<h>:<fmt>` byte format produced by fake_image()."""

    def __init__(self):
        self.derive_calls = []
        self.fail_derive = False
        self.derive_gate = None
        self.derive_started = threading.Event()

    def decode(self, data):
        match = _FAKE_IMAGE.fullmatch(data)
        if not match:
            raise NotAnImage("unrecognized image data")
        return DecodedImage(width=int(match.group(1)), height=int(match.group(2)), format=match.group(3).decode())

    def derive(self, data, spec):
        self.derive_calls.append(spec)
        self.derive_started.set()
        if self.derive_gate is not None:
            self.derive_gate.wait(timeout=5)
        if self.fail_derive:
            raise DerivationFailed("engine rejected the transform")
        decoded = self.decode(data)
        width, height = target_size(decoded.width, decoded.height, spec.tallest_side)
        return DerivedImage(data=fake_image(width, height, spec.extension), width=width, height=height)


@pytest.fixture
def artifacts(tmp_path):
    return ArtifactStore(tmp_path / "images")


@pytest.fixture
def metadata(tmp_path):
    return MetadataStore(tmp_path / "metadata")


@pytest.fixture
def fetcher():
    return FakeFetcher({
        "https://x/a.png": fake_image(400, 200),
        "https://x/tall.png": fake_image(300, 900),
        "https://x/broken.png": b"<html>not an image</html>",
    })


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def cache(artifacts, metadata, fetcher, engine):
    return DerivationOrchestrator(artifacts=artifacts, metadata=metadata, fetcher=fetcher, engine=engine)


@pytest.fixture
def client(cache):
    """Test client whose routes use the temp-dir cache instance"""
    app.dependency_overrides[get_orchestrator] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
