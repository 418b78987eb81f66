"""
Pytest configuration and fixtures.

Provides:
- Environment setup (must run before config.settings is imported)
- fakeredis in place of the process-wide Redis client
- Store / writer / service fixtures
- ASGI test client with the preview server installed
- Builders for synthetic WebGL build archives
"""

import gzip
import io
import json
import os
import zipfile
from collections.abc import AsyncGenerator
from typing import Callable, Dict, Optional

import pytest

# ============ Environment Setup ============

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:5173")
os.environ.setdefault("LIVE_RELOAD_DEBOUNCE_MS", "20")

import fakeredis  # noqa: E402
from fakeredis import aioredis  # noqa: E402

from config import cache  # noqa: E402
from repository.archive_repository import ArchiveRepository  # noqa: E402
from repository.blob_store import BlobStore  # noqa: E402
from repository.reload_channel import ReloadChannel  # noqa: E402
from service.live_config_writer import LiveConfigWriter  # noqa: E402


# ============ Redis ============


@pytest.fixture
def fake_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture
async def redis(fake_server) -> AsyncGenerator:
    client = aioredis.FakeRedis(server=fake_server)
    cache.use_redis(client)
    yield client
    cache.use_redis(None)
    await client.aclose()


@pytest.fixture
def blobs(redis) -> BlobStore:
    return BlobStore(ttl_seconds=600)


@pytest.fixture
def archives(redis) -> ArchiveRepository:
    return ArchiveRepository(ttl_seconds=600)


@pytest.fixture
def reloads(redis) -> ReloadChannel:
    return ReloadChannel(ttl_seconds=600)


@pytest.fixture
async def live_writer(blobs, reloads) -> AsyncGenerator:
    writer = LiveConfigWriter(blobs, reloads, debounce_seconds=0.02)
    yield writer
    await writer.close()


# ============ FastAPI App ============


@pytest.fixture
def app(blobs, live_writer):
    """FastAPI app with the preview server installed and rate limiting off."""
    from controller.controller_dependencies import api_rate_limiter
    from main import app as fastapi_app
    from service.virtual_file_server import VirtualFileServer

    fastapi_app.state.live_writer = live_writer
    VirtualFileServer(blobs).install(fastapi_app)
    fastapi_app.dependency_overrides[api_rate_limiter] = lambda: None
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    del fastapi_app.state.file_server
    del fastapi_app.state.live_writer


@pytest.fixture
async def client(app) -> AsyncGenerator:
    """Async test client for FastAPI."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


# ============ Archive Builders ============


INDEX_HTML = (
    "<!DOCTYPE html><html><head><title>Game</title></head>"
    '<body><div id="unity-container"><canvas id="unity-canvas" width="960" height="600">'
    '</canvas></div><script src="Build/game.loader.js"></script></body></html>'
)

LOADER_JS = "function createUnityInstance(c, cfg) { return Promise.resolve({}); }"

WASM_PLAIN = b"\x00asm\x01\x00\x00\x00" + b"wasm-body" * 16


def make_manifest(**overrides) -> Dict:
    manifest = {
        "version": "1.0",
        "variables": [
            {"name": "speed", "type": "int", "value": "5", "min": 0, "max": 20},
        ],
    }
    manifest.update(overrides)
    return manifest


def make_zip(files: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path, data in files.items():
            zf.writestr(path, data)
    return buf.getvalue()


def sample_files(
    manifest: Optional[Dict] = None, extra: Optional[Dict[str, bytes]] = None
) -> Dict[str, bytes]:
    files = {
        "index.html": INDEX_HTML.encode("utf-8"),
        "Build/game.loader.js": LOADER_JS.encode("utf-8"),
        "Build/game.framework.js.gz": gzip.compress(b"var framework = 1;"),
        "Build/game.wasm.gz": gzip.compress(WASM_PLAIN),
        "Build/game.data.gz": gzip.compress(b"DATA" * 32),
        "homa_config.json": json.dumps(manifest or make_manifest()).encode("utf-8"),
    }
    files.update(extra or {})
    return files


@pytest.fixture
def build_zip() -> Callable[..., bytes]:
    """build_zip(manifest=None, extra=None, drop=()) -> zip bytes of a sample build."""

    def _build(
        manifest: Optional[Dict] = None,
        extra: Optional[Dict[str, bytes]] = None,
        drop=(),
    ) -> bytes:
        files = sample_files(manifest, extra)
        for path in drop:
            files.pop(path, None)
        return make_zip(files)

    return _build


@pytest.fixture
def zip_of() -> Callable[[Dict[str, bytes]], bytes]:
    return make_zip
