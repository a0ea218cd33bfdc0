"""Shared fixtures for the test suite.

No test touches the network or needs the yt-dlp binary: the metadata tool
and the upstream byte origin are replaced with the fakes below, injected
through FastAPI's dependency overrides.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_format_resolver, get_stream_relay
from app.config.settings import config
from app.core.errors import TruncatedRelay
from app.main import app
from app.models.internal import ResolverOptions
from app.services.relay import StreamRelay
from app.services.resolver import FormatResolver


class FakeMetadataResolver:
    """Returns (or raises) the queued outcomes in order; the last one repeats"""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls: List[tuple] = []

    async def fetch(self, url: str, options: ResolverOptions) -> Dict[str, Any]:
        self.calls.append((url, options))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeUpstreamBody:
    """
    Upstream response double. Chunks after the first wait on ``gate`` when
    one is given; ``fail_at`` raises TruncatedRelay before that chunk index.
    """

    def __init__(
        self,
        chunks: List[bytes],
        headers: Optional[Dict[str, str]] = None,
        gate: Optional[asyncio.Event] = None,
        fail_at: Optional[int] = None,
    ):
        self.chunks = chunks
        self.headers = headers or {}
        self.gate = gate
        self.fail_at = fail_at
        self.yielded = 0
        self.closed = False

    async def iter_chunks(self, chunk_size: int):
        for index, chunk in enumerate(self.chunks):
            if self.fail_at is not None and index == self.fail_at:
                raise TruncatedRelay("connection reset by peer")
            if index > 0 and self.gate is not None:
                await self.gate.wait()
            self.yielded += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeStreamFetcher:
    def __init__(self, body: Optional[FakeUpstreamBody] = None, error: Optional[Exception] = None):
        self.body = body
        self.error = error
        self.opened: List[str] = []

    async def open(self, url: str) -> FakeUpstreamBody:
        self.opened.append(url)
        if self.error is not None:
            raise self.error
        return self.body


def sample_payload(**overrides: Any) -> Dict[str, Any]:
    """Minimal yt-dlp style payload with one audio and one muxed format"""
    payload = {
        "title": "My Video!",
        "thumbnail": "https://i.example.com/thumb.jpg",
        "url": "U0",
        "formats": [
            {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "aac", "format_note": "medium", "url": "U1"},
            {"format_id": "18", "ext": "mp4", "vcodec": "h264", "acodec": "aac", "width": 640, "height": 360, "url": "U2"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True)
def no_ssrf_lookups(monkeypatch):
    """Tests use made-up hosts; DNS-based checks are enabled per test"""
    monkeypatch.setattr(config.security, "enable_ssrf_protection", False)


@pytest.fixture
def metadata_resolver():
    return FakeMetadataResolver(sample_payload())


@pytest.fixture
def upstream():
    return FakeUpstreamBody([b"abc", b"def"], headers={"content-length": "6"})


@pytest.fixture
def fetcher(upstream):
    return FakeStreamFetcher(upstream)


@pytest_asyncio.fixture
async def client(metadata_resolver, fetcher):
    app.dependency_overrides[get_format_resolver] = lambda: FormatResolver(metadata_resolver, retries=0)
    app.dependency_overrides[get_stream_relay] = lambda: StreamRelay(fetcher, chunk_size=1024)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
