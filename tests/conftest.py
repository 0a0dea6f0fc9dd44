import json
from typing import Any, Dict, Optional

import pytest

from streamhub import constants
from streamhub.models import CanonicalStream, Locator, ParsedFile, Service, SourceConfig
from streamhub.services import CacheRegistry


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeResponse:
    """Async context manager standing in for an aiohttp response."""

    def __init__(self, status: int = 200, data: Any = None):
        self.status = status
        self.data = data

    async def json(self, content_type: Optional[str] = None):
        if isinstance(self.data, Exception):
            raise self.data
        return self.data

    async def text(self):
        return json.dumps(self.data)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """In-memory stand-in for aiohttp.ClientSession.

    Routes map a url (without query string) to a FakeResponse, an exception
    to raise, or a list of those consumed one call at a time.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls = []

    def _respond(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.routes.get(url)
        if isinstance(response, list):
            response = response.pop(0)
        if response is None:
            response = FakeResponse(404, {"error": "not found"})
        if isinstance(response, BaseException):
            raise response
        return response

    def get(self, url: str, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self._respond("POST", url, **kwargs)

    async def close(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return CacheRegistry(max_size=100, clock=clock)


@pytest.fixture
def source_config():
    return SourceConfig(id="torrentio", name="Torrentio", manifest_url="https://torrentio.example.com/manifest.json")


@pytest.fixture
def make_record():
    """Factory for canonical records with sensible defaults per kind."""

    def _make(
        id: str = "r1",
        kind: str = constants.P2P,
        source_id: str = "src",
        service: Optional[str] = None,
        cached: bool = False,
        url: Optional[str] = None,
        info_hash: Optional[str] = None,
        tags: Optional[Dict[str, Any]] = None,
        **fields,
    ) -> CanonicalStream:
        if kind == constants.P2P:
            locator = Locator(info_hash=info_hash or f"hash{id}", file_idx=0)
        else:
            locator = Locator(url=url or f"https://cdn.example.com/{id}.mkv")
        return CanonicalStream(
            id=id,
            source_id=source_id,
            source_name=fields.pop("source_name", source_id.title()),
            kind=kind,
            locator=locator,
            service=Service(service, cached) if service else None,
            tags=ParsedFile(**(tags or {})),
            **fields,
        )

    return _make
