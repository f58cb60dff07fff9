"""
Pytest configuration and fixtures.
"""

import asyncio
import inspect
import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from spicebite.api.http_client import AuthenticatedClient
from spicebite.chat.transport import ChatTransport
from spicebite.config import Settings
from spicebite.core.errors import ChatUnavailable
from spicebite.schemas.auth import TokenPair
from spicebite.storage.local_store import LocalStore
from spicebite.storage.profile_cache import ProfileCache
from spicebite.storage.token_store import TokenStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Setup test environment variables."""

    test_env = {
        "SPICEBITE_API_BASE_URL": "http://testserver",
        "SPICEBITE_WS_BASE_URL": "ws://testserver",
        "SPICEBITE_LOG_LEVEL": "DEBUG",
    }

    for key, value in test_env.items():
        os.environ[key] = value

    yield

    # Cleanup
    for key in test_env:
        os.environ.pop(key, None)


# ----------------------------------------------------------------------
# Fake backend
# ----------------------------------------------------------------------

Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


class MockBackend:
    """
    Route table for httpx.MockTransport.

    Routes map (method, path) to a response or a handler taking the request.
    Handlers may be async and may raise httpx transport errors.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, route: Route) -> None:
        self.routes[(method.upper(), path)] = route

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not found."})

        if not callable(route):
            return route

        result = route(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper() and request.url.path == path
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        API_BASE_URL="http://testserver",
        WS_BASE_URL="ws://testserver",
        STORAGE_PATH=str(tmp_path / "storage.json"),
    )


@pytest.fixture
def backend() -> MockBackend:
    return MockBackend()


@pytest.fixture
def http(backend, test_settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=test_settings.API_BASE_URL,
        transport=httpx.MockTransport(backend.handler),
    )


@pytest.fixture
def local_store(test_settings) -> LocalStore:
    return LocalStore(test_settings.STORAGE_PATH)


@pytest.fixture
def token_store(local_store) -> TokenStore:
    return TokenStore(local_store)


@pytest.fixture
def profile_cache(local_store) -> ProfileCache:
    return ProfileCache(local_store)


@pytest.fixture
def stored_tokens(token_store) -> TokenPair:
    pair = TokenPair(access_token="stale-access", refresh_token="refresh-1")
    token_store.save(pair)
    return pair


@pytest.fixture
def client(token_store, http, test_settings) -> AuthenticatedClient:
    return AuthenticatedClient(token_store, http=http, config=test_settings)


# ----------------------------------------------------------------------
# Fake realtime transport
# ----------------------------------------------------------------------


class FakeTransport(ChatTransport):
    """In-memory chat channel; tests push frames with push()."""

    def __init__(self, *, fail_connect: bool = False, fail_send: bool = False):
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.connected_url: Optional[str] = None
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self._queue: Optional[asyncio.Queue] = None

    async def connect(self, url: str) -> None:
        if self.fail_connect:
            raise ChatUnavailable("Could not open chat channel")
        self.connected_url = url
        self.closed = False
        self._queue = asyncio.Queue()

    async def send_json(self, payload: Dict[str, Any]) -> None:
        if self.fail_send:
            raise ChatUnavailable("Failed to send chat frame")
        self.sent.append(payload)

    async def receive(self):
        while True:
            payload = await self._queue.get()
            if payload is None:
                return
            yield payload

    async def close(self) -> None:
        self.closed = True

    def push(self, payload: Dict[str, Any]) -> None:
        self._queue.put_nowait(payload)

    def hang_up(self) -> None:
        self._queue.put_nowait(None)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


async def settle(rounds: int = 5) -> None:
    """Let background tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def run_pending():
    return settle
