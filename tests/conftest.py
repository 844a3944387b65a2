"""Shared fixtures: a scripted fake backend behind httpx.MockTransport and a wired AreaClient."""

import json
import os
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio

BASE_URL = "http://backend.test"

# The module-level settings need a backend URL at import time.
os.environ.setdefault("AREA_API_URL", BASE_URL)

from area_client.client import AreaClient  # noqa: E402
from area_client.config import Settings  # noqa: E402
from area_client.storage import CredentialStore, Credentials, MemoryStorage  # noqa: E402

NOW = 1_700_000_000_000  # ms epoch
HOUR_MS = 3_600_000

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], Exception]


def envelope(data: Any = None, **fields) -> Dict[str, Any]:
    body = {"success": True, **fields}
    if data is not None:
        body["data"] = data
    return body


def failure(message: str = None, **fields) -> Dict[str, Any]:
    body = {"success": False, **fields}
    if message is not None:
        body["message"] = message
    return body


class FakeBackend:
    """
    Routes (method, path) to canned replies and records every request.

    A reply may be an httpx.Response, a callable taking the request, or an
    exception to raise from the transport.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Reply] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, reply: Reply = None, status_code: int = 200, body: Any = None):
        if reply is None:
            def reply(request, status_code=status_code, body=body):
                if body is None:
                    return httpx.Response(status_code)
                return httpx.Response(status_code, json=body)
        self.routes[(method, path)] = reply
        return self

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, json=failure("Not found"))
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply


def body_of(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


class Clock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def settings():
    return Settings(AREA_API_URL=BASE_URL, _env_file=None)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def credentials():
    return Credentials(
        access_token="t1",
        refresh_token="r1",
        user={"id": 1, "email": "a@b.com"},
        token_expiry=NOW + HOUR_MS,
    )


@pytest.fixture
def logged_in_storage(storage, credentials):
    CredentialStore(storage).save(credentials)
    return storage


def make_client(settings, backend, storage, clock) -> AreaClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    return AreaClient(settings, storage=storage, http_client=http_client, clock=clock)


@pytest_asyncio.fixture
async def client(settings, backend, storage, clock):
    area = make_client(settings, backend, storage, clock)
    yield area
    await area.dispatcher.client.aclose()


@pytest_asyncio.fixture
async def logged_in_client(settings, backend, logged_in_storage, clock):
    area = make_client(settings, backend, logged_in_storage, clock)
    yield area
    await area.dispatcher.client.aclose()
