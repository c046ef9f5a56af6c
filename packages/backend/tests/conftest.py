"""Test fixtures — fake sockets, a controllable clock, and app clients.

Learn: Testing pattern for the realtime core:

1. Unit tests drive RealtimeService / NotificationService directly with
   FakeWebSocket objects, which record every frame written to them and
   expose the same client_state/application_state as Starlette's WebSocket.
2. A FakeClock replaces time.monotonic so liveness tests can "wait" 61
   seconds instantly.
3. HTTP tests go through httpx.AsyncClient + ASGITransport, and WebSocket
   endpoint tests through Starlette's TestClient. Each test gets a fresh
   app from create_app(), so no connection state leaks between tests.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient
from starlette.websockets import WebSocketState

from fanclub.auth.jwt import create_access_token
from fanclub.main import create_app
from fanclub.realtime.notifications import NotificationService
from fanclub.realtime.service import RealtimeService


class FakeWebSocket:
    """Stand-in for starlette.websockets.WebSocket that records sent frames."""

    def __init__(self, fail_on_send: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_on_send = fail_on_send
        self.sent: list[str] = []
        self.close_code = None
        self.close_reason = None

    async def send_text(self, data: str) -> None:
        if self.fail_on_send:
            raise RuntimeError("socket write failed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.application_state = WebSocketState.DISCONNECTED
        self.close_code = code
        self.close_reason = reason

    def drop(self) -> None:
        """Simulate the client vanishing without a close handshake."""
        self.client_state = WebSocketState.DISCONNECTED

    def messages(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    def of_type(self, message_type: str) -> list[dict]:
        return [m for m in self.messages() if m["type"] == message_type]

    def clear(self) -> None:
        self.sent.clear()


class FakeClock:
    """Monotonic clock the test can move forward."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def make_socket():
    def _make(**kwargs) -> FakeWebSocket:
        return FakeWebSocket(**kwargs)
    return _make


@pytest.fixture()
def realtime(clock):
    return RealtimeService(clock=clock)


@pytest.fixture()
def notifications(clock):
    return NotificationService(clock=clock)


@pytest.fixture()
def token():
    """Factory for valid access tokens."""
    def _token(user_id: str) -> str:
        return create_access_token(user_id)
    return _token


@pytest.fixture()
def app():
    return create_app()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to a fresh app instance."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def ws_client(app):
    """Sync TestClient for WebSocket endpoints (runs the app lifespan).

    Learn: Inside the `with` block the client owns one event loop portal;
    WebSocket sessions run on it, and tests use ws_client.portal.call()
    to invoke async service methods on that same loop.
    """
    with TestClient(app) as tc:
        yield tc
