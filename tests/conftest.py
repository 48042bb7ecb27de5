import asyncio

import pytest

from lobby.protocol import SessionProtocol
from lobby.state import Connection, Registry
from main import create_app


class FakeSocket:
    """Stands in for an aiohttp WebSocketResponse."""

    def __init__(self, broken: bool = False):
        self.closed = False
        self.broken = broken
        self.sent = []
        self.pings = 0
        self.close_code = None
        self.close_calls = 0
        self.close_reason = None

    async def send_str(self, data):
        if self.closed or self.broken:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self, *, code=1000, message=b""):
        self.close_calls += 1
        self.closed = True
        await asyncio.sleep(0)
        self.close_code = code
        self.close_reason = message.decode("utf-8")

    async def ping(self, message=b""):
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.pings += 1


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def protocol(registry):
    return SessionProtocol(registry)


@pytest.fixture
def make_conn():
    def _make(room="f355", address="10.0.0.1", username=None, broken=False):
        conn = Connection(FakeSocket(broken=broken), room, address)
        conn.username = username
        return conn
    return _make


@pytest.fixture
def app():
    return create_app(rooms=("f355", "maxspeed"), heartbeat_interval=3600)


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)


@pytest.fixture
def join(client):
    """Connect to *room*, join as *name* and return (ws, userlist reply)"""
    async def _join(room, name, **kwargs):
        ws = await client.ws_connect("/" + room, **kwargs)
        await ws.send_str(f"join {name}")
        reply = await ws.receive_str(timeout=1)
        return ws, reply
    return _join


async def assert_silent(ws, timeout=0.2):
    with pytest.raises(asyncio.TimeoutError):
        await ws.receive(timeout=timeout)
