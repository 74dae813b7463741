"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests,
including an in-process fake Raito server.
"""

import asyncio
import json
import socket
from collections import deque
from contextlib import asynccontextmanager, closing
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Deque, Dict, List, Optional

import pytest
import pytest_asyncio
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from raito import ConnectionOptions, Raito
from raito.protocol.codec import ProtocolCodec


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true or fail the test."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            pytest.fail("condition not met in time")
        await asyncio.sleep(0.01)


# ============================================================================
# Fake Server
# ============================================================================

class FakeRaitoServer:
    """
    Minimal Raito server for exercising the client.

    Stores records in memory, checks the password on auth and records every
    frame it receives. Tests can script replies or silence it.

    Attributes:
        password: Required password (None accepts any password)
        records: key -> record dict as sent on the wire
        received: Every decoded frame, in arrival order
        replies: Scripted replies used before normal handling; a None entry
            swallows one frame without answering
        silent: When True, frames are recorded but never answered
    """

    def __init__(self, password: Optional[str] = None):
        self.password = password
        self.records: Dict[str, Dict[str, Any]] = {}
        self.received: List[Dict[str, Any]] = []
        self.replies: Deque[Any] = deque()
        self.silent = False
        self.connections: List[ServerConnection] = []

    @property
    def commands(self) -> List[str]:
        """Names of the commands received so far."""
        return [frame.get("command") for frame in self.received]

    async def handler(self, connection: ServerConnection) -> None:
        self.connections.append(connection)
        state = {"authenticated": False}

        try:
            async for raw in connection:
                frame = json.loads(raw)
                self.received.append(frame)

                if self.replies:
                    reply = self.replies.popleft()
                    if reply is not None:
                        await connection.send(reply if isinstance(reply, str) else json.dumps(reply))
                    continue

                if self.silent:
                    continue

                await connection.send(json.dumps(self.respond(frame, state)))
        except ConnectionClosed:
            pass

    def respond(self, frame: Dict[str, Any], state: Dict[str, bool]) -> Dict[str, Any]:
        command = frame.get("command")
        args = frame.get("args", [])

        if command == "auth":
            if self.password is None or args[:1] == [self.password]:
                state["authenticated"] = True
                return {"success": True}
            return {"success": False, "error": "Invalid password"}

        if not state["authenticated"]:
            return {"error": "Not authenticated"}

        if command == "get":
            record = self.records.get(args[0])
            return {"success": True, "data": record} if record else {"success": True}

        if command == "set":
            key, data = args[0], args[1]
            self.records[key] = {
                "key": key,
                "data": data,
                "createdAt": datetime.now(timezone.utc).isoformat(),
                "ttl": int(args[2]) if len(args) > 2 else None,
            }
            return {"success": True}

        if command == "clear-cache":
            self.records.pop(args[0], None)
            return {"success": True}

        return {"error": f"Unknown command: {command}"}

    async def drop_connections(self) -> None:
        """Close every client connection from the server side."""
        for connection in self.connections:
            await connection.close()


@asynccontextmanager
async def run_fake_server(port: int, password: Optional[str] = None):
    fake = FakeRaitoServer(password=password)
    async with serve(fake.handler, '127.0.0.1', port):
        yield fake


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[FakeRaitoServer, None]:
    """Fake server that accepts any password."""
    async with run_fake_server(server_port) as fake:
        yield fake


@pytest_asyncio.fixture
async def secured_server(server_port: int) -> AsyncGenerator[FakeRaitoServer, None]:
    """Fake server that requires the password 'secret'."""
    async with run_fake_server(server_port, password="secret") as fake:
        yield fake


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def client_factory(server_port: int):
    """
    Factory fixture to create clients pointed at the test server.

    Clients are shut down after the test.

    Usage:
        async def test_something(server, client_factory):
            client = client_factory(password="secret")
            await client.set("k", "v")
    """
    clients: List[Raito] = []

    def factory(**overrides) -> Raito:
        params = {
            "host": '127.0.0.1',
            "port": server_port,
            "connect_timeout": 2.0,
            "request_timeout": 2.0,
        }
        params.update(overrides)
        client = Raito(ConnectionOptions(**params))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.shutdown()


@pytest_asyncio.fixture
async def client(server: FakeRaitoServer, client_factory) -> Raito:
    """An authenticated client connected to the fake server."""
    cache = client_factory()
    await cache.ensure_connected()
    return cache


@pytest.fixture
def wait_until():
    """Coroutine function polling a predicate; fails the test on timeout."""
    return _wait_until


@pytest.fixture
def codec() -> ProtocolCodec:
    """Create a ProtocolCodec instance."""
    return ProtocolCodec()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that talk to the fake server"
    )
