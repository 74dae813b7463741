"""
Raito Client Module

This module implements the asyncio client for the Raito cache server.

The client owns one WebSocket connection. As soon as the socket opens it
authenticates with the configured password; every cache operation waits
until that handshake has succeeded before its command is written.

Connection lifecycle:
    DISCONNECTED -> CONNECTING -> OPEN -> AUTHENTICATED -> CLOSED

CLOSED is terminal: a closed client never reconnects.
"""

import asyncio
import logging
import weakref
from enum import Enum
from typing import Any, Optional

from .config.settings import settings
from .exceptions import (
    RaitoAuthenticationError,
    RaitoConnectionError,
    RaitoError,
    RaitoTimeoutError,
)
from .network.correlator import RequestCorrelator
from .network.transport import TransportState, WebSocketTransport
from .options import ConnectionOptions, RaitoOptions, resolve_options
from .protocol.messages import CacheRecord, WsMessage

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection state as seen by callers."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


_TRANSPORT_STATES = {
    TransportState.IDLE: ConnectionState.DISCONNECTED,
    TransportState.CONNECTING: ConnectionState.CONNECTING,
    TransportState.CLOSED: ConnectionState.CLOSED,
}


def _deadline(value: Optional[float], default: float) -> Optional[float]:
    """Pick an explicit timeout over the default; 0 means no deadline."""
    timeout = value if value is not None else default
    return timeout if timeout and timeout > 0 else None


class Raito:
    """
    Asyncio client for the Raito cache server.

    Constructing a client inside a running event loop starts connecting
    immediately; otherwise the first operation does. Operations issued
    before the connection is authenticated wait for it.

    Usage:
        async with Raito("raito://localhost:9180?ttl=5000") as cache:
            await cache.set("user:1", "alice")
            record = await cache.get("user:1")
            print(record.data)          # "alice"
            await cache.clear("user:1")

    Attributes:
        options: The resolved ConnectionOptions
        url: WebSocket URL of the server
        connect_timeout: Seconds to wait for an authenticated connection
        request_timeout: Seconds to wait for each response
    """

    _last_instance: Optional["weakref.ReferenceType[Raito]"] = None

    def __init__(self, options: RaitoOptions = None):
        """
        Initialize the client.

        Args:
            options: Port number, raito:// connection string,
                ConnectionOptions or dict (default: localhost:9180)

        Raises:
            RaitoConnectionError: If the connection string is malformed
        """
        self.options: ConnectionOptions = resolve_options(options)
        self.url = self.options.url
        self.connect_timeout = _deadline(self.options.connect_timeout, settings.CONNECT_TIMEOUT)
        self.request_timeout = _deadline(self.options.request_timeout, settings.REQUEST_TIMEOUT)

        self._transport = WebSocketTransport(
            self.url,
            on_open=self._handle_open,
            on_message=self._handle_message,
            on_close=self._handle_close,
            open_timeout=self.connect_timeout,
        )
        self._correlator = RequestCorrelator(self._transport.send)

        self._authenticated = False
        self._ready: Optional[asyncio.Future] = None
        self._auth_task: Optional[asyncio.Task] = None

        Raito._last_instance = weakref.ref(self)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, {self.url} will connect on first use")
        else:
            self.connect()

    @classmethod
    def instance(cls) -> Optional["Raito"]:
        """Return the most recently constructed client, if still alive."""
        ref = Raito._last_instance
        return ref() if ref is not None else None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        transport_state = self._transport.state
        if transport_state is TransportState.OPEN:
            if self._authenticated:
                return ConnectionState.AUTHENTICATED
            return ConnectionState.OPEN
        return _TRANSPORT_STATES[transport_state]

    def connect(self) -> None:
        """
        Start connecting in the background.

        Idempotent, and a no-op after shutdown. Requires a running event loop.
        """
        if self._ready is None:
            self._ready = asyncio.get_running_loop().create_future()
        self._transport.start()

    async def ensure_connected(self) -> None:
        """
        Wait until the connection is authenticated.

        Raises:
            RaitoConnectionError: If the connection is closed or fails to open
            RaitoAuthenticationError: If the handshake was rejected
            RaitoTimeoutError: If the connection is not ready within
                connect_timeout
        """
        state = self.state
        if state is ConnectionState.AUTHENTICATED:
            return
        if state is ConnectionState.CLOSED:
            raise RaitoConnectionError(f"Connection to {self.url} is closed")

        self.connect()
        try:
            await asyncio.wait_for(asyncio.shield(self._ready), self.connect_timeout)
        except asyncio.TimeoutError:
            raise RaitoTimeoutError(
                f"Connection to {self.url} not ready within {self.connect_timeout}s"
            ) from None

        if self.state is not ConnectionState.AUTHENTICATED:
            raise RaitoConnectionError(f"Connection to {self.url} was lost")

    async def authenticate(self, password: Optional[str] = None) -> None:
        """
        Retry the authentication handshake on the current connection.

        Args:
            password: Password to use (default: the configured password)

        Raises:
            RaitoAuthenticationError: If the server rejects the credentials
            RaitoConnectionError: If the connection is not open
            RaitoTimeoutError: If the connection does not open in time
        """
        self.connect()

        # let the automatic handshake finish first
        if not self._ready.done():
            done, _ = await asyncio.wait({self._ready}, timeout=self.connect_timeout)
            if not done:
                raise RaitoTimeoutError(
                    f"Connection to {self.url} not open within {self.connect_timeout}s"
                )
        if not self._transport.is_open:
            raise RaitoConnectionError(f"Connection to {self.url} is not open")

        if password is None:
            password = self.options.password

        # callers arriving during the retry wait for its outcome
        if self._ready.done():
            self._ready = asyncio.get_running_loop().create_future()
        try:
            await self._authenticate(password)
        except RaitoError as exc:
            self._settle_ready(exc)
            raise
        self._settle_ready()

    async def get(self, key: str) -> Optional[CacheRecord]:
        """
        Get a record by key.

        Args:
            key: The key to retrieve

        Returns:
            The CacheRecord, or None if the key is not cached

        Raises:
            RaitoResultError: If the server rejects the command
        """
        await self.ensure_connected()
        return await self._correlator.call(WsMessage.get(key), self.request_timeout)

    async def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """
        Store a value.

        Args:
            key: The key
            data: The value; sent as-is and must be JSON serializable
            ttl: Time-to-live in milliseconds (default: the configured ttl,
                or the server's default when neither is set)
        """
        if ttl is None:
            ttl = self.options.ttl

        await self.ensure_connected()
        await self._correlator.call(WsMessage.set(key, data, ttl), self.request_timeout)

    async def clear(self, key: str) -> None:
        """Remove a key from the cache."""
        await self.ensure_connected()
        await self._correlator.call(WsMessage.clear(key), self.request_timeout)

    async def shutdown(self) -> None:
        """
        Close the connection.

        Pending operations fail with RaitoConnectionError. Safe to call
        more than once.
        """
        await self._transport.close()

        if self._auth_task is not None and not self._auth_task.done():
            await asyncio.wait({self._auth_task})

    async def _authenticate(self, password: Optional[str]) -> None:
        """Run one auth exchange and record the outcome."""
        try:
            result = await self._correlator.request(WsMessage.auth(password), self.request_timeout)
        except RaitoError:
            self._authenticated = False
            raise

        if not result.is_success:
            self._authenticated = False
            raise RaitoAuthenticationError(result.error or "Authentication failed")

        self._authenticated = True
        logger.info(f"Authenticated with {self.url}")

    async def _handshake(self) -> None:
        """Authenticate a freshly opened connection and open the gate."""
        try:
            await self._authenticate(self.options.password)
        except RaitoAuthenticationError as exc:
            logger.warning(f"Authentication with {self.url} failed: {exc}")
            self._settle_ready(exc)
        except RaitoError as exc:
            logger.debug(f"Handshake with {self.url} interrupted: {exc}")
            self._settle_ready(exc)
        else:
            self._settle_ready()

    def _settle_ready(self, exc: Optional[BaseException] = None) -> None:
        """Resolve the readiness future, replacing it if already settled."""
        if self._ready is None or self._ready.done():
            self._ready = asyncio.get_running_loop().create_future()

        if exc is None:
            self._ready.set_result(None)
        else:
            self._ready.set_exception(exc)
            # there may be no waiter yet; don't log it as never retrieved
            self._ready.exception()

    def _handle_open(self) -> None:
        self._auth_task = asyncio.get_running_loop().create_task(self._handshake())

    def _handle_message(self, payload) -> None:
        self._correlator.feed(payload)

    def _handle_close(self, reason: Optional[BaseException]) -> None:
        self._authenticated = False

        message = f"Connection to {self.url} closed"
        if reason is not None:
            message = f"{message}: {reason}"
        error = RaitoConnectionError(message)

        if self._ready is not None and not self._ready.done():
            self._settle_ready(error)
        self._correlator.fail_all(error)

    async def __aenter__(self) -> "Raito":
        await self.ensure_connected()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()
        return False

    def __repr__(self) -> str:
        return f"Raito(url={self.url!r}, state={self.state.value})"
