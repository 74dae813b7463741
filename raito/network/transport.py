"""
WebSocket Transport Module

This module owns the single persistent connection between a client and the
Raito server. It reports lifecycle transitions through callbacks:

    on_open()              the socket is open and ready for the handshake
    on_message(payload)    one inbound frame (str or bytes)
    on_close(reason)       the socket closed or never opened; fires exactly once

The transport only moves frames; correlating replies with requests is the
job of the layers above.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Union

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ..exceptions import RaitoConnectionError

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]


class TransportState(Enum):
    """Lifecycle of a transport."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class WebSocketTransport:
    """
    One outbound WebSocket connection, driven by a background task.

    Usage:
        transport = WebSocketTransport(
            "ws://localhost:9180",
            on_open=..., on_message=..., on_close=...,
        )
        transport.start()          # requires a running event loop
        await transport.send('{"command": "get", "args": ["k"]}')
        await transport.close()

    Attributes:
        url: The ws:// URL to connect to
        open_timeout: Seconds allowed for the opening handshake (None = no limit)
        state: Current TransportState
    """

    def __init__(
            self,
            url: str,
            on_open: Callable[[], None],
            on_message: Callable[[Payload], None],
            on_close: Callable[[Optional[BaseException]], None],
            open_timeout: Optional[float] = None,
    ):
        self.url = url
        self.open_timeout = open_timeout
        self.state = TransportState.IDLE

        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close

        self._connection: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self.state is TransportState.OPEN

    def start(self) -> None:
        """
        Begin connecting in the background.

        Idempotent. Must be called with a running event loop.
        """
        if self.state is not TransportState.IDLE:
            return

        loop = asyncio.get_running_loop()
        self.state = TransportState.CONNECTING
        logger.debug(f"Connecting to {self.url}")
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        """Open the socket, then pump inbound frames until it closes."""
        reason: Optional[BaseException] = None

        try:
            async with connect(self.url, open_timeout=self.open_timeout) as connection:
                self._connection = connection
                self.state = TransportState.OPEN
                logger.info(f"Connected to {self.url}")
                self._on_open()

                async for payload in connection:
                    self._on_message(payload)

        except ConnectionClosed as exc:
            logger.debug(f"Connection to {self.url} closed abnormally: {exc}")
            reason = exc
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as exc:
            logger.warning(f"Could not connect to {self.url}: {exc}")
            reason = exc
        except asyncio.CancelledError:
            logger.debug(f"Connection attempt to {self.url} cancelled")
            raise
        except Exception as exc:
            logger.exception(f"Unexpected transport error on {self.url}: {exc}")
            reason = exc
        finally:
            self._finish(reason)

    def _finish(self, reason: Optional[BaseException]) -> None:
        """Enter the terminal state and notify on_close once."""
        if self.state is TransportState.CLOSED:
            return

        self._connection = None
        self.state = TransportState.CLOSED
        logger.info(f"Connection to {self.url} closed")
        self._on_close(reason)

    async def send(self, payload: Payload) -> None:
        """
        Write one frame.

        Raises:
            RaitoConnectionError: If the transport is not open
        """
        connection = self._connection
        if self.state is not TransportState.OPEN or connection is None:
            raise RaitoConnectionError(f"Connection to {self.url} is not open")

        try:
            await connection.send(payload)
        except ConnectionClosed as exc:
            raise RaitoConnectionError(f"Connection to {self.url} lost: {exc}") from exc

    async def close(self) -> None:
        """
        Close the connection.

        Cancels a pending connection attempt or closes an open socket and
        waits for on_close to fire. No-op once closed.
        """
        if self.state is TransportState.CLOSED:
            return

        task = self._task
        if self.state is TransportState.CONNECTING and task is not None:
            task.cancel()
        elif self._connection is not None:
            await self._connection.close()

        if task is not None and task is not asyncio.current_task():
            await asyncio.wait({task})

        # a task cancelled before its first step never reaches _run's finally
        self._finish(None)
