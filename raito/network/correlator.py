"""
Request/Response Correlator Module

The Raito protocol carries no request id: the server answers commands in the
order it receives them over the single connection. The correlator keeps a
FIFO queue of pending requests whose order always matches the order frames
were written, and hands each inbound frame to the oldest pending request.

Requests that time out or are cancelled keep their place in the queue, so
their late response is consumed and discarded instead of being delivered to
the next caller.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, Union

from ..exceptions import RaitoProtocolError, RaitoResultError, RaitoTimeoutError
from ..protocol.codec import ProtocolCodec
from ..protocol.messages import CacheRecord, WsMessage, WsResult

logger = logging.getLogger(__name__)


class RequestCorrelator:
    """
    Matches inbound results to outbound commands.

    Args:
        send: Coroutine function that writes one frame to the transport
        codec: ProtocolCodec used for both directions
    """

    def __init__(
            self,
            send: Callable[[str], Awaitable[None]],
            codec: Optional[ProtocolCodec] = None,
    ):
        self._send = send
        self.codec = codec if codec is not None else ProtocolCodec()
        self._pending: Deque[asyncio.Future] = deque()
        self._send_lock = asyncio.Lock()

    @property
    def pending_count(self) -> int:
        """Number of requests still waiting for (or owed) a response."""
        return len(self._pending)

    async def request(
            self,
            message: WsMessage,
            timeout: Optional[float] = None,
    ) -> WsResult:
        """
        Send a command and wait for its result.

        Args:
            message: The command to send
            timeout: Seconds to wait for the response (None = no limit)

        Returns:
            The decoded WsResult, whatever its outcome

        Raises:
            RaitoTimeoutError: If no response arrives in time
            RaitoProtocolError: If the response cannot be decoded
            RaitoConnectionError: If the connection is lost
        """
        payload = self.codec.encode_message(message)
        future = asyncio.get_running_loop().create_future()

        # queue position and frame order must agree
        async with self._send_lock:
            self._pending.append(future)
            try:
                await self._send(payload)
            except BaseException:
                if future in self._pending:
                    self._pending.remove(future)
                raise

        logger.debug(f"Sent '{message.command.value}' ({len(self._pending)} pending)")

        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise RaitoTimeoutError(
                f"No response to '{message.command.value}' within {timeout}s"
            ) from None

    async def call(
            self,
            message: WsMessage,
            timeout: Optional[float] = None,
    ) -> Optional[CacheRecord]:
        """
        Send a command and interpret its result.

        Returns:
            The record carried by the response, or None when it has none

        Raises:
            RaitoResultError: If the server answered with an error
            RaitoProtocolError: If the response reports neither error nor success
        """
        result = await self.request(message, timeout)

        if result.is_error:
            raise RaitoResultError(result.error)
        if result.success:
            return result.data
        raise RaitoProtocolError(
            f"Response to '{message.command.value}' has neither error nor success"
        )

    def feed(self, payload: Union[str, bytes]) -> None:
        """Deliver one inbound frame to the oldest pending request."""
        if not self._pending:
            logger.warning("Dropping unsolicited message from server")
            return

        future = self._pending.popleft()
        if future.done():
            logger.debug("Discarding response to an abandoned request")
            return

        try:
            result = self.codec.decode_result(payload)
        except RaitoProtocolError as exc:
            future.set_exception(exc)
        except Exception as exc:
            # the slot is already popped; its caller must still hear back
            logger.exception(f"Could not decode response: {exc}")
            future.set_exception(RaitoProtocolError(f"Could not decode response: {exc}"))
        else:
            future.set_result(result)

    def fail_all(self, exc: BaseException) -> None:
        """Reject every pending request with exc."""
        while self._pending:
            future = self._pending.popleft()
            if not future.done():
                future.set_exception(exc)
