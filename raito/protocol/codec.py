"""
Protocol Codec Module

This module handles encoding of outbound commands and decoding of
inbound results.

Wire format (one JSON object per WebSocket text frame):
    Request:  {"command": "get"|"set"|"clear-cache"|"auth", "args": [...]}
    Response: {"success"?: bool, "error"?: str, "data"?: {...}}
"""

import json
from typing import Union

from ..exceptions import RaitoProtocolError
from .messages import CacheRecord, WsMessage, WsResult


class ProtocolCodec:
    """
    JSON codec for the Raito wire protocol.

    Argument order per command:
        get          -> [key]
        set          -> [key, data, ttl?]
        clear-cache  -> [key]
        auth         -> [password]
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def encode_message(self, message: WsMessage) -> str:
        """
        Encode a command as a JSON text frame.

        Examples:
            >>> codec = ProtocolCodec()
            >>> codec.encode_message(WsMessage.get("user:1"))
            '{"command": "get", "args": ["user:1"]}'

        Raises:
            RaitoProtocolError: If an argument is not JSON serializable
        """
        try:
            return json.dumps(message.to_dict())
        except (TypeError, ValueError) as exc:
            raise RaitoProtocolError(
                f"cannot encode '{message.command.value}' command: {exc}"
            ) from exc

    def decode_result(self, payload: Union[str, bytes]) -> WsResult:
        """
        Decode an inbound frame into a WsResult.

        Args:
            payload: Raw frame from the transport (text or binary)

        Returns:
            WsResult with `data` converted to a CacheRecord when present

        Raises:
            RaitoProtocolError: If the frame is not a JSON object of the
                expected shape
        """
        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = payload.decode(self.encoding)
            except UnicodeDecodeError as exc:
                raise RaitoProtocolError("invalid encoding in response") from exc

        try:
            body = json.loads(payload)
        except (ValueError, RecursionError) as exc:
            raise RaitoProtocolError(f"invalid JSON in response: {exc}") from exc

        if not isinstance(body, dict):
            raise RaitoProtocolError("response is not a JSON object")

        error = body.get("error")
        if error is not None and not isinstance(error, str):
            error = str(error)

        data = body.get("data")
        if data is not None and not isinstance(data, dict):
            raise RaitoProtocolError("response data is not a cache record")

        return WsResult(
            success=bool(body.get("success")),
            error=error or None,
            data=CacheRecord.from_dict(data) if data is not None else None,
        )
