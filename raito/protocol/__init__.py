"""Protocol module for the Raito client."""

from .codec import ProtocolCodec
from .messages import CacheRecord, CommandType, WsMessage, WsResult

__all__ = [
    "CacheRecord",
    "CommandType",
    "WsMessage",
    "WsResult",
    "ProtocolCodec",
]
