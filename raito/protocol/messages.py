"""
Protocol Message Definitions

This module defines the data structures exchanged with the Raito server:
outbound commands, inbound results and the cache records they carry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CommandType(Enum):
    """Enumeration of supported commands, valued by their wire name."""
    GET = "get"
    SET = "set"
    CLEAR = "clear-cache"
    AUTH = "auth"


@dataclass
class WsMessage:
    """
    Represents an outbound command.

    Attributes:
        command: The command to run
        args: Positional arguments; optional trailing arguments are omitted
    """
    command: CommandType
    args: List[Any] = field(default_factory=list)

    @classmethod
    def get(cls, key: str) -> "WsMessage":
        return cls(CommandType.GET, [key])

    @classmethod
    def set(cls, key: str, data: Any, ttl: Optional[int] = None) -> "WsMessage":
        args = [key, data]
        if ttl is not None:
            args.append(str(ttl))
        return cls(CommandType.SET, args)

    @classmethod
    def clear(cls, key: str) -> "WsMessage":
        return cls(CommandType.CLEAR, [key])

    @classmethod
    def auth(cls, password: Optional[str]) -> "WsMessage":
        return cls(CommandType.AUTH, [password or ""])

    def to_dict(self) -> Dict[str, Any]:
        return {"command": self.command.value, "args": list(self.args)}


@dataclass
class CacheRecord:
    """
    A cached entry as returned by the server.

    The client does not interpret these fields; they are passed through
    exactly as received.

    Attributes:
        key: The record's key
        data: The stored value
        created_at: Creation timestamp, as sent by the server
        ttl: Time-to-live the record was stored with
    """
    key: Optional[str]
    data: Any
    created_at: Any = None
    ttl: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CacheRecord":
        return cls(
            key=payload.get("key"),
            data=payload.get("data"),
            created_at=payload.get("createdAt"),
            ttl=payload.get("ttl"),
        )


@dataclass
class WsResult:
    """
    Represents an inbound response.

    Attributes:
        success: Whether the server reported success
        error: Server error message; takes precedence over success
        data: The record returned by get, if any
    """
    success: bool = False
    error: Optional[str] = None
    data: Optional[CacheRecord] = None

    @property
    def is_error(self) -> bool:
        """Check if the server rejected the command."""
        return bool(self.error)

    @property
    def is_success(self) -> bool:
        """Check if the command succeeded (an error always wins)."""
        return self.success and not self.is_error
