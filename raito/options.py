"""
Connection Options

Normalizes the forms accepted by the client constructor into a single
ConnectionOptions value:

    None                              -> ConnectionOptions()
    7180                              -> ConnectionOptions(port=7180)
    "raito://host:9180?ttl=5000"      -> ConnectionOptions(host="host", port=9180, ttl=5000)
    ConnectionOptions(...) / dict     -> passed through
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Union

from .config.settings import settings
from .exceptions import RaitoConnectionError

CONNECTION_STRING_PATTERN = re.compile(
    r"^raito://(?P<host>[^:/?#\s]+):(?P<port>\d+)(?:\?ttl=(?P<ttl>\d+))?$"
)


@dataclass(frozen=True)
class ConnectionOptions:
    """
    Resolved connection configuration.

    Unset fields fall back to the values in settings when the client
    connects.

    Attributes:
        host: Server hostname
        port: Server port
        ttl: Default time-to-live for set(), in milliseconds
        password: Password sent during the authentication handshake
        connect_timeout: Seconds to wait for an authenticated connection
        request_timeout: Seconds to wait for each response
    """
    host: Optional[str] = None
    port: Optional[int] = None
    ttl: Optional[int] = None
    password: Optional[str] = None
    connect_timeout: Optional[float] = None
    request_timeout: Optional[float] = None

    @property
    def url(self) -> str:
        """WebSocket URL of the server, with defaults applied."""
        host = self.host or settings.HOST
        port = self.port or settings.PORT
        return f"{settings.SCHEME}://{host}:{port}"


RaitoOptions = Union[None, int, str, ConnectionOptions, Dict[str, Any]]


def parse_connection_string(value: str) -> ConnectionOptions:
    """
    Parse a raito:// connection string.

    Raises:
        RaitoConnectionError: If the string does not match
            raito://<host>:<port>[?ttl=<ms>]
    """
    match = CONNECTION_STRING_PATTERN.match(value.strip())
    if not match:
        raise RaitoConnectionError("Invalid connection string format")

    ttl = match.group("ttl")
    return ConnectionOptions(
        host=match.group("host"),
        port=int(match.group("port")),
        ttl=int(ttl) if ttl is not None else None,
    )


def resolve_options(value: RaitoOptions = None) -> ConnectionOptions:
    """
    Resolve constructor input into ConnectionOptions.

    Args:
        value: A port number, a connection string, a ConnectionOptions
            instance, a dict of ConnectionOptions fields, or None

    Returns:
        The resolved ConnectionOptions

    Raises:
        RaitoConnectionError: For malformed connection strings or unknown
            option names
        TypeError: For any other input type
    """
    if value is None:
        return ConnectionOptions()

    if isinstance(value, ConnectionOptions):
        return value

    # bool is an int subclass but never a port
    if isinstance(value, int) and not isinstance(value, bool):
        return ConnectionOptions(port=value)

    if isinstance(value, str):
        return parse_connection_string(value)

    if isinstance(value, dict):
        known = {f.name for f in fields(ConnectionOptions)}
        unknown = sorted(set(value) - known)
        if unknown:
            raise RaitoConnectionError(f"Unknown connection options: {', '.join(unknown)}")
        return ConnectionOptions(**value)

    raise TypeError(f"Unsupported options type: {type(value).__name__}")
