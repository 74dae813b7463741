"""
Raito Client
============

Asyncio client for the Raito cache server.

Example usage:
    >>> from raito import Raito
    >>> async def main():
    ...     async with Raito("raito://localhost:9180?ttl=5000") as cache:
    ...         await cache.set("key", "value")
    ...         record = await cache.get("key")
    ...         print(record.data)
"""

from .client import ConnectionState, Raito
from .exceptions import (
    RaitoAuthenticationError,
    RaitoConnectionError,
    RaitoError,
    RaitoProtocolError,
    RaitoResultError,
    RaitoTimeoutError,
)
from .options import ConnectionOptions, resolve_options
from .protocol.messages import CacheRecord

__version__ = "0.1.0"

__all__ = [
    "CacheRecord",
    "ConnectionOptions",
    "ConnectionState",
    "Raito",
    "RaitoAuthenticationError",
    "RaitoConnectionError",
    "RaitoError",
    "RaitoProtocolError",
    "RaitoResultError",
    "RaitoTimeoutError",
    "resolve_options",
]
