"""
Raito Client Exceptions

    RaitoError
    ├── RaitoConnectionError      transport or handshake failure
    │   └── RaitoAuthenticationError
    ├── RaitoResultError          server rejected a well-formed command
    ├── RaitoProtocolError        inbound frame could not be interpreted
    └── RaitoTimeoutError         a deadline expired
"""

import asyncio


class RaitoError(Exception):
    """Base class for all Raito client errors."""
    pass


class RaitoConnectionError(RaitoError, ConnectionError):
    """Raised when the connection cannot be established or is lost."""
    pass


class RaitoResultError(RaitoError):
    """
    Raised when the server answers a command with an error.

    Attributes:
        message: The server's error message, verbatim
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RaitoAuthenticationError(RaitoConnectionError, RaitoResultError):
    """Raised when the server rejects the authentication handshake."""

    def __init__(self, message: str = "Authentication failed"):
        RaitoResultError.__init__(self, message)


class RaitoProtocolError(RaitoError):
    """Raised for malformed or unexpected responses."""
    pass


class RaitoTimeoutError(RaitoError, asyncio.TimeoutError):
    """Raised when connecting, authenticating or a request exceeds its deadline."""
    pass
