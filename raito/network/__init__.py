"""Network module for the Raito client."""

from .correlator import RequestCorrelator
from .transport import TransportState, WebSocketTransport

__all__ = ["RequestCorrelator", "TransportState", "WebSocketTransport"]
