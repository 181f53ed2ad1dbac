"""Transports carrying protocol frames between client and host."""

from teleterm.transport.base import Transport, TransportListener
from teleterm.transport.websocket_transport import WebSocketTransport

__all__ = ["Transport", "TransportListener", "WebSocketTransport"]
