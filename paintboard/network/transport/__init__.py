"""Transports for the paint socket."""

from paintboard.network.transport.base import BaseTransport
from paintboard.network.transport.dummy import DummyTransport
from paintboard.network.transport.websocket import WebSocketTransport

__all__ = ["BaseTransport", "DummyTransport", "WebSocketTransport"]
