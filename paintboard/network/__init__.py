"""Network stack (transport/batching/correlation/connection) for the paint socket."""

from paintboard.network.batch import BatchScheduler
from paintboard.network.connection import Connection
from paintboard.network.pending import PendingEntry, PendingTable
from paintboard.network.state import ConnectionState, ConnectionTracker
from paintboard.network.transport import BaseTransport, DummyTransport, WebSocketTransport

__all__ = [
    "BatchScheduler",
    "Connection",
    "ConnectionState",
    "ConnectionTracker",
    "PendingEntry",
    "PendingTable",
    "BaseTransport",
    "DummyTransport",
    "WebSocketTransport",
]
