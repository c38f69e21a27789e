"""State tracking for the paint socket connection."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


class ConnectionState(enum.Enum):
    """Lifecycle of the single transport session."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    CLOSING = "CLOSING"


@dataclass
class ConnectionTracker:
    """In-memory connection metadata."""

    state: ConnectionState = ConnectionState.CLOSED
    opened_count: int = 0
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: ConnectionState) -> None:
        """Move the connection into a new state, validating allowed transitions."""

        if not self._is_valid_transition(self.state, next_state):
            raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)
        if next_state is ConnectionState.OPEN:
            self.opened_count += 1

    @staticmethod
    def _is_valid_transition(current: ConnectionState, nxt: ConnectionState) -> bool:
        allowed = {
            ConnectionState.CLOSED: {ConnectionState.OPEN, ConnectionState.CLOSING},
            ConnectionState.OPEN: {ConnectionState.CLOSED, ConnectionState.CLOSING},
            ConnectionState.CLOSING: {ConnectionState.CLOSED},
        }
        return nxt in allowed.get(current, set())
