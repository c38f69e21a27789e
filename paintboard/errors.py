"""Error taxonomy for the paintboard client."""

from __future__ import annotations

from typing import Optional


class PaintboardError(RuntimeError):
    """Base error for paintboard client operations."""


class CredentialError(PaintboardError):
    """Raised when the credential exchange fails or returns malformed data."""


class ProtocolDesyncError(PaintboardError):
    """Raised when an inbound transmission cannot be decoded past some offset."""

    def __init__(self, message: str, *, offset: int, opcode: Optional[int] = None) -> None:
        super().__init__(message)
        self.offset = offset
        self.opcode = opcode


class RequestTimeout(PaintboardError):
    """Raised when no paint result arrives within the request timeout."""

    def __init__(self, request_id: int) -> None:
        super().__init__(f"paint timeout id={request_id}")
        self.request_id = request_id


class UnknownOutcome(PaintboardError):
    """Raised when the server answers with an outcome code outside the known set."""

    def __init__(self, request_id: int, code: int) -> None:
        super().__init__(f"paint returned failure code=0x{code:02x} id={request_id}")
        self.request_id = request_id
        self.code = code


class TransportError(PaintboardError):
    """Raised when the socket is unavailable or a send fails."""


class ClientClosed(TransportError):
    """Raised to callers once the client has been stopped."""


class RetriesExhausted(PaintboardError):
    """Raised when paint() used up its attempt budget."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"paint failed after {attempts} attempts{detail}")
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "PaintboardError",
    "CredentialError",
    "ProtocolDesyncError",
    "RequestTimeout",
    "UnknownOutcome",
    "TransportError",
    "ClientClosed",
    "RetriesExhausted",
]
