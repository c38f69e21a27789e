"""Async protocol client for the shared paintboard canvas."""

from paintboard.client import PaintClient, PaintOutcome
from paintboard.config import PaintboardSettings, get_settings
from paintboard.credentials import CredentialService
from paintboard.errors import (
    ClientClosed,
    CredentialError,
    PaintboardError,
    ProtocolDesyncError,
    RequestTimeout,
    RetriesExhausted,
    TransportError,
    UnknownOutcome,
)
from paintboard.protocol import Outcome

__all__ = [
    "PaintClient",
    "PaintOutcome",
    "PaintboardSettings",
    "get_settings",
    "CredentialService",
    "Outcome",
    "PaintboardError",
    "CredentialError",
    "ProtocolDesyncError",
    "RequestTimeout",
    "UnknownOutcome",
    "TransportError",
    "ClientClosed",
    "RetriesExhausted",
]
