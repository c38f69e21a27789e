"""Wire protocol for the paint socket."""

from .codec import (
    HEARTBEAT_PONG,
    credential_bytes,
    decode_paint_frame,
    encode_paint,
    encode_paint_result,
    iter_frames,
)
from .frames import (
    FrameEvent,
    HeartbeatPing,
    Outcome,
    PaintRequest,
    PaintResult,
    next_request_id,
)

__all__ = [
    "HEARTBEAT_PONG",
    "credential_bytes",
    "decode_paint_frame",
    "encode_paint",
    "encode_paint_result",
    "iter_frames",
    "FrameEvent",
    "HeartbeatPing",
    "Outcome",
    "PaintRequest",
    "PaintResult",
    "next_request_id",
]
