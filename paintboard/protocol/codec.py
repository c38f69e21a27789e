"""Binary encode/decode for the paint socket.

Outbound paint frame (31 bytes, integers little-endian):
    [0xFE][2B x][2B y][1B r][1B g][1B b][3B owner id][16B credential][4B request id]

Inbound transmissions hold zero or more frames back to back:
    [0xFC]                          heartbeat ping
    [0xFF][4B request id][1B code]  paint result

Outbound pong is the single byte 0xFB.
"""

from __future__ import annotations

import string
import struct
from typing import Iterator, Optional

from paintboard.errors import ProtocolDesyncError
from paintboard.protocol.frames import (
    CREDENTIAL_SIZE,
    OP_HEARTBEAT_PING,
    OP_HEARTBEAT_PONG,
    OP_PAINT,
    OP_PAINT_RESULT,
    PAINT_FRAME_SIZE,
    PAINT_RESULT_PAYLOAD_SIZE,
    FrameEvent,
    HeartbeatPing,
    PaintRequest,
    PaintResult,
)

HEARTBEAT_PONG = bytes([OP_HEARTBEAT_PONG])

_PAINT_HEAD = struct.Struct("<BHHBBB")
_REQUEST_ID = struct.Struct("<I")
_RESULT = struct.Struct("<IB")
_HEX_DIGITS = frozenset(string.hexdigits)


def credential_bytes(token: Optional[str]) -> bytes:
    """Render a credential string as 16 bytes.

    Hyphens are stripped and each pair of characters is read as one hex byte.
    Pairs that are not valid hex become zero and a short token is zero padded,
    so a malformed credential still encodes (the server rejects it as stale).
    """

    out = bytearray(CREDENTIAL_SIZE)
    if not token:
        return bytes(out)
    digits = str(token).replace("-", "")
    for index in range(CREDENTIAL_SIZE):
        pair = digits[index * 2 : index * 2 + 2]
        if len(pair) < 2:
            break
        if set(pair) <= _HEX_DIGITS:
            out[index] = int(pair, 16)
    return bytes(out)


def encode_paint(request: PaintRequest) -> bytes:
    """Encode a paint request into its fixed-size frame."""

    r, g, b = request.color
    return b"".join(
        (
            _PAINT_HEAD.pack(OP_PAINT, request.x, request.y, r, g, b),
            request.owner_id.to_bytes(3, "little"),
            credential_bytes(request.credential),
            _REQUEST_ID.pack(request.request_id),
        )
    )


def encode_paint_result(request_id: int, code: int) -> bytes:
    """Encode a server-side paint result frame (used by loopback transports)."""

    return bytes([OP_PAINT_RESULT]) + _RESULT.pack(request_id, code)


def iter_frames(data: bytes) -> Iterator[FrameEvent]:
    """Lazily decode every frame in one inbound transmission.

    Raises ProtocolDesyncError at the first unknown opcode or truncated frame;
    events before that point have already been yielded.
    """

    view = memoryview(data)
    offset = 0
    size = len(view)
    while offset < size:
        opcode = view[offset]
        if opcode == OP_HEARTBEAT_PING:
            offset += 1
            yield HeartbeatPing()
            continue
        if opcode == OP_PAINT_RESULT:
            end = offset + 1 + PAINT_RESULT_PAYLOAD_SIZE
            if end > size:
                raise ProtocolDesyncError(
                    f"truncated paint result at offset {offset} ({size - offset} bytes left)",
                    offset=offset,
                    opcode=opcode,
                )
            request_id, code = _RESULT.unpack_from(view, offset + 1)
            offset = end
            yield PaintResult(request_id=request_id, code=code)
            continue
        raise ProtocolDesyncError(
            f"unknown opcode 0x{opcode:02x} at offset {offset}",
            offset=offset,
            opcode=opcode,
        )


def decode_paint_frame(frame: bytes) -> PaintRequest:
    """Decode an outbound paint frame back into a request (loopback/testing aid)."""

    if len(frame) != PAINT_FRAME_SIZE or frame[0] != OP_PAINT:
        raise ProtocolDesyncError("not a paint frame", offset=0, opcode=frame[0] if frame else None)
    _, x, y, r, g, b = _PAINT_HEAD.unpack_from(frame, 0)
    owner_id = int.from_bytes(frame[8:11], "little")
    credential = frame[11:27].hex()
    (request_id,) = _REQUEST_ID.unpack_from(frame, 27)
    return PaintRequest(
        owner_id=owner_id,
        credential=credential,
        x=x,
        y=y,
        color=(r, g, b),
        request_id=request_id,
    )


__all__ = [
    "HEARTBEAT_PONG",
    "credential_bytes",
    "decode_paint_frame",
    "encode_paint",
    "encode_paint_result",
    "iter_frames",
]
