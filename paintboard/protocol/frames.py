"""Wire-level constants, request model and inbound frame events."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from itertools import count
from typing import Annotated, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

OP_PAINT = 0xFE
OP_PAINT_RESULT = 0xFF
OP_HEARTBEAT_PING = 0xFC
OP_HEARTBEAT_PONG = 0xFB

# op + x(2) + y(2) + rgb(3) + owner(3) + credential(16) + request id(4)
PAINT_FRAME_SIZE = 31
# request id(4) + outcome(1), after the opcode byte
PAINT_RESULT_PAYLOAD_SIZE = 5
CREDENTIAL_SIZE = 16

MAX_OWNER_ID = (1 << 24) - 1
MAX_COORDINATE = 0xFFFF
MAX_REQUEST_ID = 0xFFFFFFFF

ColorChannel = Annotated[int, Field(ge=0, le=0xFF)]


class Outcome(enum.IntEnum):
    """Outcome codes reported by the paint result frame."""

    SUCCESS = 0xEF
    COOLDOWN = 0xEE
    STALE_CREDENTIAL = 0xED


class PaintRequest(BaseModel):
    """One paint submission, immutable once built."""

    model_config = ConfigDict(frozen=True)

    owner_id: int = Field(ge=0, le=MAX_OWNER_ID)
    credential: Optional[str] = Field(default=None, repr=False)
    x: int = Field(ge=0, le=MAX_COORDINATE)
    y: int = Field(ge=0, le=MAX_COORDINATE)
    color: tuple[ColorChannel, ColorChannel, ColorChannel]
    request_id: int = Field(ge=0, le=MAX_REQUEST_ID)


@dataclass(frozen=True)
class HeartbeatPing:
    """Server keepalive; must be answered with a pong."""


@dataclass(frozen=True)
class PaintResult:
    request_id: int
    code: int

    @property
    def outcome(self) -> Optional[Outcome]:
        try:
            return Outcome(self.code)
        except ValueError:
            return None


FrameEvent = Union[HeartbeatPing, PaintResult]

_request_ids: Iterator[int] = count(1)


def next_request_id() -> int:
    """Return the next process-wide request id, wrapped to 32 bits."""

    return next(_request_ids) & MAX_REQUEST_ID
