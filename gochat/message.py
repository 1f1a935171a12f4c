"""Frames exchanged over the chat websocket and route definitions."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

_ZERO_TIME_TEXT = "0001-01-01T00:00:00Z"
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_FRACTION = re.compile(r"\.(\d+)")


class FrameType(enum.IntEnum):
    """Kind of a websocket frame."""

    DATA = 0x0
    PING = 0x1
    ACK = 0x2
    NO_ACK = 0x3
    ERR = 0x9


def _format_time(value: datetime | None) -> str:
    if value is None:
        return _ZERO_TIME_TEXT
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def _parse_time(text: str | None) -> datetime | None:
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value == _ZERO_TIME:
        return None
    return value


@dataclass
class Message:
    """A single websocket frame."""

    frame_type: FrameType = FrameType.DATA
    id: str = ""
    ack_seq: int = 0
    ack_time: datetime | None = None
    err_count: int = 0
    method: str = ""
    from_id: str = ""
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the frame as a JSON-ready mapping."""
        return {
            "frameType": int(self.frame_type),
            "id": self.id,
            "ackSeq": self.ack_seq,
            "ackTime": _format_time(self.ack_time),
            "errCount": self.err_count,
            "method": self.method,
            "fromId": self.from_id,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Build a frame from a decoded JSON mapping; missing keys take defaults."""
        if not isinstance(data, dict):
            raise ValueError("message must be a JSON object")
        return cls(
            frame_type=FrameType(int(data.get("frameType") or 0)),
            id=data.get("id") or "",
            ack_seq=int(data.get("ackSeq") or 0),
            ack_time=_parse_time(data.get("ackTime")),
            err_count=int(data.get("errCount") or 0),
            method=data.get("method") or "",
            from_id=data.get("fromId") or "",
            data=data.get("data"),
        )

    def to_json(self) -> str:
        """Serialise the frame to JSON text."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str | bytes) -> "Message":
        """Parse a frame from JSON text."""
        return cls.from_dict(json.loads(text))


HandlerFunc = Callable[..., Any]


@dataclass(frozen=True)
class Route:
    """Binds a method name to the handler that serves it."""

    method: str
    handler: HandlerFunc


def new_message(from_id: str, data: Any) -> Message:
    """Create a data frame sent on behalf of ``from_id``."""
    return Message(frame_type=FrameType.DATA, from_id=from_id, data=data)


def new_err_message(err: BaseException | str) -> Message:
    """Create an error frame carrying the error text."""
    return Message(frame_type=FrameType.ERR, data=str(err))