"""Acknowledgement modes for the chat websocket server."""

from __future__ import annotations

import enum


class AckType(enum.IntEnum):
    """How strictly incoming frames must be acknowledged."""

    NO_ACK = 0
    ONLY_ACK = 1
    RIGOR_ACK = 2

    def __str__(self) -> str:
        return _NAMES[self]


_NAMES = {
    AckType.NO_ACK: "NoAck",
    AckType.ONLY_ACK: "OnlyAck",
    AckType.RIGOR_ACK: "RigorAck",
}