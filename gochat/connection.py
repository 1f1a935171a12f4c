"""A server-side websocket connection with idle tracking and an ack queue."""

from __future__ import annotations

import asyncio
import inspect
import math
import time
from typing import Any

from gochat.message import FrameType, Message
from gochat.options import DEFAULT_MAX_CONNECTION_IDLE


class Conn:
    """Wraps one accepted websocket.

    ``idle`` holds the monotonic time of the last write, or ``None`` while the
    connection is busy reading.
    """

    def __init__(
        self,
        websocket: Any,
        server: Any = None,
        max_connection_idle: float = DEFAULT_MAX_CONNECTION_IDLE,
        uid: str = "",
    ) -> None:
        self.websocket = websocket
        self.server = server
        self.uid = uid
        self.max_connection_idle = max_connection_idle
        self.idle: float | None = time.monotonic()
        self.done = asyncio.Event()
        self.read_messages: list[Message] = []
        self.read_message_seq: dict[str, Message] = {}
        self.messages: asyncio.Queue[Message] = asyncio.Queue(maxsize=1)

    @property
    def closed(self) -> bool:
        return self.done.is_set()

    async def keepalive(self) -> None:
        """Close the connection once it has stayed idle for too long."""
        wait = self.max_connection_idle
        while True:
            timeout = None if math.isinf(wait) else wait
            try:
                await asyncio.wait_for(self.done.wait(), timeout=timeout)
                return
            except asyncio.TimeoutError:
                pass
            if self.idle is None:
                wait = self.max_connection_idle
                continue
            remaining = self.max_connection_idle - (time.monotonic() - self.idle)
            if remaining <= 0:
                await self._close_on_idle()
                return
            wait = remaining

    async def _close_on_idle(self) -> None:
        if self.server is None:
            await self.close()
            return
        result = self.server.close(self)
        if inspect.isawaitable(result):
            await result

    async def close(self) -> None:
        """Mark the connection done and close the socket."""
        self.done.set()
        await self.websocket.close()

    async def read_message(self) -> Any:
        """Receive the next frame; the connection counts as busy afterwards."""
        try:
            return await self.websocket.recv()
        finally:
            self.idle = None

    async def write_message(self, data: Any) -> None:
        """Send a frame; the connection counts as idle from now on."""
        try:
            await self.websocket.send(data)
        finally:
            self.idle = time.monotonic()

    def append_msg_mq(self, msg: Message) -> None:
        """Record an incoming message that needs acknowledgement."""
        known = self.read_message_seq.get(msg.id)
        if known is not None:
            if not self.read_messages:
                return
            if msg.ack_seq <= known.ack_seq:
                return
            self.read_message_seq[msg.id] = msg
            return
        if msg.frame_type == FrameType.ACK:
            return
        self.read_messages.append(msg)
        self.read_message_seq[msg.id] = msg