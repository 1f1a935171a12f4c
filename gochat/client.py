"""A JSON websocket client that redials once when a send fails."""

from __future__ import annotations

import json
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from gochat.options import DialOptions
from gochat.server import encode_json


class Client:
    """Sends and receives JSON values over a websocket."""

    def __init__(
        self, host: str, options: DialOptions, websocket: ClientConnection | None
    ) -> None:
        self.host = host
        self.options = options
        self._websocket = websocket

    @property
    def url(self) -> str:
        return f"ws://{self.host}{self.options.pattern}"

    @classmethod
    async def connect(cls, host: str, options: DialOptions | None = None) -> "Client":
        """Dial ``host`` and return a connected client."""
        options = options if options is not None else DialOptions()
        client = cls(host, options, None)
        client._websocket = await client._dial()
        return client

    async def _dial(self) -> ClientConnection:
        return await connect(self.url, additional_headers=self.options.headers)

    def _require_connection(self) -> ClientConnection:
        if self._websocket is None:
            raise ConnectionError("connection is nil")
        return self._websocket

    async def close(self) -> None:
        """Close the websocket."""
        await self._require_connection().close()

    async def send(self, value: Any) -> None:
        """Send ``value`` as JSON; redial and retry once if the write fails."""
        websocket = self._require_connection()
        data = encode_json(value)
        try:
            await websocket.send(data)
            return
        except (ConnectionClosed, OSError):
            pass
        self._websocket = await self._dial()
        await self._websocket.send(data)

    async def read(self) -> Any:
        """Receive one message and decode it from JSON."""
        raw = await self._require_connection().recv()
        return json.loads(raw)

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._websocket is not None:
            await self._websocket.close()