import asyncio
import contextlib
import json
import socket

import pytest
from websockets.asyncio.server import serve

from gochat.client import Client
from gochat.message import Message, new_message
from gochat.options import DialOptions


async def _echo(connection):
    async for message in connection:
        await connection.send(message)


async def _describe(connection):
    async for _ in connection:
        await connection.send(
            json.dumps(
                {
                    "path": connection.request.path,
                    "header": connection.request.headers.get("X-Test"),
                }
            )
        )


@contextlib.asynccontextmanager
async def server(handler=_echo):
    async with serve(handler, "127.0.0.1", 0) as srv:
        port = next(iter(srv.sockets)).getsockname()[1]
        yield f"127.0.0.1:{port}"


@pytest.mark.asyncio
async def test_send_and_read_round_trip():
    payload = {"method": "echo", "data": ["a", 1, None]}
    async with server() as host:
        async with await Client.connect(host) as client:
            await client.send(payload)
            result = await asyncio.wait_for(client.read(), 5)
    assert result == payload


@pytest.mark.asyncio
async def test_message_round_trip():
    msg = new_message("alice", {"text": "hello"})
    async with server() as host:
        async with await Client.connect(host) as client:
            await client.send(msg)
            result = await asyncio.wait_for(client.read(), 5)
    assert Message.from_dict(result) == msg


@pytest.mark.asyncio
async def test_send_after_close_redials():
    async with server() as host:
        client = await Client.connect(host)
        await client.close()
        await client.send({"again": True})
        result = await asyncio.wait_for(client.read(), 5)
        await client.close()
    assert result == {"again": True}


@pytest.mark.asyncio
async def test_pattern_and_headers_are_used():
    options = DialOptions(headers={"X-Test": "abc"}, pattern="/chat")
    async with server(_describe) as host:
        async with await Client.connect(host, options) as client:
            assert client.url == f"ws://{host}/chat"
            await client.send("hi")
            result = await asyncio.wait_for(client.read(), 5)
    assert result == {"path": "/chat", "header": "abc"}


@pytest.mark.asyncio
async def test_operations_without_connection_raise():
    client = Client("127.0.0.1:1", DialOptions(), None)
    with pytest.raises(ConnectionError):
        await client.close()
    with pytest.raises(ConnectionError):
        await client.send({})
    with pytest.raises(ConnectionError):
        await client.read()


@pytest.mark.asyncio
async def test_connect_to_closed_port_fails():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    with pytest.raises(OSError):
        await Client.connect(f"127.0.0.1:{port}")