"""Websocket chat server: routing, connection registry and acknowledgements."""

from __future__ import annotations

import asyncio
import base64
import dataclasses
import enum
import inspect
import json
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Callable, Iterable
from urllib.parse import urlsplit

from websockets.asyncio.server import serve

from gochat.ack import AckType
from gochat.connection import Conn
from gochat.message import FrameType, HandlerFunc, Message, Route
from gochat.options import ServerOptions

logger = logging.getLogger(__name__)

_NO_PERMISSION = "不具备访问权限"
_NO_METHOD = "不存在执行的方法 {} 请检查"

_ACK_POLL_INTERVAL = 100e-6
_RIGOR_RESEND_THRESHOLD = 300e-6
_RIGOR_RETRY_INTERVAL = 3.0


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"value of type {type(value).__name__} is not JSON serialisable")


def encode_json(value: Any) -> str:
    """Serialise a frame, payload or plain value to compact JSON text."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        value = to_dict()
    return json.dumps(
        value, ensure_ascii=False, separators=(",", ":"), default=_json_default
    )


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _split_addr(addr: str) -> tuple[str | None, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {addr!r}")
    return (host.strip("[]") or None), int(port)


class Server:
    """Accepts websocket connections and dispatches frames to routes."""

    def __init__(self, addr: str, options: ServerOptions | None = None) -> None:
        self.addr = addr
        self.options = options if options is not None else ServerOptions()
        self.pattern = self.options.pattern
        self.authentication = self.options.authentication
        self.routes: dict[str, HandlerFunc] = {}
        self.ready = asyncio.Event()
        self.bound_address: tuple[str, int] | None = None
        self._conn_to_user: dict[Conn, str] = {}
        self._user_to_conn: dict[str, Conn] = {}
        self._semaphore = asyncio.Semaphore(self.options.concurrency)
        self._stopping: asyncio.Event | None = None

    def add_routes(self, routes: Iterable[Route]) -> None:
        """Register handlers by method name."""
        for route in routes:
            self.routes[route.method] = route.handler

    def get_conn(self, uid: str) -> Conn | None:
        """Return the connection of a user, if online."""
        return self._user_to_conn.get(uid)

    def get_conns(self, *args: str) -> list[Conn | None]:
        """Return connections for the given user ids; offline users give None."""
        return [self._user_to_conn.get(uid) for uid in args]

    def get_users(self, *args: Conn) -> list[str]:
        """Return user ids of the given connections, or of every connection."""
        if not args:
            return list(self._conn_to_user.values())
        return [self._conn_to_user.get(conn, "") for conn in args]

    async def close(self, conn: Conn) -> None:
        """Forget a registered connection and close it."""
        uid = self._conn_to_user.get(conn, "")
        if not uid:
            return
        del self._conn_to_user[conn]
        if self._user_to_conn.get(uid) is conn:
            del self._user_to_conn[uid]
        await conn.close()

    async def send(self, msg: Any, *args: Conn | None) -> None:
        """Serialise ``msg`` once and write it to every given connection."""
        conns = [conn for conn in args if conn is not None]
        if not conns:
            return
        data = encode_json(msg)
        for conn in conns:
            await conn.write_message(data)

    async def send_by_user_ids(self, msg: Any, *args: str) -> None:
        """Send ``msg`` to the connections of the given users."""
        if not args:
            return
        await self.send(msg, *self.get_conns(*args))

    def is_ack(self, message: Message | None) -> bool:
        """Whether ack mode is on and ``message`` (or any message) needs an ack."""
        return self.options.ack != AckType.NO_ACK and (
            message is None or message.frame_type != FrameType.NO_ACK
        )

    def schedule(self, func: Callable[[], Any]) -> asyncio.Task:
        """Run ``func`` in the background, bounded by the configured concurrency."""

        async def run() -> None:
            async with self._semaphore:
                try:
                    await _maybe_await(func())
                except Exception:
                    logger.exception("scheduled task failed")

        return asyncio.create_task(run())

    async def serve_ws(self, websocket: Any) -> None:
        """Serve one accepted websocket until it closes."""
        request = getattr(websocket, "request", None)
        if request is None:
            request = getattr(websocket, "path", "")
        conn = Conn(websocket, self, self.options.max_connection_idle)
        keepalive = asyncio.create_task(conn.keepalive())
        try:
            allowed = await _maybe_await(self.authentication.authenticate(request))
            if not allowed:
                await self.send(Message(frame_type=FrameType.DATA, data=_NO_PERMISSION), conn)
                await conn.close()
                return
            await self._add_conn(conn, request)
            await self._handle_conn(conn)
        except Exception:
            logger.exception("server handler ws recover err")
        finally:
            conn.done.set()
            await keepalive

    async def _add_conn(self, conn: Conn, request: Any) -> None:
        uid = await _maybe_await(self.authentication.user_id(request))
        conn.uid = uid
        previous = self._user_to_conn.get(uid)
        self._conn_to_user[conn] = uid
        self._user_to_conn[uid] = conn
        if previous is not None and previous is not conn:
            self._conn_to_user.pop(previous, None)
            await previous.close()

    async def _handle_conn(self, conn: Conn) -> None:
        workers = [asyncio.create_task(self._handle_write(conn))]
        if self.is_ack(None):
            workers.append(asyncio.create_task(self._read_ack(conn)))
        try:
            while True:
                try:
                    raw = await conn.read_message()
                except Exception as exc:
                    logger.error("websocket conn read message err: %s", exc)
                    await self.close(conn)
                    return
                try:
                    message = Message.from_json(raw)
                except (ValueError, TypeError, AttributeError) as exc:
                    logger.error("json unmarshal err: %s, msg: %s", exc, raw)
                    await self.close(conn)
                    return
                if self.is_ack(message):
                    logger.info("save msg to readMessage queue. msg: %s", message)
                    conn.append_msg_mq(message)
                else:
                    await conn.messages.put(message)
        finally:
            conn.done.set()
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def _handle_write(self, conn: Conn) -> None:
        while True:
            message = await conn.messages.get()
            if message.frame_type == FrameType.PING:
                try:
                    await self.send(Message(frame_type=FrameType.PING), conn)
                except Exception as exc:
                    logger.error("send ping err: %s", exc)
            elif message.frame_type == FrameType.DATA:
                handler = self.routes.get(message.method)
                if handler is not None:
                    try:
                        await _maybe_await(handler(self, conn, message))
                    except Exception:
                        logger.exception("handler for %s failed", message.method)
                else:
                    try:
                        await self.send(
                            Message(
                                frame_type=FrameType.DATA,
                                data=_NO_METHOD.format(message.method),
                            ),
                            conn,
                        )
                    except Exception as exc:
                        logger.error("websocket conn write message err: %s", exc)
                        await self.close(conn)
                        return
            if self.is_ack(message):
                conn.read_message_seq.pop(message.id, None)

    async def _send_ack(self, conn: Conn, msg_id: str, ack_seq: int) -> bool:
        ack = Message(frame_type=FrameType.ACK, id=msg_id, ack_seq=ack_seq)
        try:
            await self.send(ack, conn)
        except Exception as exc:
            logger.error("send ACK message err: %s, message: %s", exc, ack)
            await asyncio.sleep(_ACK_POLL_INTERVAL)
            return False
        return True

    async def _read_ack(self, conn: Conn) -> None:
        while not conn.done.is_set():
            if not conn.read_messages:
                await asyncio.sleep(_ACK_POLL_INTERVAL)
                continue
            msg = conn.read_messages[0]
            if self.options.ack == AckType.ONLY_ACK:
                if not await self._send_ack(conn, msg.id, msg.ack_seq + 1):
                    continue
                conn.read_messages.pop(0)
                await conn.messages.put(msg)
                logger.info("message ack (OnlyAck) send success, msg ID: %s", msg.id)
            elif self.options.ack == AckType.RIGOR_ACK:
                await self._rigor_step(conn, msg)

    async def _rigor_step(self, conn: Conn, msg: Message) -> None:
        if msg.ack_seq == 0:
            msg.ack_seq += 1
            msg.ack_time = datetime.now(timezone.utc)
            if await self._send_ack(conn, msg.id, msg.ack_seq):
                logger.info("message ack RigorAck send mid: %s, seq: %s", msg.id, msg.ack_seq)
            return
        recorded = conn.read_message_seq.get(msg.id)
        if recorded is not None and recorded.ack_seq > msg.ack_seq:
            conn.read_messages.pop(0)
            await conn.messages.put(msg)
            logger.info("message ack RigorAck success mid: %s", msg.id)
            return
        remaining = self.options.ack_timeout
        if msg.ack_time is not None:
            elapsed = (datetime.now(timezone.utc) - msg.ack_time).total_seconds()
            remaining -= elapsed
            if remaining <= 0:
                logger.info("client ack timeout! message: %s", msg.id)
                conn.read_message_seq.pop(msg.id, None)
                conn.read_messages.pop(0)
                return
        if remaining > _RIGOR_RESEND_THRESHOLD:
            if not await self._send_ack(conn, msg.id, msg.ack_seq):
                return
        await asyncio.sleep(_RIGOR_RETRY_INTERVAL)

    def _check_path(self, connection: Any, request: Any) -> Any:
        if urlsplit(request.path).path != self.pattern:
            return connection.respond(HTTPStatus.NOT_FOUND, "404 page not found\n")
        return None

    async def start(self) -> None:
        """Listen on the configured address until :meth:`stop` is called."""
        host, port = _split_addr(self.addr)
        self._stopping = asyncio.Event()
        async with serve(self.serve_ws, host, port, process_request=self._check_path) as ws_server:
            sockets = list(ws_server.sockets)
            if sockets:
                self.bound_address = tuple(sockets[0].getsockname()[:2])
            logger.info("listening on %s", self.addr)
            self.ready.set()
            await self._stopping.wait()
        self.ready.clear()

    def stop(self) -> None:
        """Ask a running server to shut down."""
        logger.info("server stopped")
        if self._stopping is not None:
            self._stopping.set()