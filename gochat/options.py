"""Configuration for the chat websocket server and client."""

from __future__ import annotations

import abc
import math
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlsplit

from gochat.ack import AckType

DEFAULT_MAX_CONNECTION_IDLE = math.inf
DEFAULT_ACK_TIMEOUT = 30.0
DEFAULT_SEND_ERR_COUNT = 1
DEFAULT_CONCURRENCY = 10
DEFAULT_PATTERN = "/ws"


def _request_path(request: Any) -> str:
    if isinstance(request, str):
        return request
    return getattr(request, "path", "") or ""


class Authentication(abc.ABC):
    """Decides whether a websocket request may connect and who it belongs to."""

    @abc.abstractmethod
    def authenticate(self, request: Any) -> bool:
        """Return whether the request is allowed to connect."""

    @abc.abstractmethod
    def user_id(self, request: Any) -> str:
        """Return the user id that owns the request."""


class DefaultAuthentication(Authentication):
    """Accepts everyone; the user id comes from the ``userId`` query parameter."""

    def authenticate(self, request: Any) -> bool:
        return True

    def user_id(self, request: Any) -> str:
        query = parse_qs(urlsplit(_request_path(request)).query, keep_blank_values=True)
        values = query.get("userId")
        if values is not None:
            return "[" + " ".join(values) + "]"
        return str(time.time_ns() // 1_000_000)


@dataclass
class ServerOptions:
    """Server settings; durations are in seconds."""

    authentication: Authentication = field(default_factory=DefaultAuthentication)
    pattern: str = DEFAULT_PATTERN
    max_connection_idle: float = DEFAULT_MAX_CONNECTION_IDLE
    ack: AckType = AckType.NO_ACK
    ack_timeout: float = DEFAULT_ACK_TIMEOUT
    send_err_count: int = DEFAULT_SEND_ERR_COUNT
    concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self) -> None:
        if self.max_connection_idle <= 0:
            self.max_connection_idle = DEFAULT_MAX_CONNECTION_IDLE
        self.ack = AckType(self.ack)


@dataclass
class DialOptions:
    """Client dial settings."""

    headers: dict[str, str] | None = None
    pattern: str = DEFAULT_PATTERN