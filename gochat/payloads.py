"""Payloads carried in the ``data`` field of chat frames."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _lookup(data: Mapping, key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _as_map(value: Any, name: str) -> Mapping:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return value
    raise ValueError(f"'{name}': expected a map, got '{type(value).__name__}'")


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{name}' expected type 'int', got '{type(value).__name__}'")
    return int(value)


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{name}' expected type 'string', got '{type(value).__name__}'")
    return value


def _as_str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{name}': source data must be an array or slice")
    return [_as_str(item, f"{name}[{i}]") for i, item in enumerate(value)]


def _as_str_map(value: Any, name: str) -> dict[str, str]:
    return {
        _as_str(key, f"{name} key"): _as_str(item, f"{name}[{key}]")
        for key, item in _as_map(value, name).items()
    }


@dataclass
class Msg:
    """Message body of a chat."""

    msg_id: str = ""
    msg_type: int = 0
    content: str = ""
    read_records: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Msg":
        data = _as_map(data, "msg")
        return cls(
            msg_id=_as_str(_lookup(data, "msgId"), "msgId"),
            msg_type=_as_int(_lookup(data, "msgType"), "msgType"),
            content=_as_str(_lookup(data, "content"), "content"),
            read_records=_as_str_map(_lookup(data, "readRecords"), "readRecords"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "msgId": self.msg_id,
            "msgType": self.msg_type,
            "content": self.content,
            "readRecords": dict(self.read_records),
        }


@dataclass
class Chat:
    """A chat message sent by a client."""

    conversation_id: str = ""
    chat_type: int = 0
    send_id: str = ""
    recv_id: str = ""
    send_time: int = 0
    msg: Msg = field(default_factory=Msg)

    @classmethod
    def from_dict(cls, data: Any) -> "Chat":
        data = _as_map(data, "chat")
        return cls(
            conversation_id=_as_str(_lookup(data, "conversationId"), "conversationId"),
            chat_type=_as_int(_lookup(data, "chatType"), "chatType"),
            send_id=_as_str(_lookup(data, "sendId"), "sendId"),
            recv_id=_as_str(_lookup(data, "recvId"), "recvId"),
            send_time=_as_int(_lookup(data, "sendTime"), "sendTime"),
            msg=Msg.from_dict(_lookup(data, "msg")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "chatType": self.chat_type,
            "sendId": self.send_id,
            "recvId": self.recv_id,
            "sendTime": self.send_time,
            "msg": self.msg.to_dict(),
        }


@dataclass
class Push:
    """A message pushed from the queue to one or many receivers."""

    conversation_id: str = ""
    chat_type: int = 0
    send_id: str = ""
    recv_id: str = ""
    recv_ids: list[str] = field(default_factory=list)
    send_time: int = 0
    msg_id: str = ""
    msg_type: int = 0
    content_type: int = 0
    content: str = ""
    read_records: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Push":
        data = _as_map(data, "push")
        return cls(
            conversation_id=_as_str(_lookup(data, "conversationId"), "conversationId"),
            chat_type=_as_int(_lookup(data, "chatType"), "chatType"),
            send_id=_as_str(_lookup(data, "sendId"), "sendId"),
            recv_id=_as_str(_lookup(data, "recvId"), "recvId"),
            recv_ids=_as_str_list(_lookup(data, "recvIds"), "recvIds"),
            send_time=_as_int(_lookup(data, "sendTime"), "sendTime"),
            msg_id=_as_str(_lookup(data, "msgId"), "msgId"),
            msg_type=_as_int(_lookup(data, "msgType"), "msgType"),
            content_type=_as_int(_lookup(data, "contentType"), "contentType"),
            content=_as_str(_lookup(data, "content"), "content"),
            read_records=_as_str_map(_lookup(data, "readRecords"), "readRecords"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "chatType": self.chat_type,
            "sendId": self.send_id,
            "recvId": self.recv_id,
            "recvIds": list(self.recv_ids),
            "sendTime": self.send_time,
            "msgId": self.msg_id,
            "msgType": self.msg_type,
            "contentType": self.content_type,
            "content": self.content,
            "readRecords": dict(self.read_records),
        }


@dataclass
class MarkRead:
    """A request to mark messages of a conversation as read."""

    chat_type: int = 0
    recv_id: str = ""
    conversation_id: str = ""
    msg_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "MarkRead":
        data = _as_map(data, "markRead")
        return cls(
            chat_type=_as_int(_lookup(data, "chatType"), "chatType"),
            recv_id=_as_str(_lookup(data, "recvId"), "recvId"),
            conversation_id=_as_str(_lookup(data, "conversationId"), "conversationId"),
            msg_ids=_as_str_list(_lookup(data, "msgIds"), "msgIds"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chatType": self.chat_type,
            "recvId": self.recv_id,
            "conversationId": self.conversation_id,
            "msgIds": list(self.msg_ids),
        }