"""Documents stored by the chat service and the errors its stores raise."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from bson import ObjectId

DEFAULT_CHAT_LOG_LIMIT = 100

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ChatType(enum.IntEnum):
    """Kind of conversation."""

    GROUP = 1
    SINGLE = 2


class NotFoundError(LookupError):
    """No document matched the query."""

    def __init__(self, message: str = "mongo: no documents in result") -> None:
        super().__init__(message)


class InvalidObjectIdError(ValueError):
    """A document id is not a valid ObjectId in hex form."""

    def __init__(self, message: str = "invalid objectId") -> None:
        super().__init__(message)


def parse_object_id(value: Any) -> ObjectId:
    """Turn a 24-digit hex string (or an ObjectId) into an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and len(value) == 24 and all(c in _HEX_DIGITS for c in value):
        return ObjectId(value.lower())
    raise InvalidObjectIdError()


def _put_if_set(doc: dict[str, Any], key: str, value: Any) -> None:
    if value:
        doc[key] = value


def _put_times(doc: dict[str, Any], update_at: datetime | None, create_at: datetime | None) -> None:
    if update_at is not None:
        doc["updateAt"] = update_at
    if create_at is not None:
        doc["createAt"] = create_at


@dataclass
class ChatLog:
    """One message of a conversation."""

    id: ObjectId | None = None
    conversation_id: str = ""
    send_id: str = ""
    recv_id: str = ""
    msg_from: int = 0
    chat_type: int = 0
    msg_type: int = 0
    msg_content: str = ""
    send_time: int = 0
    status: int = 0
    read_records: bytes = b""
    update_at: datetime | None = None
    create_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the BSON-ready document."""
        doc: dict[str, Any] = {}
        if self.id is not None:
            doc["_id"] = self.id
        doc.update(
            {
                "conversationId": self.conversation_id,
                "sendId": self.send_id,
                "recvId": self.recv_id,
                "msgFrom": self.msg_from,
                "chatType": int(self.chat_type),
                "msgType": int(self.msg_type),
                "msgContent": self.msg_content,
                "sendTime": self.send_time,
                "status": self.status,
                "readRecords": bytes(self.read_records),
            }
        )
        _put_times(doc, self.update_at, self.create_at)
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ChatLog":
        """Build a chat log from a stored document."""
        records = doc.get("readRecords")
        return cls(
            id=doc.get("_id"),
            conversation_id=doc.get("conversationId") or "",
            send_id=doc.get("sendId") or "",
            recv_id=doc.get("recvId") or "",
            msg_from=int(doc.get("msgFrom") or 0),
            chat_type=int(doc.get("chatType") or 0),
            msg_type=int(doc.get("msgType") or 0),
            msg_content=doc.get("msgContent") or "",
            send_time=int(doc.get("sendTime") or 0),
            status=int(doc.get("status") or 0),
            read_records=bytes(records) if records is not None else b"",
            update_at=doc.get("updateAt"),
            create_at=doc.get("createAt"),
        )


@dataclass
class Conversation:
    """A conversation, either shared or as one user's view of it."""

    id: ObjectId | None = None
    conversation_id: str = ""
    chat_type: int = 0
    is_show: bool = False
    total: int = 0
    seq: int = 0
    msg: ChatLog | None = None
    update_at: datetime | None = None
    create_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the BSON-ready document; empty fields are left out."""
        doc: dict[str, Any] = {}
        if self.id is not None:
            doc["_id"] = self.id
        _put_if_set(doc, "conversationId", self.conversation_id)
        _put_if_set(doc, "chatType", int(self.chat_type))
        _put_if_set(doc, "isShow", bool(self.is_show))
        _put_if_set(doc, "total", self.total)
        doc["seq"] = self.seq
        if self.msg is not None:
            doc["msg"] = self.msg.to_document()
        _put_times(doc, self.update_at, self.create_at)
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Conversation":
        """Build a conversation from a stored document."""
        msg = doc.get("msg")
        return cls(
            id=doc.get("_id"),
            conversation_id=doc.get("conversationId") or "",
            chat_type=int(doc.get("chatType") or 0),
            is_show=bool(doc.get("isShow") or False),
            total=int(doc.get("total") or 0),
            seq=int(doc.get("seq") or 0),
            msg=ChatLog.from_document(msg) if msg is not None else None,
            update_at=doc.get("updateAt"),
            create_at=doc.get("createAt"),
        )


@dataclass
class Conversations:
    """The list of conversations a user takes part in."""

    id: ObjectId | None = None
    user_id: str = ""
    conversation_list: dict[str, Conversation | None] = field(default_factory=dict)
    update_at: datetime | None = None
    create_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the BSON-ready document."""
        doc: dict[str, Any] = {}
        if self.id is not None:
            doc["_id"] = self.id
        doc["userId"] = self.user_id
        doc["conversationList"] = {
            key: (value.to_document() if value is not None else None)
            for key, value in self.conversation_list.items()
        }
        _put_times(doc, self.update_at, self.create_at)
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Conversations":
        """Build a conversation list from a stored document."""
        stored = doc.get("conversationList") or {}
        return cls(
            id=doc.get("_id"),
            user_id=doc.get("userId") or "",
            conversation_list={
                key: (Conversation.from_document(value) if value is not None else None)
                for key, value in stored.items()
            },
            update_at=doc.get("updateAt"),
            create_at=doc.get("createAt"),
        )