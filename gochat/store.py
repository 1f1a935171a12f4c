"""MongoDB-backed stores for chat logs and conversations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from bson import ObjectId
from pymongo import MongoClient

from gochat.models import (
    DEFAULT_CHAT_LOG_LIMIT,
    ChatLog,
    Conversation,
    Conversations,
    NotFoundError,
    parse_object_id,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _Model:
    """Shared id-based document operations for one collection."""

    document_type: Any = None
    collection_name: str = ""

    def __init__(self, collection: Any) -> None:
        self.collection = collection

    @classmethod
    def connect(cls, url: str, db: str, collection: str | None = None) -> Any:
        """Create a store on ``collection`` (or the default one) of ``db``."""
        client: MongoClient = MongoClient(url)
        return cls(client[db][collection or cls.collection_name])

    def _load_one(self, query: Mapping[str, Any]) -> Any:
        doc = self.collection.find_one(query)
        if doc is None:
            raise NotFoundError()
        return self.document_type.from_document(doc)

    def _load_many(self, query: Mapping[str, Any], **kwargs: Any) -> list[Any]:
        return [self.document_type.from_document(doc) for doc in self.collection.find(query, **kwargs)]

    def _insert(self, data: Any) -> None:
        if data.id is None:
            data.id = ObjectId()
            now = _now()
            data.create_at = now
            data.update_at = now
        self.collection.insert_one(data.to_document())

    def _find_one(self, id: Any) -> Any:
        return self._load_one({"_id": parse_object_id(id)})

    def _update(self, data: Any) -> Any:
        data.update_at = _now()
        return self.collection.update_one({"_id": data.id}, {"$set": data.to_document()})

    def _delete(self, id: Any) -> int:
        result = self.collection.delete_one({"_id": parse_object_id(id)})
        return result.deleted_count


class ChatLogModel(_Model):
    """Store of chat messages."""

    document_type = ChatLog
    collection_name = "chat_log"

    def insert(self, data: ChatLog) -> None:
        """Store a new message, giving it an id and timestamps if it has none."""
        self._insert(data)

    def find_one(self, id: Any) -> ChatLog:
        """Return the message with the given hex id."""
        return self._find_one(id)

    def update(self, data: ChatLog) -> Any:
        """Overwrite the stored fields of a message and return the update result."""
        return self._update(data)

    def delete(self, id: Any) -> int:
        """Delete the message with the given hex id; return how many went."""
        return self._delete(id)

    def list_by_send_time(
        self,
        conversation_id: str,
        start_send_time: int,
        end_send_time: int,
        limit: int,
    ) -> list[ChatLog]:
        """Messages of a conversation, newest first.

        With ``end_send_time`` set, returns those in ``(end, start]``;
        otherwise those sent strictly before ``start_send_time``.
        """
        if end_send_time > 0:
            send_time: dict[str, int] = {"$gt": end_send_time, "$lte": start_send_time}
        else:
            send_time = {"$lt": start_send_time}
        query = {"conversationId": conversation_id, "sendTime": send_time}
        return self._load_many(
            query,
            sort=[("sendTime", -1)],
            limit=limit if limit > 0 else DEFAULT_CHAT_LOG_LIMIT,
        )

    def list_by_msg_ids(self, msg_ids: Iterable[str]) -> list[ChatLog]:
        """Messages whose ids are among ``msg_ids``."""
        ids = [parse_object_id(msg_id) for msg_id in msg_ids]
        return self._load_many({"_id": {"$in": ids}})

    def update_mark_read(self, msg_id: Any, read_records: bytes) -> None:
        """Replace the read-records bitmap of a message."""
        self.collection.update_one(
            {"_id": parse_object_id(msg_id)},
            {"$set": {"readRecords": bytes(read_records), "updateAt": _now()}},
        )


class ConversationModel(_Model):
    """Store of shared conversations."""

    document_type = Conversation
    collection_name = "conversation"

    def insert(self, data: Conversation) -> None:
        """Store a new conversation, giving it an id and timestamps if it has none."""
        self._insert(data)

    def find_one(self, id: Any) -> Conversation:
        """Return the conversation with the given hex id."""
        return self._find_one(id)

    def update(self, data: Conversation) -> Any:
        """Overwrite the stored fields of a conversation and return the update result."""
        return self._update(data)

    def delete(self, id: Any) -> int:
        """Delete the conversation with the given hex id; return how many went."""
        return self._delete(id)

    def find_by_conversation_id(self, conversation_id: str) -> Conversation:
        """Return the conversation with the given conversation id."""
        return self._load_one({"conversationId": conversation_id})

    def list_by_conversation_ids(self, ids: Iterable[str]) -> list[Conversation]:
        """Conversations whose conversation id is among ``ids``."""
        return self._load_many({"conversationId": {"$in": list(ids)}})

    def update_msg(self, chat_log: ChatLog) -> None:
        """Count one more message in the conversation and make it the latest."""
        self.collection.update_one(
            {"conversationId": chat_log.conversation_id},
            {"$inc": {"total": 1}, "$set": {"msg": chat_log.to_document()}},
        )


class ConversationsModel(_Model):
    """Store of per-user conversation lists."""

    document_type = Conversations
    collection_name = "conversations"

    def insert(self, data: Conversations) -> None:
        """Store a new conversation list, giving it an id and timestamps if it has none."""
        self._insert(data)

    def find_one(self, id: Any) -> Conversations:
        """Return the conversation list with the given hex id."""
        return self._find_one(id)

    def update(self, data: Conversations) -> Any:
        """Overwrite the stored fields of a conversation list and return the update result."""
        return self._update(data)

    def delete(self, id: Any) -> int:
        """Delete the conversation list with the given hex id; return how many went."""
        return self._delete(id)

    def find_by_user_id(self, uid: str) -> Conversations:
        """Return the conversation list of a user."""
        return self._load_one({"userId": uid})

    def update_or_insert(self, data: Conversations) -> Any:
        """Save ``data``, creating it if it does not exist yet."""
        now = _now()
        if data.id is None:
            data.id = ObjectId()
            data.create_at = now
        data.update_at = now
        return self.collection.update_one(
            {"_id": data.id}, {"$set": data.to_document()}, upsert=True
        )