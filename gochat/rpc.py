"""Conversation and chat-log service logic backed by the chat stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from gochat.models import (
    ChatLog,
    ChatType,
    Conversation,
    Conversations,
    NotFoundError,
)
from gochat.store import ChatLogModel, ConversationModel, ConversationsModel

logger = logging.getLogger(__name__)

_ZERO_OBJECT_ID = "0" * 24


def _combine_id(a: str, b: str) -> str:
    """Build a conversation id shared by two users, independent of order."""
    first, second = sorted((a, b))
    return f"{first}_{second}"


@dataclass
class ServiceContext:
    """The stores the service works with."""

    chat_log_model: Any
    conversation_model: Any
    conversations_model: Any
    combine_id: Callable[[str, str], str] = _combine_id

    @classmethod
    def from_mongo(cls, url: str, db: str) -> "ServiceContext":
        """Open the default collections of ``db`` at ``url``."""
        return cls(
            chat_log_model=ChatLogModel.connect(url, db),
            conversation_model=ConversationModel.connect(url, db),
            conversations_model=ConversationsModel.connect(url, db),
        )


@dataclass
class ChatLogEntry:
    """A chat message as returned to callers."""

    id: str = ""
    conversation_id: str = ""
    send_id: str = ""
    recv_id: str = ""
    msg_type: int = 0
    msg_content: str = ""
    chat_type: int = 0
    send_time: int = 0
    read_records: bytes = b""

    @classmethod
    def from_chat_log(cls, chat_log: ChatLog) -> "ChatLogEntry":
        return cls(
            id=str(chat_log.id) if chat_log.id is not None else _ZERO_OBJECT_ID,
            conversation_id=chat_log.conversation_id,
            send_id=chat_log.send_id,
            recv_id=chat_log.recv_id,
            msg_type=int(chat_log.msg_type),
            msg_content=chat_log.msg_content,
            chat_type=int(chat_log.chat_type),
            send_time=chat_log.send_time,
            read_records=bytes(chat_log.read_records),
        )


@dataclass
class ConversationEntry:
    """One user's view of a conversation."""

    conversation_id: str = ""
    chat_type: int = 0
    target_id: str = ""
    is_show: bool = False
    seq: int = 0
    read: int = 0
    total: int = 0
    to_read: int = 0

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationEntry":
        return cls(
            conversation_id=conversation.conversation_id,
            chat_type=int(conversation.chat_type),
            is_show=conversation.is_show,
            seq=conversation.seq,
            total=conversation.total,
        )


@dataclass
class ImService:
    """Chat logs and conversations of users and groups."""

    svc_ctx: ServiceContext = field()

    def get_chat_log(
        self,
        conversation_id: str = "",
        start_send_time: int = 0,
        end_send_time: int = 0,
        count: int = 0,
        msg_id: str = "",
    ) -> list[ChatLogEntry]:
        """Return one message by ``msg_id``, or a conversation's messages by send time."""
        if msg_id:
            try:
                chat_log = self.svc_ctx.chat_log_model.find_one(msg_id)
            except Exception as exc:
                logger.error("GetChatLog - ChatLogModel.find_one err: %s", exc)
                raise
            return [ChatLogEntry.from_chat_log(chat_log)]

        try:
            logs = self.svc_ctx.chat_log_model.list_by_send_time(
                conversation_id, start_send_time, end_send_time, count
            )
        except Exception as exc:
            logger.error("GetChatLog - ChatLogModel.list_by_send_time err: %s", exc)
            raise
        return [ChatLogEntry.from_chat_log(log) for log in logs]

    def set_up_user_conversation(self, send_id: str, recv_id: str, chat_type: int) -> None:
        """Set up a private or group conversation for the users involved."""
        if chat_type == ChatType.SINGLE:
            conversation_id = self.svc_ctx.combine_id(send_id, recv_id)
            try:
                self.svc_ctx.conversation_model.find_by_conversation_id(conversation_id)
            except NotFoundError:
                self.svc_ctx.conversation_model.insert(
                    Conversation(conversation_id=conversation_id, chat_type=ChatType.SINGLE)
                )
            else:
                logger.info("conversation has set up!")
                return
            self._set_up_user_conversation(
                conversation_id, send_id, recv_id, ChatType.SINGLE, True
            )
            # The receiver joins passively, so the conversation starts hidden for them.
            self._set_up_user_conversation(
                conversation_id, recv_id, send_id, ChatType.SINGLE, False
            )
        elif chat_type == ChatType.GROUP:
            self._set_up_user_conversation(recv_id, send_id, recv_id, ChatType.GROUP, True)

    def _set_up_user_conversation(
        self,
        conversation_id: str,
        user_id: str,
        recv_id: str,
        chat_type: ChatType,
        is_show: bool,
    ) -> None:
        try:
            conversations = self.svc_ctx.conversations_model.find_by_user_id(user_id)
        except NotFoundError:
            conversations = Conversations(user_id=user_id, conversation_list={})
        if conversation_id in conversations.conversation_list:
            return
        conversations.conversation_list[conversation_id] = Conversation(
            conversation_id=conversation_id,
            chat_type=chat_type,
            is_show=is_show,
        )
        self.svc_ctx.conversations_model.update_or_insert(conversations)

    def get_conversations(self, user_id: str) -> dict[str, ConversationEntry]:
        """Return a user's conversations with counts of unread messages filled in."""
        try:
            data = self.svc_ctx.conversations_model.find_by_user_id(user_id)
        except NotFoundError:
            logger.info("user (%s) has no conversations", user_id)
            return {}

        result = {
            key: ConversationEntry.from_conversation(conversation)
            for key, conversation in data.conversation_list.items()
            if conversation is not None
        }
        ids = [entry.conversation_id for entry in result.values()]
        conversations = self.svc_ctx.conversation_model.list_by_conversation_ids(ids)

        for conversation in conversations:
            entry = result.get(conversation.conversation_id)
            if entry is None:
                continue
            read_total = entry.total
            if read_total < conversation.total:
                entry.total = conversation.total
                entry.to_read = conversation.total - read_total
                entry.is_show = True
        return result

    def put_conversations(
        self, user_id: str, conversation_list: Mapping[str, ConversationEntry]
    ) -> None:
        """Store what a user has read in each of the given conversations."""
        data = self.svc_ctx.conversations_model.find_by_user_id(user_id)
        if data.conversation_list is None:
            data.conversation_list = {}

        for key, conversation in conversation_list.items():
            existing = data.conversation_list.get(key)
            old_total = existing.total if existing is not None else 0
            data.conversation_list[key] = Conversation(
                conversation_id=conversation.conversation_id,
                chat_type=conversation.chat_type,
                is_show=conversation.is_show,
                total=conversation.read + old_total,
                seq=conversation.seq,
            )
        self.svc_ctx.conversations_model.update(data)

    def create_group_conversation(self, group_id: str, create_id: str) -> None:
        """Create a group conversation and add it to its creator's list."""
        try:
            self.svc_ctx.conversation_model.find_by_conversation_id(group_id)
        except NotFoundError:
            pass
        else:
            return
        self.svc_ctx.conversation_model.insert(
            Conversation(conversation_id=group_id, chat_type=ChatType.GROUP)
        )
        self.set_up_user_conversation(create_id, group_id, ChatType.GROUP)