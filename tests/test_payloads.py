import pytest

from gochat.payloads import Chat, MarkRead, Msg, Push

CHAT_DATA = {
    "conversationId": "conv-1",
    "chatType": 1,
    "sendId": "alice",
    "recvId": "bob",
    "sendTime": 1700000000,
    "msg": {
        "msgId": "m-1",
        "msgType": 0,
        "content": "hello",
        "readRecords": {"alice": "1"},
    },
}

PUSH_DATA = {
    "conversationId": "group-1",
    "chatType": 2,
    "sendId": "alice",
    "recvId": "group-1",
    "recvIds": ["bob", "carol"],
    "sendTime": 1700000001,
    "msgId": "m-2",
    "msgType": 0,
    "contentType": 1,
    "content": "hi all",
    "readRecords": {"bob": "0"},
}

MARK_DATA = {
    "chatType": 2,
    "recvId": "alice",
    "conversationId": "group-1",
    "msgIds": ["m-1", "m-2"],
}


def test_chat_from_dict_reads_nested_msg():
    chat = Chat.from_dict(CHAT_DATA)
    assert chat.conversation_id == CHAT_DATA["conversationId"]
    assert chat.send_time == CHAT_DATA["sendTime"]
    assert chat.msg.content == CHAT_DATA["msg"]["content"]
    assert chat.msg.read_records == CHAT_DATA["msg"]["readRecords"]


@pytest.mark.parametrize(
    ("cls", "data"),
    [(Chat, CHAT_DATA), (Push, PUSH_DATA), (MarkRead, MARK_DATA), (Msg, CHAT_DATA["msg"])],
)
def test_round_trip(cls, data):
    assert cls.from_dict(data).to_dict() == data
    value = cls.from_dict(data)
    assert cls.from_dict(value.to_dict()) == value


@pytest.mark.parametrize("cls", [Chat, Push, MarkRead, Msg])
def test_none_and_empty_give_defaults(cls):
    assert cls.from_dict(None) == cls()
    assert cls.from_dict({}) == cls()


def test_keys_match_case_insensitively():
    chat = Chat.from_dict({"ConversationID": "conv-9", "SENDID": "zed"})
    assert chat.conversation_id == "conv-9"
    assert chat.send_id == "zed"


def test_floats_truncate_into_ints():
    push = Push.from_dict({"chatType": 2.0, "sendTime": 12.9})
    assert push.chat_type == 2
    assert push.send_time == int(12.9)


def test_unknown_keys_are_ignored():
    data = dict(MARK_DATA, extra="ignored")
    assert MarkRead.from_dict(data) == MarkRead.from_dict(MARK_DATA)


@pytest.mark.parametrize(
    ("cls", "data"),
    [
        (Chat, {"chatType": "1"}),
        (Chat, {"chatType": True}),
        (Chat, {"sendId": 5}),
        (Chat, {"msg": "text"}),
        (Msg, {"readRecords": {"alice": 1}}),
        (Push, {"recvIds": "bob"}),
        (MarkRead, {"msgIds": [1]}),
    ],
)
def test_type_mismatch_raises(cls, data):
    with pytest.raises(ValueError):
        cls.from_dict(data)


@pytest.mark.parametrize("cls", [Chat, Push, MarkRead, Msg])
def test_non_map_raises(cls):
    with pytest.raises(ValueError):
        cls.from_dict(["not", "a", "map"])