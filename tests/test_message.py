import json
from datetime import datetime, timezone

import pytest

from gochat.message import (
    FrameType,
    Message,
    Route,
    new_err_message,
    new_message,
)


@pytest.mark.parametrize(
    ("frame", "wire"),
    [
        (FrameType.DATA, 0x0),
        (FrameType.PING, 0x1),
        (FrameType.ACK, 0x2),
        (FrameType.NO_ACK, 0x3),
        (FrameType.ERR, 0x9),
    ],
)
def test_frame_type_wire_values(frame, wire):
    assert Message(frame_type=frame).to_dict()["frameType"] == wire
    assert Message.from_dict({"frameType": wire}).frame_type is frame


def test_to_dict_uses_wire_keys():
    msg = Message(frame_type=FrameType.PING, id="m1", method="push", from_id="u1")
    keys = set(msg.to_dict())
    assert keys == {
        "frameType", "id", "ackSeq", "ackTime", "errCount", "method", "fromId", "data",
    }
    assert msg.to_dict()["frameType"] == int(FrameType.PING)


def test_json_round_trip_with_time():
    stamp = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
    msg = Message(
        frame_type=FrameType.ACK,
        id="abc",
        ack_seq=3,
        ack_time=stamp,
        err_count=1,
        method="conversation.chat",
        from_id="user",
        data={"content": "hi", "list": [1, 2]},
    )
    assert Message.from_json(msg.to_json()) == msg


def test_zero_time_round_trips_to_none():
    msg = Message(id="x")
    decoded = json.loads(msg.to_json())
    assert Message.from_dict(decoded).ack_time is None


def test_nanosecond_time_is_accepted():
    parsed = Message.from_dict({"ackTime": "2024-01-02T03:04:05.123456789Z"})
    assert parsed.ack_time == datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


def test_missing_fields_take_defaults():
    parsed = Message.from_json('{"method": "push"}')
    assert parsed == Message(method="push")


def test_unknown_frame_type_rejected():
    with pytest.raises(ValueError):
        Message.from_dict({"frameType": 7})


def test_invalid_json_rejected():
    with pytest.raises(ValueError):
        Message.from_json("not json")


def test_new_message():
    msg = new_message("sender", {"a": 1})
    assert msg.frame_type is FrameType.DATA
    assert msg.from_id == "sender"
    assert msg.data == {"a": 1}


def test_new_err_message():
    msg = new_err_message(ValueError("boom"))
    assert msg.frame_type is FrameType.ERR
    assert msg.data == "boom"


def test_route_holds_handler():
    def handler(*args):
        return args

    route = Route(method="push", handler=handler)
    assert route.handler(1, 2) == (1, 2)
    assert route.method == "push"