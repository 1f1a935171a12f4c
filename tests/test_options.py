import time
from types import SimpleNamespace

import pytest

from gochat.ack import AckType
from gochat.options import (
    Authentication,
    DefaultAuthentication,
    DialOptions,
    ServerOptions,
)


def test_server_option_defaults():
    opts = ServerOptions()
    assert opts.pattern == "/ws"
    assert opts.ack is AckType.NO_ACK
    assert opts.ack_timeout == 30
    assert opts.send_err_count == 1
    assert opts.concurrency == 10
    assert opts.max_connection_idle == float("inf")
    assert isinstance(opts.authentication, DefaultAuthentication)


@pytest.mark.parametrize("idle", [0, -5])
def test_non_positive_idle_keeps_default(idle):
    assert ServerOptions(max_connection_idle=idle).max_connection_idle == float("inf")


def test_positive_idle_is_kept():
    assert ServerOptions(max_connection_idle=600).max_connection_idle == 600


def test_ack_coerced_from_int():
    assert ServerOptions(ack=2).ack is AckType.RIGOR_ACK


def test_dial_option_defaults():
    opts = DialOptions()
    assert opts.pattern == "/ws"
    assert opts.headers is None


def test_authentication_is_abstract():
    with pytest.raises(TypeError):
        Authentication()


def test_default_authentication_accepts():
    assert DefaultAuthentication().authenticate(SimpleNamespace(path="/ws")) is True


def test_user_id_from_query():
    auth = DefaultAuthentication()
    assert auth.user_id(SimpleNamespace(path="/ws?userId=abc")) == "[abc]"


def test_user_id_from_plain_path_string():
    auth = DefaultAuthentication()
    assert auth.user_id("/ws?userId=u1&other=2") == "[u1]"


def test_user_id_falls_back_to_milliseconds():
    before = time.time_ns() // 1_000_000
    uid = DefaultAuthentication().user_id(SimpleNamespace(path="/ws"))
    after = time.time_ns() // 1_000_000
    assert before <= int(uid) <= after