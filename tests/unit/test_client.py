"""Command client unit tests.

What:
  Validate that :class:`mailpop.pop3.client.Pop3Client` sends the right
  command lines, parses replies into typed values, applies per-command
  deadlines, and keeps rejection, malformed-response, and transport errors
  apart.

Why:
  The client is the layer callers touch. Wrong parsing yields wrong counts or
  identifiers; a leaked deadline or a silently reused dead connection turns
  into hard-to-diagnose hangs in long-running pollers.

How:
  The ``pop3_client`` fixture provides a greeted client over
  :class:`FakeStream`. Each test queues the server's replies with
  ``stream.feed`` and asserts on return values and ``stream.commands``.
"""

import json

import pytest

from fakes import FakeStream, PlainFakeStream, reply

from mailpop.pop3.client import MessageInfo, Pop3Client
from mailpop.pop3.errors import (
    ConnectionClosedError,
    MalformedResponseError,
    ProtocolRejectionError,
    TransportError,
)


def test_greeting_is_consumed_on_construction() -> None:
    stream = FakeStream(reply("+OK dovecot ready."))
    client = Pop3Client(stream)
    assert client.greeting == "dovecot ready."
    assert stream.commands == []


def test_negative_greeting_fails_construction() -> None:
    stream = FakeStream(reply("-ERR too many connections"))
    with pytest.raises(ProtocolRejectionError) as excinfo:
        Pop3Client(stream)
    assert excinfo.value.message == "too many connections"


def test_stat_parses_count_and_size(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 3 1200"))
    assert client.stat() == (3, 1200)
    assert stream.commands == ["STAT"]


def test_stat_ignores_trailing_fields(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2 320 extra info"))
    assert client.stat() == (2, 320)


@pytest.mark.parametrize("payload", ["abc 1200", "3", "", "3 12x", "-1 20"])
def test_stat_malformed_payload(pop3_client, payload: str) -> None:
    client, stream = pop3_client
    stream.feed(reply(f"+OK {payload}"))
    with pytest.raises(MalformedResponseError):
        client.stat()


def test_list_single_returns_size(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2 340"))
    assert client.list(2) == 340
    assert stream.commands == ["LIST 2"]


def test_list_single_malformed_size(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2 lots"))
    with pytest.raises(MalformedResponseError):
        client.list(2)


def test_list_all_returns_descriptors_in_order(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2 messages", "1 200", "2 340", "."))
    assert client.list_all() == [MessageInfo(seq=1, size=200), MessageInfo(seq=2, size=340)]
    assert stream.commands == ["LIST"]


def test_list_all_empty_maildrop(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 0 messages", "."))
    assert client.list_all() == []


def test_list_all_bad_line_aborts_whole_listing(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "1 200", "2", "3 10", "."))
    with pytest.raises(MalformedResponseError):
        client.list_all()


@pytest.mark.parametrize("ending", ["\r\n", "\n"])
def test_retr_joins_lines_with_lf(pop3_client, ending: str) -> None:
    """The message text is independent of the wire line ending.

    What:
      Retrieve the same three-line message sent with CRLF and with bare LF.

    Why:
      Callers parse the result with :mod:`email`; mixed endings would make
      header folding and body detection unreliable.
    """

    client, stream = pop3_client
    stream.feed(reply("+OK 24 octets", "Subject: hi", "", "body", ".", ending=ending))
    assert client.retr(1) == "Subject: hi\n\nbody"
    assert stream.commands == ["RETR 1"]


def test_retr_unstuffs_body(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "Subject: dots", "", "..", "..leading", "."))
    assert client.retr(4) == "Subject: dots\n\n.\n.leading"


def test_retr_transport_failure_propagates(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "Subject: cut"))
    with pytest.raises(ConnectionClosedError):
        client.retr(1)


def test_retr_rejected(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("-ERR no such message"))
    with pytest.raises(ProtocolRejectionError, match="no such message"):
        client.retr(9)


def test_top_sends_line_count(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "From: a@example.test", "Subject: x", "", "first line", "."))
    assert client.top(3, 1) == "From: a@example.test\nSubject: x\n\nfirst line"
    assert stream.commands == ["TOP 3 1"]


def test_top_rejects_negative_line_count(pop3_client) -> None:
    client, stream = pop3_client
    with pytest.raises(ValueError):
        client.top(1, -1)
    assert stream.commands == []


@pytest.mark.parametrize(
    "method, verb",
    [("dele", "DELE 5"), ("noop", "NOOP"), ("rset", "RSET")],
)
def test_simple_commands(pop3_client, method: str, verb: str) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK"))
    args = (5,) if method == "dele" else ()
    assert getattr(client, method)(*args) is None
    assert stream.commands == [verb]


@pytest.mark.parametrize("seq", [0, -3, True, "1", 1.0])
def test_invalid_sequence_number_sends_nothing(pop3_client, seq) -> None:
    client, stream = pop3_client
    with pytest.raises(ValueError):
        client.dele(seq)
    assert stream.written == bytearray()


def test_uidl_single(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2 QhdPYR:00WBw1Ph7x7"))
    assert client.uidl(2) == "QhdPYR:00WBw1Ph7x7"
    assert stream.commands == ["UIDL 2"]


def test_uidl_single_missing_identifier(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK 2"))
    with pytest.raises(MalformedResponseError):
        client.uidl(2)


def test_uidl_all_returns_sequence_uid_pairs(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "1 whqtswO00WBw418f9t5JxYwZ", "2 QhdPYR:00WBw1Ph7x7", "."))
    infos = client.uidl_all()
    assert infos == [
        MessageInfo(seq=1, uid="whqtswO00WBw418f9t5JxYwZ"),
        MessageInfo(seq=2, uid="QhdPYR:00WBw1Ph7x7"),
    ]
    assert all(info.size is None for info in infos)
    assert stream.commands == ["UIDL"]


def test_uidl_all_bad_sequence_aborts(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "1 abc", "two def", "."))
    with pytest.raises(MalformedResponseError):
        client.uidl_all()


def test_auth_sends_user_then_pass(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "+OK logged in"))
    client.auth("alice", "s3cret")
    assert stream.commands == ["USER alice", "PASS s3cret"]


def test_auth_user_failure_never_sends_pass(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("-ERR unknown user", "+OK"))
    with pytest.raises(ProtocolRejectionError):
        client.auth("mallory", "guess")
    assert stream.commands == ["USER mallory"]


def test_password_never_logged(pop3_client, log_stream) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK", "-ERR invalid password"))
    with pytest.raises(ProtocolRejectionError):
        client.auth("alice", "hunter2")
    output = log_stream.getvalue()
    assert "hunter2" not in output
    entries = [json.loads(line) for line in output.splitlines()]
    assert {"msg": "command rejected", "verb": "PASS"}.items() <= entries[-1].items()


def test_quit_closes_transport(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK bye"))
    client.quit()
    assert stream.commands == ["QUIT"]
    assert stream.close_calls == 1
    assert client.text.closed


def test_failed_quit_leaves_transport_open(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("-ERR some deleted messages not removed", "+OK bye"))
    with pytest.raises(ProtocolRejectionError):
        client.quit()
    assert stream.close_calls == 0
    client.quit()
    assert stream.close_calls == 1


def test_rejection_leaves_client_usable(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("-ERR no such message", "+OK 1 10"))
    with pytest.raises(ProtocolRejectionError):
        client.list(7)
    assert client.stat() == (1, 10)


def test_command_after_transport_error_fails_again(pop3_client) -> None:
    client, stream = pop3_client
    stream.read_error = ConnectionResetError("reset by peer")
    with pytest.raises(ConnectionResetError):
        client.noop()
    stream.read_error = None
    stream.feed(reply("+OK 1 10"))
    with pytest.raises(TransportError):
        client.stat()
    assert stream.commands == ["NOOP"]


def test_timeout_scopes_deadline_around_each_command(monkeypatch) -> None:
    """A deadline is set right before the exchange and cleared right after.

    What:
      With a 5 second timeout and a frozen monotonic clock at 100, every
      command must produce ``deadline 105`` before writing and
      ``deadline None`` after reading.

    Why:
      A deadline left armed after a command would fire during the caller's own
      idle time and break the next exchange.
    """

    monkeypatch.setattr("mailpop.pop3.client.time.monotonic", lambda: 100.0)
    stream = FakeStream(reply("+OK hi", "+OK"))
    client = Pop3Client(stream, timeout=5)
    assert stream.deadlines == [105.0, None]
    stream.events.clear()
    client.noop()
    assert stream.events == [
        ("deadline", 105.0),
        "write",
        "flush",
        "readline",
        ("deadline", None),
    ]


def test_deadline_cleared_when_command_fails(pop3_client) -> None:
    client, stream = pop3_client
    client.use_timeouts(2.5)
    stream.feed(reply("-ERR no", "+OK", "1 5"))
    with pytest.raises(ProtocolRejectionError):
        client.rset()
    assert stream.deadlines[-1] is None
    stream.deadlines.clear()
    stream.read_error = OSError("boom")
    with pytest.raises(OSError):
        client.list_all()
    assert len(stream.deadlines) == 2
    assert stream.deadlines[-1] is None


def test_multiline_read_shares_the_command_deadline(pop3_client) -> None:
    client, stream = pop3_client
    client.use_timeouts(1)
    stream.feed(reply("+OK", "1 5", "."))
    client.list_all()
    assert [event for event in stream.events if isinstance(event, tuple)][-1] == ("deadline", None)
    assert len(stream.deadlines) == 2


def test_no_timeout_never_touches_deadline(pop3_client) -> None:
    client, stream = pop3_client
    stream.feed(reply("+OK"))
    client.noop()
    assert stream.deadlines == []


def test_timeout_requires_deadline_capable_stream() -> None:
    with pytest.raises(TypeError):
        Pop3Client(PlainFakeStream(reply("+OK")), timeout=3)


def test_plain_stream_without_timeout_works() -> None:
    stream = PlainFakeStream(reply("+OK hi", "+OK 0 0"))
    client = Pop3Client(stream)
    assert client.stat() == (0, 0)


def test_negative_timeout_rejected(pop3_client) -> None:
    client, _ = pop3_client
    with pytest.raises(ValueError):
        client.use_timeouts(-1)
