"""Pytest fixtures for unit tests requiring a scripted POP3 stream.

What:
  Expose a ``pop3_client`` fixture backed by :class:`FakeStream` and a
  ``log_stream`` capturing the client's JSON log lines.

Why:
  Most tests drive :class:`~mailpop.pop3.client.Pop3Client` against a fresh
  greeting and then assert on the bytes written and the values returned. A
  shared fixture keeps that setup identical everywhere.

How:
  Queue a positive greeting, build the client with a DEBUG-level logger that
  writes into a :class:`io.StringIO`, clear the recorded events so tests only
  see their own exchange, and yield ``(client, stream)``.
"""

import io

import pytest

from fakes import FakeStream, reply

from mailpop.pop3.client import Pop3Client
from mailpop.utils.logging import JsonLogger


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def pop3_client(log_stream: io.StringIO):
    """Yield a greeted client and its fake stream.

    Yields:
      Tuple ``(Pop3Client, FakeStream)``.
    """

    stream = FakeStream(reply("+OK POP3 server ready"))
    logger = JsonLogger(stream=log_stream, component="pop3", threshold="DEBUG")
    client = Pop3Client(stream, logger=logger)
    stream.events.clear()
    yield client, stream
