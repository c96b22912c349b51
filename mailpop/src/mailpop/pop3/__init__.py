"""Facade for the POP3 client layer.

What:
  Surface the framer, the command client, the state-checked session wrapper,
  the dial helpers, and the error types.

Why:
  Keeping the import surface in one place lets call sites write
  ``from mailpop.pop3 import Pop3Client`` without depending on module layout.

Interfaces:
  ``TextConnection``, ``Pop3Client``, ``MessageInfo``, ``Pop3Session``,
  ``SessionState``, ``SocketStream``, ``dial``, ``dial_tls``, ``open_client``,
  and the exceptions from :mod:`mailpop.pop3.errors`.

Invariants & Safety:
  - One client owns one stream; no object here is safe for concurrent use.
"""

from .client import MessageInfo, Pop3Client
from .dial import dial, dial_tls, open_client
from .errors import (
    ConnectionClosedError,
    MalformedResponseError,
    Pop3Error,
    ProtocolRejectionError,
    SessionStateError,
    TransportError,
)
from .session import Pop3Session, SessionState
from .stream import DeadlineStream, SocketStream, Stream
from .textproto import TextConnection

__all__ = [
    "ConnectionClosedError",
    "DeadlineStream",
    "MalformedResponseError",
    "MessageInfo",
    "Pop3Client",
    "Pop3Error",
    "Pop3Session",
    "ProtocolRejectionError",
    "SessionState",
    "SessionStateError",
    "SocketStream",
    "Stream",
    "TextConnection",
    "TransportError",
    "dial",
    "dial_tls",
    "open_client",
]
