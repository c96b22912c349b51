"""Exception hierarchy for the POP3 client stack.

What:
  Define the error kinds surfaced by the framer, the command client, and the
  session wrapper.

Why:
  Callers must tell apart a legitimate negative reply from the server, a reply
  that does not match the protocol grammar, and a failed transport. Each kind
  calls for a different reaction (continue, abandon, reconnect), so each gets
  its own type.

How:
  Every error derives from :class:`Pop3Error`. Transport failures observed a
  second time are raised as :class:`TransportError`, which is also an
  :class:`OSError` so ``except OSError`` handlers written for sockets keep
  working. The first transport failure is never wrapped; the stream's own
  exception propagates verbatim.

Interfaces:
  ``Pop3Error``, ``ProtocolRejectionError``, ``MalformedResponseError``,
  ``TransportError``, ``ConnectionClosedError``, ``SessionStateError``.
"""
from __future__ import annotations

from typing import Optional


class Pop3Error(Exception):
    """Base class for every error raised by :mod:`mailpop.pop3`."""


class ProtocolRejectionError(Pop3Error):
    """The server answered a command with a negative status line.

    What:
      Carries the human-readable text that followed the ``-ERR`` marker.

    Why:
      A rejection is a normal protocol outcome (unknown user, no such message);
      the connection stays usable for further commands.

    Attributes:
      message: Server text after the negative marker (may be empty).
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MalformedResponseError(Pop3Error):
    """A reply could not be parsed according to the expected shape.

    Raised for status lines that are too short to carry a marker, overlong
    lines, and positive payloads with missing or non-numeric fields. Usually a
    sign of a client/server mismatch and not worth retrying.

    Attributes:
      line: The offending reply line, when one is available.
    """

    def __init__(self, reason: str, line: Optional[str] = None) -> None:
        super().__init__(reason if line is None else f"{reason}: {line!r}")
        self.reason = reason
        self.line = line


class TransportError(Pop3Error, OSError):
    """The underlying stream can no longer carry exchanges."""


class ConnectionClosedError(TransportError):
    """The server closed the stream before a complete line arrived."""


class SessionStateError(Pop3Error):
    """An operation was attempted in a session state that forbids it.

    Attributes:
      operation: Name of the refused operation.
      state: Session state at the time of the call.
    """

    def __init__(self, operation: str, state: object) -> None:
        super().__init__(f"{operation} is not permitted in state {state}")
        self.operation = operation
        self.state = state


__all__ = [
    "Pop3Error",
    "ProtocolRejectionError",
    "MalformedResponseError",
    "TransportError",
    "ConnectionClosedError",
    "SessionStateError",
]
