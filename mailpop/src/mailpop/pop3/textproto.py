"""Line framing for the POP3 wire protocol.

What:
  Turn a buffered byte stream into discrete POP3 exchanges: CRLF-terminated
  command lines out, ``+OK``/``-ERR`` status lines and dot-terminated
  multi-line bodies in.

Why:
  Every command in the client is built from the same three primitives (send a
  line, read a status line, read a body). Keeping framing in one place means
  length checks, dot-unstuffing, and failure bookkeeping are written once.

How:
  :class:`TextConnection` owns the stream. Reads strip exactly one trailing
  CRLF (or bare LF) and decode with the configured encoding. The first
  :class:`OSError` raised by the stream propagates unchanged but is remembered;
  any later exchange raises :class:`~mailpop.pop3.errors.TransportError`
  chained to it so a failed connection never appears to succeed again.

Interfaces:
  :class:`TextConnection` with ``send_command``, ``read_response``,
  ``read_multiline``, ``issue_command``, and ``close``.

Invariants & Safety:
  - At most one exchange is in flight; the class performs no locking and
    assumes a single owner.
  - Status lines are length-checked before they are sliced.
  - A body line starting with ``.`` loses exactly one leading ``.``.
"""
from __future__ import annotations

from typing import List, Optional

from .errors import (
    ConnectionClosedError,
    MalformedResponseError,
    ProtocolRejectionError,
    TransportError,
)
from .stream import Stream


CRLF = b"\r\n"
OK_MARKER = "+OK"
ERR_MARKER = "-ERR"
END_OF_BODY = "."
DEFAULT_ENCODING = "utf-8"
DEFAULT_MAX_LINE_LENGTH = 8192


class TextConnection:
    """Framer owning one POP3 byte stream.

    What:
      Provides line-oriented send and receive operations with POP3 status
      parsing and multi-line body handling.

    Why:
      The command client composes these primitives; none of them know which
      verb is being issued.

    How:
      Commands are encoded, terminated with CRLF, written, and flushed at once
      so the full line is on the wire before the matching read begins. Replies
      are read with ``readline(limit)`` so an endless line cannot exhaust
      memory.

    Args:
      stream: Buffered binary stream (see :class:`~mailpop.pop3.stream.Stream`).
      encoding: Text encoding for commands and replies. ``surrogateescape`` is
        used so octets that do not decode survive a round trip.
      max_line_length: Maximum accepted reply line length in bytes, excluding
        the terminator.
    """

    def __init__(
        self,
        stream: Stream,
        *,
        encoding: str = DEFAULT_ENCODING,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    ) -> None:
        if max_line_length <= 0:
            raise ValueError("max_line_length must be positive")
        self._stream = stream
        self._encoding = encoding
        self._max_line_length = max_line_length
        self._failure: Optional[BaseException] = None
        self._closed = False

    @property
    def stream(self) -> Stream:
        return self._stream

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def failure(self) -> Optional[BaseException]:
        """The transport failure that broke this connection, if any."""

        return self._failure

    def _ensure_usable(self) -> None:
        if self._closed:
            raise TransportError("connection is closed")
        if self._failure is not None:
            raise TransportError(
                f"connection unusable after earlier failure: {self._failure}"
            ) from self._failure

    def _read_line(self) -> str:
        """Read one reply line and strip its terminator.

        Raises:
          ConnectionClosedError: On end of stream, including a partial line
            without a terminator.
          MalformedResponseError: When the line exceeds ``max_line_length``.
          OSError: Whatever the stream raises, unchanged.
        """

        self._ensure_usable()
        try:
            raw = self._stream.readline(self._max_line_length + 2)
        except OSError as exc:
            self._failure = exc
            raise
        if raw.endswith(CRLF):
            raw = raw[:-2]
        elif raw.endswith(b"\n"):
            raw = raw[:-1]
        elif len(raw) >= self._max_line_length + 2:
            error = MalformedResponseError(
                f"reply line exceeds {self._max_line_length} bytes",
                raw[:64].decode(self._encoding, "replace"),
            )
            # The remainder of the line is still buffered; the stream is out of sync.
            self._failure = error
            raise error
        else:
            error = ConnectionClosedError("connection closed by server")
            self._failure = error
            raise error
        return raw.decode(self._encoding, "surrogateescape")

    def send_command(self, line: str) -> None:
        """Write ``line`` followed by CRLF and flush it immediately.

        Args:
          line: Fully formatted command line without terminator.

        Raises:
          ValueError: If ``line`` contains CR or LF.
          OSError: Write or flush failures from the stream.
        """

        if "\r" in line or "\n" in line:
            raise ValueError("command line must not contain CR or LF")
        self._ensure_usable()
        data = line.encode(self._encoding, "surrogateescape") + CRLF
        try:
            self._stream.write(data)
            self._stream.flush()
        except OSError as exc:
            self._failure = exc
            raise

    def read_response(self) -> str:
        """Read one status line and return the text after ``+OK``.

        What:
          Parses a single reply line. ``+OK text`` yields ``"text"``; a bare
          ``+OK`` yields ``""``.

        Why:
          Negative and malformed replies need different handling upstream, so
          they surface as different exception types.

        How:
          Check the length before slicing: fewer than three characters cannot
          hold ``+OK`` and a negative line must hold at least ``-ERR``.

        Returns:
          The reply text following the success marker and its space.

        Raises:
          ProtocolRejectionError: For a negative status line; ``message`` is
            the text after ``-ERR ``.
          MalformedResponseError: For empty or too-short status lines.
        """

        line = self._read_line()
        if len(line) < len(OK_MARKER):
            raise MalformedResponseError("status line too short", line)
        if line.startswith(OK_MARKER):
            return line[len(OK_MARKER) + 1:]
        if len(line) < len(ERR_MARKER):
            raise MalformedResponseError("status line too short", line)
        raise ProtocolRejectionError(line[len(ERR_MARKER) + 1:])

    def read_multiline(self) -> List[str]:
        """Read a dot-terminated body and return its lines.

        The terminating ``.`` line is not included and zero lines is a valid
        result. Lines collected before a failure are discarded.
        """

        lines: List[str] = []
        while True:
            line = self._read_line()
            if line == END_OF_BODY:
                return lines
            if line.startswith(END_OF_BODY):
                line = line[1:]
            lines.append(line)

    def issue_command(self, line: str) -> str:
        """Send ``line`` and return the parsed single-line reply."""

        self.send_command(line)
        return self.read_response()

    def close(self) -> None:
        """Close the underlying stream.

        A second call raises :class:`TransportError` instead of touching the
        stream again.
        """

        if self._closed:
            raise TransportError("connection already closed")
        self._closed = True
        self._stream.close()
