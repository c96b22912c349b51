"""POP3 command client layered on the line framer.

What:
  Expose one method per POP3 verb (``USER``, ``PASS``, ``STAT``, ``LIST``,
  ``RETR``, ``TOP``, ``DELE``, ``NOOP``, ``RSET``, ``QUIT``, ``UIDL``) and turn
  textual replies into Python values.

Why:
  Callers want message counts, sizes, identifiers, and message text, not
  status lines. Keeping reply parsing beside the command that produced it makes
  each operation's failure modes easy to audit.

How:
  :class:`Pop3Client` wraps a stream in a
  :class:`~mailpop.pop3.textproto.TextConnection`, consumes the greeting, and
  issues every command inside :meth:`Pop3Client._deadline`, a context manager
  that sets an absolute deadline on the stream before the exchange and clears
  it on every exit path. Numeric fields are parsed strictly; anything that is
  not ASCII decimal raises
  :class:`~mailpop.pop3.errors.MalformedResponseError`.

Interfaces:
  :class:`MessageInfo`, :class:`Pop3Client`.

Invariants & Safety:
  - Session state is not checked here; see :mod:`mailpop.pop3.session` for the
    state-enforcing wrapper.
  - ``PASS`` arguments never reach the logger.
  - A failed ``QUIT`` leaves the transport open so the caller can retry or
    force-close.
"""
from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..utils.logging import JsonLogger, get_logger
from .errors import MalformedResponseError, ProtocolRejectionError
from .stream import Stream
from .textproto import DEFAULT_ENCODING, DEFAULT_MAX_LINE_LENGTH, TextConnection


LINE_SEPARATOR = "\n"


@dataclass
class MessageInfo:
    """Message descriptor returned by the listing operations.

    Attributes:
      seq: Session-scoped, 1-based sequence number.
      size: Size in octets, or ``None`` when the listing did not report it.
      uid: Server-assigned unique identifier, or ``None`` when not requested.
    """

    seq: int
    size: Optional[int] = None
    uid: Optional[str] = None


def _parse_number(value: str, line: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise MalformedResponseError("expected a decimal number", line)
    return int(value)


def _fields(line: str, count: int) -> List[str]:
    fields = line.split()
    if len(fields) < count:
        raise MalformedResponseError(f"expected at least {count} fields", line)
    return fields


def _check_seq(seq: int) -> int:
    if isinstance(seq, bool) or not isinstance(seq, int) or seq < 1:
        raise ValueError(f"message sequence number must be a positive integer, got {seq!r}")
    return seq


class Pop3Client:
    """Synchronous POP3 client owning one stream.

    What:
      Performs the greeting handshake on construction and then offers the
      POP3 command set as methods.

    Why:
      The protocol is strictly half-duplex, so a plain blocking object with one
      method per verb is the whole concurrency model. A single caller drives an
      instance; concurrent use from several threads is not supported.

    How:
      Every method goes through :meth:`_command`, which applies the deadline
      scope, sends the command, parses the status line, and logs the exchange.
      Multi-line replies are read inside the same deadline scope.

    Args:
      stream: An already-open stream. Must provide ``set_deadline`` when a
        timeout is configured.
      timeout: Per-command timeout in seconds; ``None`` or ``0`` disables it.
      encoding: Text encoding for the framer.
      max_line_length: Longest accepted reply line in bytes.
      logger: Structured logger; defaults to ``get_logger("pop3")``.

    Raises:
      ProtocolRejectionError: If the server greets with a negative reply.
      MalformedResponseError: If the greeting line is malformed.
      OSError: If the stream fails while reading the greeting.
    """

    def __init__(
        self,
        stream: Stream,
        *,
        timeout: Optional[float] = None,
        encoding: str = DEFAULT_ENCODING,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._stream = stream
        self._text = TextConnection(stream, encoding=encoding, max_line_length=max_line_length)
        self._logger = logger or get_logger("pop3")
        self._timeout: Optional[float] = None
        self.use_timeouts(timeout)
        with self._deadline():
            self._greeting = self._text.read_response()
        self._logger.info("greeting received", greeting=self._greeting)

    @property
    def greeting(self) -> str:
        """Text of the server greeting, without the ``+OK`` marker."""

        return self._greeting

    @property
    def text(self) -> TextConnection:
        """The framer, for callers that need raw exchanges."""

        return self._text

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def use_timeouts(self, timeout: Optional[float]) -> None:
        """Set the per-command timeout in seconds (``None``/``0`` disables it).

        Raises:
          ValueError: For a negative timeout.
          TypeError: When a timeout is requested on a stream that cannot take
            deadlines.
        """

        if timeout is not None and timeout < 0:
            raise ValueError("timeout must not be negative")
        if timeout and not hasattr(self._stream, "set_deadline"):
            raise TypeError("stream does not support deadlines")
        self._timeout = timeout or None

    @contextlib.contextmanager
    def _deadline(self) -> Iterator[None]:
        """Scope an absolute deadline over exactly one exchange."""

        if self._timeout is None:
            yield
            return
        self._stream.set_deadline(time.monotonic() + self._timeout)  # type: ignore[attr-defined]
        try:
            yield
        finally:
            self._stream.set_deadline(None)  # type: ignore[attr-defined]

    def _command(self, verb: str, *args: object, multiline: bool = False) -> Tuple[str, List[str]]:
        """Issue ``verb`` with ``args`` and return the reply text and body lines."""

        line = " ".join([verb, *(str(arg) for arg in args)])
        if verb == "PASS":
            self._logger.debug("command", verb=verb)
        else:
            self._logger.debug("command", verb=verb, args=[str(arg) for arg in args])
        with self._deadline():
            try:
                reply = self._text.issue_command(line)
            except ProtocolRejectionError as exc:
                self._logger.warning("command rejected", verb=verb, reply=exc.message)
                raise
            lines = self._text.read_multiline() if multiline else []
        return reply, lines

    def user(self, name: str) -> None:
        """Send ``USER name``."""

        self._command("USER", name)

    def pass_(self, secret: str) -> None:
        """Send ``PASS secret``.

        The password travels in clear text unless the stream is already
        encrypted (for example via :func:`~mailpop.pop3.dial.dial_tls`).
        """

        self._command("PASS", secret)

    def auth(self, name: str, secret: str) -> None:
        """Authenticate with ``USER`` then ``PASS``.

        If ``USER`` is rejected the error propagates and ``PASS`` is never sent.
        """

        self.user(name)
        self.pass_(secret)

    def stat(self) -> Tuple[int, int]:
        """Return ``(message_count, maildrop_size)`` from ``STAT``.

        Fields after the first two are ignored, as RFC 1939 allows servers to
        append extra information.
        """

        reply, _ = self._command("STAT")
        fields = _fields(reply, 2)
        return _parse_number(fields[0], reply), _parse_number(fields[1], reply)

    def list(self, seq: int) -> int:
        """Return the size in octets of message ``seq``."""

        reply, _ = self._command("LIST", _check_seq(seq))
        fields = _fields(reply, 2)
        return _parse_number(fields[1], reply)

    def list_all(self) -> List[MessageInfo]:
        """Return a :class:`MessageInfo` with ``seq`` and ``size`` per message.

        A single unparseable line fails the whole listing.
        """

        _, lines = self._command("LIST", multiline=True)
        infos: List[MessageInfo] = []
        for line in lines:
            fields = _fields(line, 2)
            infos.append(
                MessageInfo(seq=_parse_number(fields[0], line), size=_parse_number(fields[1], line))
            )
        return infos

    def retr(self, seq: int) -> str:
        """Download message ``seq``.

        Lines are joined with ``"\\n"`` whatever line ending the server used.
        """

        _, lines = self._command("RETR", _check_seq(seq), multiline=True)
        self._logger.debug("message retrieved", seq=seq, lines=len(lines))
        return LINE_SEPARATOR.join(lines)

    def top(self, seq: int, lines: int) -> str:
        """Return the headers of message ``seq`` plus its first ``lines`` body lines."""

        if isinstance(lines, bool) or not isinstance(lines, int) or lines < 0:
            raise ValueError(f"line count must be a non-negative integer, got {lines!r}")
        _, body = self._command("TOP", _check_seq(seq), lines, multiline=True)
        return LINE_SEPARATOR.join(body)

    def dele(self, seq: int) -> None:
        """Mark message ``seq`` as deleted; committed only by ``QUIT``."""

        self._command("DELE", _check_seq(seq))

    def noop(self) -> None:
        """Send ``NOOP`` to keep the server's idle timer from expiring."""

        self._command("NOOP")

    def rset(self) -> None:
        """Unmark every message marked for deletion in this session."""

        self._command("RSET")

    def quit(self) -> None:
        """Send ``QUIT`` and close the transport on success.

        On a rejected ``QUIT`` the transport stays open; call :meth:`quit`
        again or :meth:`close` to abandon the session.
        """

        self._command("QUIT")
        self._text.close()
        self._logger.info("session closed")

    def uidl(self, seq: int) -> str:
        """Return the unique identifier of message ``seq``."""

        reply, _ = self._command("UIDL", _check_seq(seq))
        return _fields(reply, 2)[1]

    def uidl_all(self) -> List[MessageInfo]:
        """Return a :class:`MessageInfo` with ``seq`` and ``uid`` per message."""

        _, lines = self._command("UIDL", multiline=True)
        infos: List[MessageInfo] = []
        for line in lines:
            fields = _fields(line, 2)
            infos.append(MessageInfo(seq=_parse_number(fields[0], line), uid=fields[1]))
        return infos

    def close(self) -> None:
        """Close the transport without sending ``QUIT``; pending deletions are lost."""

        self._text.close()
