"""Byte-stream contracts consumed by the framer, plus a socket adapter.

What:
  Describe the minimal stream surface :class:`~mailpop.pop3.textproto.TextConnection`
  needs and provide :class:`SocketStream`, a buffered socket wrapper that
  honours absolute deadlines.

Why:
  The framer must not care whether bytes come from a plain socket, a TLS
  socket, or an in-memory fake used by tests. Spelling out the contract as a
  :class:`typing.Protocol` keeps the seam explicit.

How:
  :class:`Stream` lists ``readline``/``write``/``flush``/``close``.
  :class:`DeadlineStream` adds ``set_deadline``. :class:`SocketStream` keeps a
  ``makefile("rwb")`` handle over the socket and converts the stored absolute
  deadline into a socket timeout right before each read or write.

Invariants & Safety:
  - Deadlines are absolute :func:`time.monotonic` values; ``None`` clears them.
  - An expired deadline raises :class:`socket.timeout` without touching the
    socket, matching what a timed-out ``recv`` would raise.
"""
from __future__ import annotations

import socket
import time
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Stream(Protocol):
    """Buffered binary channel owned by one framer."""

    def readline(self, limit: int = -1) -> bytes:
        ...

    def write(self, data: bytes) -> int:
        ...

    def flush(self) -> None:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class DeadlineStream(Stream, Protocol):
    """Stream whose pending operations fail once an absolute deadline passes."""

    def set_deadline(self, deadline: Optional[float]) -> None:
        ...


class SocketStream:
    """Adapt a connected socket to the :class:`DeadlineStream` contract.

    What:
      Wrap ``sock`` in a buffered read/write file object and track an optional
      absolute deadline.

    Why:
      Socket timeouts are relative and apply to each ``recv`` separately. The
      command client thinks in terms of "this whole exchange must finish by T",
      so the remaining budget is recomputed before every operation.

    How:
      :meth:`set_deadline` only stores the value. :meth:`readline`,
      :meth:`write`, and :meth:`flush` call :meth:`_arm` first, which sets the
      socket timeout to the remaining time (or back to the original timeout
      when no deadline is active).

    Args:
      sock: Connected socket (plain or TLS-wrapped).
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._file = sock.makefile("rwb")
        self._base_timeout = sock.gettimeout()
        self._deadline: Optional[float] = None
        self._closed = False

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def set_deadline(self, deadline: Optional[float]) -> None:
        self._deadline = deadline

    def _arm(self) -> None:
        if self._deadline is None:
            self._sock.settimeout(self._base_timeout)
            return
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise socket.timeout("deadline exceeded")
        self._sock.settimeout(remaining)

    def readline(self, limit: int = -1) -> bytes:
        self._arm()
        return self._file.readline(limit)

    def write(self, data: bytes) -> int:
        self._arm()
        return self._file.write(data)

    def flush(self) -> None:
        self._arm()
        self._file.flush()

    def close(self) -> None:
        if self._closed:
            raise OSError("stream already closed")
        self._closed = True
        try:
            self._file.close()
        finally:
            self._sock.close()
