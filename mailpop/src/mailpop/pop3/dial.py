"""Connection helpers that produce a ready :class:`~mailpop.pop3.client.Pop3Client`.

What:
  Open plain or TLS TCP connections, wrap them in
  :class:`~mailpop.pop3.stream.SocketStream`, and run the greeting handshake.
  :func:`open_client` does the same from an
  :class:`~mailpop.config.schema.AccountSettings` block.

Why:
  The command client only needs an open stream. Callers that start from a
  hostname still want a one-call way in, and they want the socket closed when
  the handshake fails so nothing leaks.

How:
  :func:`socket.create_connection` handles resolution and the connect timeout.
  TLS uses :func:`ssl.create_default_context` unless a context is supplied and
  always passes the dialled host as ``server_hostname``.

Interfaces:
  :func:`dial`, :func:`dial_tls`, :func:`open_client`.
"""
from __future__ import annotations

import socket
import ssl
from typing import TYPE_CHECKING, Any, Optional

from ..utils.logging import JsonLogger, get_logger
from .client import Pop3Client
from .stream import SocketStream

if TYPE_CHECKING:
    from ..config.schema import AccountSettings


POP3_PORT = 110
POP3_TLS_PORT = 995

_LOGGER = get_logger("pop3.dial")


def _handshake(sock: socket.socket, **client_kwargs: Any) -> Pop3Client:
    stream = SocketStream(sock)
    try:
        return Pop3Client(stream, **client_kwargs)
    except BaseException:
        stream.close()
        raise


def dial(
    host: str,
    port: int = POP3_PORT,
    *,
    connect_timeout: Optional[float] = None,
    **client_kwargs: Any,
) -> Pop3Client:
    """Connect to ``host:port`` over plain TCP and return a greeted client.

    Args:
      host: Server hostname or address.
      port: TCP port (110 by default).
      connect_timeout: Seconds allowed for the TCP connect; ``None`` blocks.
      **client_kwargs: Forwarded to :class:`Pop3Client` (``timeout``,
        ``encoding``, ``max_line_length``, ``logger``).
    """

    sock = socket.create_connection((host, port), timeout=connect_timeout)
    sock.settimeout(None)
    _LOGGER.info("connected", host=host, port=port, tls=False)
    return _handshake(sock, **client_kwargs)


def dial_tls(
    host: str,
    port: int = POP3_TLS_PORT,
    *,
    ssl_context: Optional[ssl.SSLContext] = None,
    connect_timeout: Optional[float] = None,
    **client_kwargs: Any,
) -> Pop3Client:
    """Connect to ``host:port`` over implicit TLS and return a greeted client.

    The certificate is checked against ``host``; pass a custom ``ssl_context``
    to change verification settings.
    """

    context = ssl_context or ssl.create_default_context()
    raw = socket.create_connection((host, port), timeout=connect_timeout)
    try:
        sock = context.wrap_socket(raw, server_hostname=host)
    except BaseException:
        raw.close()
        raise
    sock.settimeout(None)
    _LOGGER.info("connected", host=host, port=port, tls=True)
    return _handshake(sock, **client_kwargs)


def open_client(account: "AccountSettings", *, logger: Optional[JsonLogger] = None) -> Pop3Client:
    """Dial the server described by ``account`` without authenticating."""

    kwargs: dict[str, Any] = {
        "connect_timeout": account.connect_timeout,
        "timeout": account.timeout,
        "encoding": account.encoding,
        "max_line_length": account.max_line_length,
        "logger": logger,
    }
    if account.tls:
        return dial_tls(account.host, account.resolved_port, **kwargs)
    return dial(account.host, account.resolved_port, **kwargs)
