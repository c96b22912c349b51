"""State-checked POP3 session wrapper.

What:
  Wrap a :class:`~mailpop.pop3.client.Pop3Client` and only allow each command
  in the session states RFC 1939 permits (AUTHORIZATION, TRANSACTION, UPDATE).

Why:
  The bare client sends whatever it is asked to. Callers that want mistakes
  such as ``RETR`` before ``PASS`` caught locally, without a round trip and a
  server rejection, use this wrapper instead.

How:
  :class:`Pop3Session` stores a :class:`SessionState` and checks it through
  :meth:`Pop3Session._require` before delegating. Transitions happen only when
  the delegated command succeeds. The context-manager protocol sends ``QUIT``
  on exit and force-closes the transport when that is not possible.

Interfaces:
  :class:`SessionState`, :class:`Pop3Session`.

Invariants & Safety:
  - A refused call raises :class:`~mailpop.pop3.errors.SessionStateError`
    and performs no I/O.
  - UPDATE is terminal; a session cannot be reused after ``QUIT``.
"""
from __future__ import annotations

import enum
from typing import List, Optional, Set, Tuple

from .client import MessageInfo, Pop3Client
from .errors import SessionStateError


class SessionState(enum.Enum):
    AUTHORIZATION = "authorization"
    TRANSACTION = "transaction"
    UPDATE = "update"

    def __str__(self) -> str:
        return self.name


class Pop3Session:
    """Enforce the POP3 session state machine around a client.

    Args:
      client: Freshly greeted client; the session assumes no command has been
        issued on it yet.
    """

    def __init__(self, client: Pop3Client) -> None:
        self._client = client
        self._state = SessionState.AUTHORIZATION
        self._user_accepted = False
        self._pending: Set[int] = set()
        self._quit_failed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def client(self) -> Pop3Client:
        return self._client

    @property
    def pending_deletions(self) -> Set[int]:
        """Sequence numbers marked with ``DELE`` since the last ``RSET``."""

        return set(self._pending)

    def _require(self, operation: str, *states: SessionState) -> None:
        if self._state not in states:
            raise SessionStateError(operation, self._state)

    def __enter__(self) -> "Pop3Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Send ``QUIT`` unless already done; force-close when that fails.

        A ``QUIT`` failure is not raised from here when the block itself raised,
        so the original exception is the one the caller sees. After the caller's
        own ``QUIT`` failed, the transport is closed without sending another.
        """

        if self._state is SessionState.UPDATE or self._client.text.closed:
            return
        if self._quit_failed or self._client.text.failure is not None:
            self._client.close()
            return
        try:
            self.quit()
        except Exception:
            if not self._client.text.closed:
                self._client.close()
            if exc_type is None:
                raise

    # AUTHORIZATION --------------------------------------------------------
    def user(self, name: str) -> None:
        self._require("USER", SessionState.AUTHORIZATION)
        self._user_accepted = False
        self._client.user(name)
        self._user_accepted = True

    def pass_(self, secret: str) -> None:
        """Send ``PASS``; only valid right after an accepted ``USER``."""

        self._require("PASS", SessionState.AUTHORIZATION)
        if not self._user_accepted:
            raise SessionStateError("PASS without USER", self._state)
        # A rejected PASS sends the server back to expecting USER.
        self._user_accepted = False
        self._client.pass_(secret)
        self._state = SessionState.TRANSACTION

    def auth(self, name: str, secret: str) -> None:
        self.user(name)
        self.pass_(secret)

    # TRANSACTION ----------------------------------------------------------
    def stat(self) -> Tuple[int, int]:
        self._require("STAT", SessionState.TRANSACTION)
        return self._client.stat()

    def list(self, seq: int) -> int:
        self._require("LIST", SessionState.TRANSACTION)
        return self._client.list(seq)

    def list_all(self) -> List[MessageInfo]:
        self._require("LIST", SessionState.TRANSACTION)
        return self._client.list_all()

    def retr(self, seq: int) -> str:
        self._require("RETR", SessionState.TRANSACTION)
        return self._client.retr(seq)

    def top(self, seq: int, lines: int) -> str:
        self._require("TOP", SessionState.TRANSACTION)
        return self._client.top(seq, lines)

    def dele(self, seq: int) -> None:
        self._require("DELE", SessionState.TRANSACTION)
        self._client.dele(seq)
        self._pending.add(seq)

    def noop(self) -> None:
        self._require("NOOP", SessionState.TRANSACTION)
        self._client.noop()

    def rset(self) -> None:
        self._require("RSET", SessionState.TRANSACTION)
        self._client.rset()
        self._pending.clear()

    def uidl(self, seq: int) -> str:
        self._require("UIDL", SessionState.TRANSACTION)
        return self._client.uidl(seq)

    def uidl_all(self) -> List[MessageInfo]:
        self._require("UIDL", SessionState.TRANSACTION)
        return self._client.uidl_all()

    # UPDATE ---------------------------------------------------------------
    def quit(self) -> Optional[Set[int]]:
        """Send ``QUIT`` and enter UPDATE.

        Returns:
          The sequence numbers whose deletion the server committed, or ``None``
          when quitting from AUTHORIZATION (no UPDATE phase happens there).
        """

        self._require("QUIT", SessionState.AUTHORIZATION, SessionState.TRANSACTION)
        committed = self._pending if self._state is SessionState.TRANSACTION else None
        try:
            self._client.quit()
        except Exception:
            self._quit_failed = True
            raise
        self._state = SessionState.UPDATE
        self._pending = set()
        return committed
