"""Mailpop logging helpers with deterministic JSON emission and redaction safeguards.

What:
  Offer a tiny facade over Python streams so every mailpop component can emit
  JSON log lines with consistent fields and automatic removal of credentials
  and message content.

Why:
  POP3 sessions carry passwords on the wire and whole messages in replies. A
  structured layout keeps log parsing trivial while making sure neither ends
  up in a log file when debugging a session.

How:
  Provide a :class:`JsonLogger` dataclass that accepts a target stream, a
  severity threshold, and a component tag. ``extra`` dictionaries are scrubbed
  via a recursive redaction helper before being serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - The emitted payload always includes an ISO8601 timestamp, severity, and
    component name.
  - Sensitive keys (``password``, ``secret``, ``body``, ``text``) are replaced
    with ``[redacted]`` even inside nested dictionaries.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_LEVEL_ENV = "MAILPOP_LOG_LEVEL"
_SENSITIVE_KEYS = frozenset({"password", "secret", "body", "text"})


def _default_threshold() -> str:
    level = os.environ.get(_LEVEL_ENV, "WARN").upper()
    if level == "WARNING":
        level = "WARN"
    return level if level in LEVELS else "WARN"


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Encapsulates the logic required to emit single-line JSON log entries that
      include timestamps, severity, a component tag, and optional supplemental
      fields.

    Why:
      Centralising structured logging avoids duplicating the redaction logic and
      guarantees a uniform schema for log pipelines and test assertions.

    How:
      Stores the destination stream, component label, and threshold, then
      exposes :meth:`debug`, :meth:`info`, :meth:`warning`, and :meth:`error`
      which merge a canonical payload with redacted extras before serialising.
    """

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "mailpop"
    threshold: str = field(default_factory=_default_threshold)

    def enabled(self, level: str) -> bool:
        """Return whether ``level`` passes the configured threshold."""

        return LEVELS.get(level.upper(), 0) >= LEVELS.get(self.threshold.upper(), 0)

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        What:
          Serialises ``message`` and ``extra`` metadata to the configured stream
          using the log schema (``ts``, ``lvl``, ``msg``, ``component``).

        How:
          Drops entries below the threshold, builds a dictionary with the core
          fields, merges a redacted copy of ``extra``, writes a JSON payload,
          and flushes the stream.

        Args:
          level: Severity name (``"DEBUG"``, ``"INFO"``, ``"WARN"``, ``"ERROR"``).
          message: Core log message.
          extra: Optional context dictionary that will be redacted recursively.
        """

        if not self.enabled(level):
            return
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"))
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a wire-level trace entry (suppressed unless the threshold is DEBUG)."""

        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an informational message with structured context."""

        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message while enforcing redaction.

        Used for negative server replies: the session continues but the caller
        usually wants to know.
        """

        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error entry suitable for alerting."""

        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove sensitive keys from a payload recursively.

        What:
          Produces a copy of ``data`` where predefined fields are replaced with a
          sentinel ``[redacted]`` string.

        How:
          Walks the dictionary, applying the sentinel to known keys and recursing
          into nested dictionaries to preserve structure.

        Args:
          data: Arbitrary metadata to sanitise.

        Returns:
          A copy of ``data`` with sensitive values masked.
        """

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in _SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str, *, level: Optional[str] = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` for the requested component.

    What:
      Returns a ready-to-use :class:`JsonLogger` bound to ``component``.

    Why:
      Call sites should avoid instantiating :class:`JsonLogger` directly so
      shared invariants (redaction keys, default stream, threshold lookup) can
      evolve centrally.

    Args:
      component: Logical subsystem name to include in log payloads.
      level: Optional threshold override; defaults to ``MAILPOP_LOG_LEVEL``.

    Returns:
      Configured :class:`JsonLogger` instance.
    """

    if level is None:
        return JsonLogger(component=component)
    return JsonLogger(component=component, threshold=level.upper())
