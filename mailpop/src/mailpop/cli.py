"""Mailpop command-line interface.

What:
  Provide a Typer-based entry point for inspecting and draining a POP3
  maildrop: ``stat``, ``list``, ``uidl``, ``retr``, ``top``, and ``delete``.

Why:
  Operators need a quick way to check an account configured in
  ``config.yaml`` without writing Python. Routing every command through the
  same session helper guarantees that each run authenticates the same way and
  always ends with ``QUIT`` (or a forced close).

How:
  The Typer callback records the ``--config`` option. Each command opens an
  authenticated :class:`~mailpop.pop3.session.Pop3Session` through
  :func:`_session`, performs its work, and lets the session's context manager
  send ``QUIT`` on the way out.

Interfaces:
  ``app`` (Typer application), ``main``.

Invariants & Safety:
  - Exit codes: ``0`` success, ``1`` POP3 or transport failure, ``2``
    configuration error.
  - Passwords are never echoed or logged.
"""
from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from .config.loader import ConfigLoadError, load_runtime_config
from .config.schema import RuntimeConfig, ValidationError
from .pop3.dial import open_client
from .pop3.errors import Pop3Error
from .pop3.session import Pop3Session
from .utils.logging import get_logger


app = typer.Typer(help="Mailpop POP3 client")

LOGGER = logging.getLogger("mailpop.cli")


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml (overrides MAILPOP_CONFIG_PATH)"
    ),
) -> None:
    """Talk to the POP3 maildrop described in ``config.yaml``."""

    ctx.obj = config


def _runtime(ctx: typer.Context) -> RuntimeConfig:
    try:
        return load_runtime_config(ctx.obj)
    except ConfigLoadError as exc:
        LOGGER.error("runtime_load_failed: %s", exc)
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@contextlib.contextmanager
def _session(ctx: typer.Context) -> Iterator[Pop3Session]:
    """Yield an authenticated session for the configured account.

    What:
      Load the runtime configuration, dial the server, authenticate, and yield
      the session in TRANSACTION state.

    Why:
      Every command needs the same setup and the same failure handling; keeping
      it here means exit codes stay consistent across commands.

    How:
      Resolve the password first so configuration mistakes fail before any
      network activity. Protocol and transport errors raised while dialling or
      inside the ``with`` block become exit code 1.
    """

    runtime = _runtime(ctx)
    account = runtime.account
    try:
        password = account.resolve_password()
    except ValidationError as exc:
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    logger = get_logger("pop3", level=runtime.logging.level)
    try:
        with Pop3Session(open_client(account, logger=logger)) as session:
            session.auth(account.username, password)
            yield session
    except (Pop3Error, OSError) as exc:
        LOGGER.error("pop3_failed host=%s error=%s", account.host, exc)
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("stat")
def stat(ctx: typer.Context) -> None:
    """Print the message count and maildrop size in octets."""

    with _session(ctx) as session:
        count, size = session.stat()
    typer.echo(f"{count} {size}")


@app.command("list")
def list_messages(
    ctx: typer.Context,
    seq: Optional[int] = typer.Argument(None, min=1, help="Message sequence number"),
) -> None:
    """Print ``<seq> <size>`` for one message or for the whole maildrop."""

    with _session(ctx) as session:
        if seq is not None:
            rows = [f"{seq} {session.list(seq)}"]
        else:
            rows = [f"{info.seq} {info.size}" for info in session.list_all()]
    for row in rows:
        typer.echo(row)


@app.command("uidl")
def uidl(
    ctx: typer.Context,
    seq: Optional[int] = typer.Argument(None, min=1, help="Message sequence number"),
) -> None:
    """Print ``<seq> <uid>`` for one message or for the whole maildrop."""

    with _session(ctx) as session:
        if seq is not None:
            rows = [f"{seq} {session.uidl(seq)}"]
        else:
            rows = [f"{info.seq} {info.uid}" for info in session.uidl_all()]
    for row in rows:
        typer.echo(row)


@app.command("retr")
def retr(
    ctx: typer.Context,
    seq: int = typer.Argument(..., min=1, help="Message sequence number"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the message to this file instead of stdout"
    ),
) -> None:
    """Download one message."""

    with _session(ctx) as session:
        text = session.retr(seq)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8", errors="surrogateescape")
    LOGGER.info("retr_written seq=%s path=%s", seq, output)


@app.command("top")
def top(
    ctx: typer.Context,
    seq: int = typer.Argument(..., min=1, help="Message sequence number"),
    lines: int = typer.Option(
        0, "--lines", "-n", min=0, help="Body lines to include after the headers"
    ),
) -> None:
    """Print the headers of one message and the first ``--lines`` body lines."""

    with _session(ctx) as session:
        text = session.top(seq, lines)
    typer.echo(text)


@app.command("delete")
def delete(
    ctx: typer.Context,
    seqs: List[int] = typer.Argument(..., min=1, help="Message sequence numbers to delete"),
) -> None:
    """Mark messages for deletion and commit them with ``QUIT``."""

    with _session(ctx) as session:
        for seq in seqs:
            session.dele(seq)
        committed = session.quit()
    typer.echo(f"deleted {len(committed or ())} message(s)")


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
