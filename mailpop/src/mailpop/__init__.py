"""
Module: mailpop.__init__

What:
  Aggregate package exports for the mailpop POP3 client and expose the
  primary namespace segments (configuration, POP3 protocol layer, and
  utilities).

Why:
  Centralising the exports keeps entry points stable while the internal layout
  evolves.

Interfaces:
  - config: Configuration schema and loaders.
  - pop3: Line framer, command client, session wrapper, and dial helpers.
  - utils: Structured logging.
"""

__all__ = [
    "config",
    "pop3",
    "utils",
]

__version__ = "0.1.0"
