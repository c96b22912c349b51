"""Mailpop configuration package.

What:
  Provide the import surface for configuration loading and the pydantic schema
  classes used by the CLI and :func:`mailpop.pop3.dial.open_client`.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config
  - ConfigLoadError / RuntimeConfigError
  - RuntimeConfig / AccountSettings / LoggingSettings / ValidationError
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import AccountSettings, LoggingSettings, RuntimeConfig, ValidationError

__all__ = [
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
    "ConfigLoadError",
    "RuntimeConfigError",
    "AccountSettings",
    "LoggingSettings",
    "RuntimeConfig",
    "ValidationError",
]
