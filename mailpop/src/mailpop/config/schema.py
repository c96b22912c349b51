"""Pydantic models describing the mailpop runtime configuration."""
from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ValidationError(ValueError):
    """Raised when configuration data does not satisfy the schema."""


class AccountSettings(BaseModel):
    """Connection and credential settings for one POP3 maildrop."""

    model_config = ConfigDict(extra="forbid")

    host: str = Field(min_length=1)
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    tls: bool = True
    username: str = Field(min_length=1)
    password: Optional[str] = None
    password_env: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    connect_timeout: Optional[float] = Field(default=None, gt=0)
    encoding: str = "utf-8"
    max_line_length: int = Field(default=8192, gt=0)

    @model_validator(mode="after")
    def _validate_password_source(self) -> "AccountSettings":
        if (self.password is None) == (self.password_env is None):
            raise ValueError("exactly one of password or password_env must be set")
        return self

    @property
    def resolved_port(self) -> int:
        if self.port is not None:
            return self.port
        return 995 if self.tls else 110

    def resolve_password(self) -> str:
        """Return the password, reading ``password_env`` from the environment if set."""

        if self.password is not None:
            return self.password
        value = os.environ.get(self.password_env or "")
        if value is None:
            raise ValidationError(f"environment variable {self.password_env} is not set")
        return value


class LoggingSettings(BaseModel):
    """Threshold for the structured JSON logger."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "WARN"


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    account: AccountSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
