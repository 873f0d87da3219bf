"""Pydantic models describing the mailtree runtime configuration."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Kept well below the interpreter recursion limit.
MAX_NESTING_DEPTH = 200


class ImapSettings(BaseModel):
    """Server connection defaults used by :class:`~mailtree.imap.client.MailboxClient`."""

    model_config = ConfigDict(extra="forbid")

    host: Optional[str] = None
    port: int = Field(default=993, gt=0, lt=65536)
    ssl: bool = True
    insecure_skip_verify: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    folder: str = "INBOX"
    readonly: bool = True


class ParsingSettings(BaseModel):
    """Limits and policy applied while reconstructing messages."""

    model_config = ConfigDict(extra="forbid")

    max_depth: int = Field(default=32, ge=1, le=MAX_NESTING_DEPTH)
    strict: bool = False


class FetchSettings(BaseModel):
    """Streaming parameters for bulk fetches."""

    model_config = ConfigDict(extra="forbid")

    channel_capacity: int = Field(default=100, ge=1)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARN", "WARNING", "ERROR"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``mailtree.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    imap: ImapSettings = Field(default_factory=ImapSettings)
    parsing: ParsingSettings = Field(default_factory=ParsingSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
