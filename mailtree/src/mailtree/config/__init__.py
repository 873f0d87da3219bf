"""mailtree configuration package.

What:
  Provide the import surface for configuration loading and the pydantic schema.

Why:
  Callers go through validated models instead of reading YAML themselves.

How:
  Re-export the loader helpers and schema classes.

Interfaces:
  - load_runtime_config / get_runtime_config / reset_runtime_config
  - RuntimeConfig, ImapSettings, ParsingSettings, FetchSettings,
    LoggingSettings
  - ConfigLoadError, RuntimeConfigError
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import FetchSettings, ImapSettings, LoggingSettings, ParsingSettings, RuntimeConfig

__all__ = [
    "load_runtime_config",
    "get_runtime_config",
    "reset_runtime_config",
    "ConfigLoadError",
    "RuntimeConfigError",
    "RuntimeConfig",
    "ImapSettings",
    "ParsingSettings",
    "FetchSettings",
    "LoggingSettings",
]
