"""Shared utilities for mailtree.

What:
  Re-export the structured logging helpers.

Why:
  Modules import ``get_logger`` from one stable place regardless of how the
  utility package is laid out.

How:
  Imports the canonical callables and populates ``__all__``.
"""

from .logging import JsonLogger, configure_logging, get_logger

__all__ = ["JsonLogger", "configure_logging", "get_logger"]
