"""Structured JSON logging with message-content redaction.

What:
  Emit one JSON object per line (``ts``, ``lvl``, ``msg``, ``component`` plus
  structured extras) for every diagnostic produced while fetching and parsing
  mail.

Why:
  Parse failures are only debuggable with context (UID, part path, encoding
  name), but that context must never leak the content being parsed. Subjects,
  bodies, filenames, and addresses are personal data and are masked before a
  line is written.

How:
  :class:`JsonLogger` filters by a severity threshold, redacts known sensitive
  keys recursively, and writes compact JSON to ``stderr`` so that command
  output on ``stdout`` stays machine readable. :func:`configure_logging` sets
  the process wide threshold from the runtime configuration.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`, :func:`configure_logging`.

Invariants & Safety:
  - Every line carries an ISO8601 UTC timestamp, severity, and component.
  - Redaction applies inside nested dictionaries and lists of dictionaries.
  - Streams are flushed after every line.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"subject", "body", "filename", "from", "to", "address"})
LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "WARNING": 30, "ERROR": 40}

_threshold = LEVELS["INFO"]


def configure_logging(level: str) -> None:
    """Set the minimum severity written by every :class:`JsonLogger`.

    Raises:
      ValueError: If ``level`` is not a known severity name.
    """

    global _threshold
    try:
        _threshold = LEVELS[level.upper()]
    except KeyError:
        raise ValueError(f"unknown log level {level!r}") from None


@dataclass
class JsonLogger:
    """Component-scoped JSON line logger.

    ``stream`` is resolved at write time when left unset so that test
    harnesses replacing ``sys.stderr`` capture the output.
    """

    component: str = "mailtree"
    stream: Optional[Any] = None
    level: Optional[str] = None

    def enabled(self, level: str) -> bool:
        threshold = LEVELS[self.level.upper()] if self.level else _threshold
        return LEVELS[level.upper()] >= threshold

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Write ``message`` with redacted ``extra`` context if ``level`` passes."""

        if not self.enabled(level):
            return
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(_redact(extra))
        stream = self.stream if self.stream is not None else sys.stderr
        json.dump(payload, stream, separators=(",", ":"), default=str)
        stream.write("\n")
        stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)


def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = _redact(value)
        elif isinstance(value, list):
            result[key] = [_redact(item) if isinstance(item, dict) else item for item in value]
        else:
            result[key] = value
    return result


def get_logger(component: str) -> JsonLogger:
    """Return a :class:`JsonLogger` bound to ``component``."""

    return JsonLogger(component=component)
