"""Discovery, parsing, and caching of the runtime configuration.

What:
  Locate ``mailtree.yaml``, parse it with PyYAML, validate it against
  :class:`~mailtree.config.schema.RuntimeConfig`, and cache the result for the
  rest of the process.

Why:
  Connection settings and parser limits are read from several places (CLI,
  client construction, tests). A single cached, validated object keeps them
  consistent and turns malformed files into one clear error instead of
  failures deep inside a fetch.

How:
  Candidate paths are tried in precedence order: explicit argument, the
  ``MAILTREE_CONFIG_PATH`` environment variable, then well-known defaults.
  Explicitly requested files must exist; when none of the default locations
  exist the built-in defaults apply.

Interfaces:
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`, :class:`ConfigLoadError`,
  :class:`RuntimeConfigError`.

Invariants:
  - Everything returned has passed strict pydantic validation
    (``extra="forbid"``), so typos in keys are rejected.
  - ``reload=True`` always bypasses the cache.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """Raised when ``mailtree.yaml`` cannot be located, read, or validated."""


CONFIG_ENV = "MAILTREE_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("mailtree.yaml"),
    Path("/etc/mailtree/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _required_paths(path: Optional[Path]) -> Iterable[Path]:
    if path is not None:
        yield path.expanduser()
        return
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        yield Path(env_path).expanduser()


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse configuration text into a mapping ready for validation.

    Raises:
      RuntimeConfigError: If the YAML is invalid or not a mapping.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Read and validate the configuration stored at ``path``.

    What:
      Converts one file into a :class:`RuntimeConfig`.

    Why:
      Keeps :func:`load_runtime_config` focused on discovery and caching while
      this helper owns IO and validation errors.

    How:
      Reads the text, parses it via :func:`_parse_config_payload`, and
      validates it with :meth:`RuntimeConfig.model_validate`, wrapping each
      failure in :class:`RuntimeConfigError` with the file path.

    Args:
      path: Location of the configuration file.

    Returns:
      The validated :class:`RuntimeConfig`.

    Raises:
      RuntimeConfigError: If the file is missing, unreadable, or invalid.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid configuration in {path}: {exc}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Returns the validated configuration for this process.

    Why:
      Clients, the CLI, and tests all need the same settings; caching avoids
      re-reading the file while ``reload`` supports deterministic refreshes.

    How:
      Serves the cache unless ``reload`` is set or a different explicit path
      is requested. An explicit or environment supplied path must exist. When
      neither is given, the first existing default location is used, falling
      back to built-in defaults.

    Args:
      path: Optional explicit location of the configuration file.
      reload: Bypass the cache.

    Returns:
      The validated :class:`RuntimeConfig`.

    Raises:
      RuntimeConfigError: If a required file is missing or invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    for candidate in _required_paths(requested_path):
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate.exists():
            config = _load_runtime_from_path(candidate)
            _RUNTIME_CACHE = (candidate, config)
            return config

    config = RuntimeConfig()
    _RUNTIME_CACHE = (None, config)
    return config


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Forget the cached configuration so the next access reloads it."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
