"""Pytest configuration shared by unit and end-to-end suites.

What:
  Put the in-repo source tree on ``sys.path`` and apply a canned runtime
  configuration to every test.

Why:
  The suites must exercise ``mailtree/src`` rather than an installed wheel, and
  the runtime configuration is cached process wide, so tests would otherwise
  leak settings into each other.

How:
  Prepend ``mailtree/src`` at import time and define :func:`runtime_config`,
  which points ``MAILTREE_CONFIG_PATH`` at ``tests/data/config.yaml`` and
  clears the configuration cache and log threshold around each test.

Interfaces:
  :func:`runtime_config` (autouse fixture), :data:`CONFIG_PATH`.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailtree" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailtree.config.loader import CONFIG_ENV, reset_runtime_config
from mailtree.utils.logging import configure_logging

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test.

    Args:
      monkeypatch: Pytest helper used for environment control.
    """

    monkeypatch.setenv(CONFIG_ENV, str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
        configure_logging("INFO")
