"""Pytest configuration shared by every suite.

What:
  Establish project import paths and apply a canned runtime configuration to
  every test.

Why:
  Tests should run against the in-repo source tree rather than an installed
  wheel, and the runtime configuration cache is global state that must not
  leak between tests.

How:
  Prepend ``mailpop/src`` (and ``tests/unit`` for the shared fakes) to
  ``sys.path`` and define :func:`runtime_config`, which points
  ``MAILPOP_CONFIG_PATH`` at ``tests/data/config.yaml`` and resets the cache
  around each test.

Interfaces:
  :func:`runtime_config` (autouse fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailpop" / "src"
UNIT_DIR = Path(__file__).resolve().parent / "unit"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

import pytest

from mailpop.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test.

    What:
      Sets ``MAILPOP_CONFIG_PATH`` to the repository fixture and clears the
      runtime configuration cache before and after each test.

    Args:
      monkeypatch: Pytest helper injected automatically for environment control.
    """

    monkeypatch.setenv("MAILPOP_CONFIG_PATH", str(CONFIG_PATH))
    monkeypatch.delenv("MAILPOP_LOG_LEVEL", raising=False)
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
