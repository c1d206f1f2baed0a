# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {"id": "isolated-log-dir", "name": "isolated_log_dir", "anchor": "function-isolated-log-dir", "kind": "function"},
#     {"id": "reset-updatekit-logger", "name": "reset_updatekit_logger", "anchor": "function-reset-updatekit-logger", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Registers the shared HTTP mocking fixtures, keeps log files inside the test's
temporary directory and strips handlers installed on the ``UpdateKit`` logger
so tests do not leak logging state into each other.
"""

from __future__ import annotations

import logging
from typing import Generator

import pytest

from tests.fixtures.http_mocking import mocked_http_client  # noqa: F401


@pytest.fixture(autouse=True)
def isolated_log_dir(tmp_path, monkeypatch):
    """Point default log output at a per-test directory."""
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("UPDATEKIT_LOG_DIR", str(log_dir))
    return log_dir


@pytest.fixture(autouse=True)
def reset_updatekit_logger() -> Generator[None, None, None]:
    yield
    logger = logging.getLogger("UpdateKit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
