"""Shared test fixtures for MCP Autostarter tests."""

import logging
import os

import pytest
import structlog
from rich.console import Console
from structlog.testing import LogCapture
from structlog.typing import FilteringBoundLogger


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def log_capture() -> LogCapture:
    return LogCapture()


@pytest.fixture
def logger(log_capture: LogCapture) -> FilteringBoundLogger:
    """Create a standalone logger whose entries land in ``log_capture``."""
    return structlog.wrap_logger(
        structlog.PrintLogger(),
        processors=[log_capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's MCP_AUTOSTARTER_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("MCP_AUTOSTARTER_"):
            monkeypatch.delenv(key)
