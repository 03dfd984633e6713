from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from mcp_autostarter.cli import create_app

MCP_JSON = """{
  "servers": {
    "files": {
      "type": "stdio",
      "command": "npx",
      "args": ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"],
      "autoStart": true
    },
    "remote": {"type": "http", "url": "http://localhost:8931/mcp", "autoStart": true},
    "manual": {"command": "uvx", "args": ["mcp-server-time"]}
  }
}
"""


@pytest.fixture
def autostarter_cli(console: Console) -> Callable[..., None]:
    """Create CLI app for testing.

    Returns a callable that runs the CLI and suppresses SystemExit.
    Use autostarter_cli_with_exit_code when you need to check the exit code.
    """

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> None:
        try:
            app(args)
        except SystemExit:
            pass

    return _run


@pytest.fixture
def autostarter_cli_with_exit_code(console: Console) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code."""

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def mcp_json(tmp_path: Path) -> Path:
    """Write a VS Code style mcp.json with three servers."""
    path = tmp_path / "mcp.json"
    _ = path.write_text(MCP_JSON)
    return path
