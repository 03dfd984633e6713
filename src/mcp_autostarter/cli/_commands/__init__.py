"""MCP Autostarter CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._config import app as config_app
from ._run import app as run_app
from ._servers import app as servers_app
from ._shared import (
    ExitCode,
    exit_with_error,
    format_json,
    format_table,
    load_config_or_exit,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "ExitCode",
    "config_app",
    "exit_with_error",
    "format_json",
    "format_table",
    "load_config_or_exit",
    "register_commands",
    "run_app",
    "servers_app",
]


def register_commands(app: "App") -> None:
    """Attach the ``config``, ``run`` and ``servers`` sub-apps."""
    app.command(config_app)
    app.command(run_app)
    app.command(servers_app)
