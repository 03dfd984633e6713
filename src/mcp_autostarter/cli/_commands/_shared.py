# pyright: reportExplicitAny=false
"""Helpers shared by the CLI commands: exit codes, output formatting and
configuration loading."""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

from rich.console import Console

from mcp_autostarter.config import load_config
from mcp_autostarter.exceptions import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

    from mcp_autostarter.config import AutostarterConfig

__all__ = [
    "ExitCode",
    "exit_with_error",
    "format_json",
    "format_table",
    "load_config_or_exit",
]


class ExitCode(IntEnum):
    """Process exit codes of the CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    INTERNAL_ERROR = 5


def format_json(data: dict[str, Any], *, indent: bool = True) -> str:
    """Render ``data`` as JSON, indented by two spaces unless ``indent`` is False."""
    import orjson

    return orjson.dumps(data, option=orjson.OPT_INDENT_2 if indent else None).decode()


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Render rows as a Markdown table."""
    from pytablewriter import MarkdownTableWriter

    return MarkdownTableWriter(headers=headers, value_matrix=rows, margin=1).dumps()


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Report ``message`` on stderr and exit with ``code``.

    Raises:
        SystemExit: Always.
    """
    (console or Console(stderr=True)).print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


def load_config_or_exit(
    path: "Path | None", workspace: "Path | None" = None
) -> "AutostarterConfig":
    """Load the configuration, exiting with LOAD_ERROR when that fails.

    Args:
        path: Configuration file. Discovered if None.
        workspace: VS Code workspace folder whose servers are added.

    Raises:
        SystemExit: With ExitCode.LOAD_ERROR if loading fails.
    """
    try:
        return load_config(path, workspace=workspace)
    except ConfigError as e:
        print(f"Error: {e}")  # noqa: T201
        raise SystemExit(ExitCode.LOAD_ERROR) from e
