# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Commands for locating and viewing the configuration."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from mcp_autostarter.config import discover_config_path

from ._shared import ExitCode, format_json, load_config_or_exit

app = App(name="config", help="Locate and view the configuration", help_on_error=True)


@app.command(name="path")
def config_path() -> None:
    """Print the path of the configuration file in use."""
    path = discover_config_path()
    suffix = "" if path.is_file() else " (not found)"
    print(f"{path}{suffix}")
    raise SystemExit(ExitCode.SUCCESS)


@app.command(name="show")
def show_config(
    *,
    config: Annotated[
        Path | None,
        Parameter(name="--config", help="Path to the MCP configuration file."),
    ] = None,
) -> None:
    """Print the effective configuration as JSON, defaults included."""
    loaded = load_config_or_exit(config)
    print(format_json(loaded.model_dump(mode="json", by_alias=True)))
    raise SystemExit(ExitCode.SUCCESS)
