# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The run command - supervises the configured MCP servers."""

from functools import partial
from pathlib import Path
from typing import Annotated

import anyio
from cyclopts import App, Parameter

from mcp_autostarter.config import discover_config_path, get_workspace_config_path

from .._shared import ExitCode, exit_with_error, load_config_or_exit

app = App(
    name="run",
    help="Start auto-start servers and keep them running",
    help_on_error=True,
)


@app.default
def run(  # noqa: PLR0913
    *,
    config: Annotated[
        Path | None,
        Parameter(name="--config", help="Path to the MCP configuration file."),
    ] = None,
    workspace: Annotated[
        Path | None,
        Parameter(name="--workspace", help="Workspace folder whose .vscode/mcp.json adds servers."),
    ] = None,
    host: Annotated[
        str,
        Parameter(help="Host for the supervisor control API."),
    ] = "127.0.0.1",
    control_port: Annotated[
        int,
        Parameter(help="Port for the supervisor control API."),
    ] = 6279,
    no_control: Annotated[
        bool,
        Parameter(help="Disable the supervisor control API."),
    ] = False,
    no_watch: Annotated[
        bool,
        Parameter(help="Do not reload the configuration when it changes."),
    ] = False,
) -> None:
    """Supervise the configured MCP servers until interrupted.

    Starts every enabled server marked for auto-start, checks their health
    periodically and restarts servers that die. Servers added to the
    configuration while running are started when the file changes.
    """
    from ._runner import run_supervisor

    if not 0 < control_port < 65536:  # noqa: PLR2004
        exit_with_error(
            f"Invalid control port: {control_port}", ExitCode.VALIDATION_ERROR
        )

    config_path = config if config is not None else discover_config_path()
    loaded = load_config_or_exit(config_path, workspace)

    print(f"Starting MCP Autostarter ({len(loaded.servers)} server(s) configured)")
    print(f"  Configuration: {config_path}")
    if workspace is not None:
        print(f"  Workspace: {get_workspace_config_path(workspace)}")
    if not no_control:
        print(f"  Control API: http://{host}:{control_port}/supervisor/status")
    if not no_watch:
        print("  Configuration watch: enabled")
    print()

    anyio.run(
        partial(
            run_supervisor,
            loaded,
            config_path,
            workspace=workspace,
            host=host,
            control_port=control_port,
            control=not no_control,
            watch=not no_watch,
        )
    )


if __name__ == "__main__":
    app()
