# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: A002, TC003  # Path needed at runtime for cyclopts parameter parsing
"""Commands for inspecting the configured MCP servers."""

from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter

from mcp_autostarter.config import ConfigurationError, ServerEntry

from ._shared import ExitCode, format_json, format_table, load_config_or_exit

app = App(name="servers", help="Inspect configured MCP servers", help_on_error=True)

ConfigOption = Annotated[
    Path | None,
    Parameter(name="--config", help="Path to the MCP configuration file."),
]
WorkspaceOption = Annotated[
    Path | None,
    Parameter(name="--workspace", help="Workspace folder whose .vscode/mcp.json adds servers."),
]


def _describe_entry(server_id: str, entry: ServerEntry) -> dict[str, object]:
    """Summarize one server entry, including its validation result."""
    error: str | None = None
    try:
        descriptor = entry.to_descriptor(server_id)
    except ConfigurationError as e:
        descriptor = None
        error = str(e)

    return {
        "name": descriptor.name if descriptor is not None else entry.name or server_id,
        "type": entry.server_type,
        "kind": descriptor.kind.value if descriptor is not None else None,
        "command": " ".join(descriptor.argv) if descriptor and descriptor.command else None,
        "url": entry.url or None,
        "autoStart": entry.auto_start,
        "enabled": entry.enabled,
        "valid": error is None,
        "error": error,
    }


@app.command(name="list")
def list_servers(
    *,
    config: ConfigOption = None,
    workspace: WorkspaceOption = None,
    format: Annotated[
        Literal["table", "json"],
        Parameter(help="Output format."),
    ] = "table",
) -> None:
    """List the servers declared in the configuration."""
    loaded = load_config_or_exit(config, workspace)
    servers = {
        server_id: _describe_entry(server_id, entry)
        for server_id, entry in loaded.servers.items()
    }

    if format == "json":
        print(
            format_json(
                {"globalAutoStart": loaded.global_auto_start, "servers": servers}
            )
        )
        raise SystemExit(ExitCode.SUCCESS)

    if not servers:
        print("No servers configured")
        raise SystemExit(ExitCode.SUCCESS)

    rows = [
        [
            server_id,
            str(info["type"] or "-"),
            str(info["command"] or info["url"] or "-"),
            "yes" if info["autoStart"] else "no",
            "yes" if info["enabled"] else "no",
            "ok" if info["valid"] else str(info["error"]),
        ]
        for server_id, info in servers.items()
    ]
    print(
        format_table(
            ["Server", "Type", "Command / URL", "Auto-start", "Enabled", "Status"],
            rows,
        ).rstrip()
    )
    raise SystemExit(ExitCode.SUCCESS)


@app.command(name="validate")
def validate_servers(
    *, config: ConfigOption = None, workspace: WorkspaceOption = None
) -> None:
    """Validate every server declared in the configuration.

    Exits with code 2 if any server entry is invalid.
    """
    loaded = load_config_or_exit(config, workspace)
    descriptors, errors = loaded.descriptors()

    for error in errors.values():
        print(f"Error: {error}")

    if errors:
        print(f"{len(errors)} of {len(loaded.servers)} server(s) invalid")
        raise SystemExit(ExitCode.VALIDATION_ERROR)

    print(f"All {len(descriptors)} server(s) valid")
    raise SystemExit(ExitCode.SUCCESS)
