"""Loading the configuration from disk and the environment."""

from typing import TYPE_CHECKING, Any

from mcp_autostarter.exceptions import ConfigError, ConfigLoadError

from ._discovery import discover_config_path, get_workspace_config_path
from ._loader import deep_merge, parse_env_vars, read_config_file
from ._models import AutostarterConfig

if TYPE_CHECKING:
    from pathlib import Path


def _read_optional(path: "Path") -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    try:
        return read_config_file(path)
    except FileNotFoundError:
        return {}
    except OSError as e:
        msg = f"Failed to read config file {path}: {e}"
        raise ConfigLoadError(msg, path=path) from e


def load_config(
    path: "Path | None" = None,
    *,
    workspace: "Path | None" = None,
    include_env: bool = True,
) -> AutostarterConfig:
    """Load the configuration.

    Values are merged in precedence order: defaults, then the file, then the
    servers of the workspace ``.vscode/mcp.json``, then ``MCP_AUTOSTARTER_*``
    environment variables. A workspace server replaces a user server with
    the same id as a whole. A missing file yields the default configuration
    with no servers.

    Args:
        path: Configuration file. Discovered if None.
        workspace: VS Code workspace folder whose servers are added.
        include_env: Whether to apply environment variable overrides.

    Returns:
        The validated configuration.

    Raises:
        ConfigLoadError: If a file cannot be read, parsed or validated.
    """
    config_path = path if path is not None else discover_config_path()
    data = _read_optional(config_path)

    if workspace is not None:
        workspace_data = _read_optional(get_workspace_config_path(workspace))
        workspace_servers = workspace_data.get("servers")
        if isinstance(workspace_servers, dict) and workspace_servers:
            user_servers = data.get("servers")
            if not isinstance(user_servers, dict):
                user_servers = {}
            data = {**data, "servers": {**user_servers, **workspace_servers}}

    if include_env:
        data = deep_merge(data, parse_env_vars())

    try:
        return AutostarterConfig.from_dict(data)
    except ConfigLoadError as e:
        if e.path is None:
            e.path = config_path
        raise


def safe_load_config(
    path: "Path | None" = None,
    *,
    workspace: "Path | None" = None,
) -> tuple[AutostarterConfig, str | None]:
    """Load configuration, falling back to the defaults on error.

    Args:
        path: Configuration file. Discovered if None.
        workspace: VS Code workspace folder whose servers are added.

    Returns:
        Tuple of (config, error_message). On success, error_message is None.
        On failure, returns the default configuration with the error message.
    """
    try:
        return load_config(path, workspace=workspace), None
    except ConfigError as e:
        return AutostarterConfig.from_dict({}), str(e)
