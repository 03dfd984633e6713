"""Configuration file discovery.

This module locates the MCP configuration file. By default the VS Code user
``mcp.json`` is used, so servers configured for the editor are supervised
without any extra setup.
"""

import os
import sys
from pathlib import Path

import platformdirs

CONFIG_PATH_ENV_VAR = "MCP_AUTOSTARTER_CONFIG"

_EDITOR_FLAVORS = ("Code", "Code - Insiders")


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    Returns the path to the MCP Autostarter's own configuration file, using
    the platform-appropriate location:

    - Linux: ``~/.config/mcp-autostarter/config.toml``
    - macOS: ``~/Library/Application Support/mcp-autostarter/config.toml``
    - Windows: ``%APPDATA%\mcp-autostarter\config.toml``

    The path is returned regardless of whether the file exists.
    """
    config_dir = platformdirs.user_config_path("mcp-autostarter", appauthor=False)
    return config_dir / "config.toml"


def get_vscode_config_candidates(home: Path | None = None) -> list[Path]:
    """Get every location where VS Code may keep its user mcp.json.

    Covers the macOS, Windows and Linux locations of both VS Code and VS Code
    Insiders, in that order.

    Args:
        home: Home directory to resolve the paths against.

    Returns:
        Candidate paths, whether they exist or not.
    """
    home = home or Path.home()
    bases = (
        home / "Library" / "Application Support",
        home / "AppData" / "Roaming",
        home / ".config",
    )
    return [
        base / flavor / "User" / "mcp.json"
        for flavor in _EDITOR_FLAVORS
        for base in bases
    ]


def get_default_vscode_config_path(
    home: Path | None = None,
    platform: str | None = None,
) -> Path:
    """Get the VS Code user mcp.json path for the current platform."""
    home = home or Path.home()
    platform = platform or sys.platform

    if platform == "darwin":
        base = home / "Library" / "Application Support"
    elif platform == "win32":
        base = home / "AppData" / "Roaming"
    else:
        base = home / ".config"
    return base / "Code" / "User" / "mcp.json"


def get_workspace_config_path(workspace: Path) -> Path:
    """Get the workspace-level mcp.json of a VS Code workspace folder."""
    return workspace / ".vscode" / "mcp.json"


def _file_exists(path: Path) -> bool:
    """Check if a file exists, handling permission errors gracefully."""
    try:
        return path.is_file()
    except OSError:
        return False


def discover_config_path(home: Path | None = None) -> Path:
    """Find the configuration file to load.

    Resolution order:
        1. The path in the MCP_AUTOSTARTER_CONFIG environment variable
        2. The MCP Autostarter user config file, if it exists
        3. The first existing VS Code (or Insiders) user mcp.json
        4. The VS Code user mcp.json for the current platform

    Args:
        home: Home directory used for the VS Code locations.

    Returns:
        Path to the configuration file. It may not exist.
    """
    explicit = os.environ.get(CONFIG_PATH_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    user_config = get_user_config_path()
    if _file_exists(user_config):
        return user_config

    for candidate in get_vscode_config_candidates(home):
        if _file_exists(candidate):
            return candidate

    return get_default_vscode_config_path(home)
