"""MCP Autostarter configuration.

This module provides the public API for configuration management: locating
the MCP configuration file, loading it, and converting its server entries
into supervisor declarations.

Example:
    >>> from mcp_autostarter.config import load_config
    >>> config = load_config()
    >>> descriptors, errors = config.descriptors()
"""

from mcp_autostarter.exceptions import ConfigError, ConfigLoadError, ConfigurationError

from ._defaults import DEFAULT_CONFIG
from ._discovery import (
    CONFIG_PATH_ENV_VAR,
    discover_config_path,
    get_default_vscode_config_path,
    get_user_config_path,
    get_vscode_config_candidates,
    get_workspace_config_path,
)
from ._load import load_config, safe_load_config
from ._loader import (
    deep_merge,
    parse_env_vars,
    read_config_file,
    read_json_file,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    INTERNAL_SERVER_MARKER,
    AutostarterConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ServerEntry,
    ServerType,
    SupervisorSettings,
    is_internal_server,
)

__all__ = [
    "CONFIG_PATH_ENV_VAR",
    "DEFAULT_CONFIG",
    "INTERNAL_SERVER_MARKER",
    "AutostarterConfig",
    "ConfigError",
    "ConfigLoadError",
    "ConfigurationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ServerEntry",
    "ServerType",
    "SupervisorSettings",
    "deep_merge",
    "discover_config_path",
    "get_default_vscode_config_path",
    "get_user_config_path",
    "get_vscode_config_candidates",
    "get_workspace_config_path",
    "is_internal_server",
    "load_config",
    "parse_env_vars",
    "read_config_file",
    "read_json_file",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
]
