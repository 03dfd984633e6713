# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Reading configuration files and layering configuration sources."""

import os
import tomllib
from copy import deepcopy
from typing import TYPE_CHECKING, Any

import orjson

from mcp_autostarter.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pathlib import Path

ENV_PREFIX = "MCP_AUTOSTARTER_"

_TRUE_WORDS = frozenset({"true", "1"})
_FALSE_WORDS = frozenset({"false", "0"})


def read_json_file(path: "Path") -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read a JSON configuration file such as VS Code's mcp.json.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the content is not valid JSON or not an object.
    """
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as e:
        msg = f"Failed to parse JSON file: {e}"
        raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e

    if not isinstance(data, dict):
        msg = f"Expected a JSON object at the top level of {path}"
        raise ConfigLoadError(msg, path=path)
    return data


def read_toml_file(path: "Path") -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read a TOML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the content is not valid TOML.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e


def read_config_file(path: "Path") -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read a configuration file with the parser matching its suffix.

    ``.toml`` selects TOML; any other suffix, ``.json`` included, is JSON.
    """
    if path.suffix.lower() == ".toml":
        return read_toml_file(path)
    return read_json_file(path)


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Layer ``override`` on top of ``base``.

    Tables present on both sides are merged key by key; every other value
    in ``override`` (lists included) replaces the one in ``base``. The
    result shares no mutable state with either argument.
    """
    merged = deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def parse_env_vars(
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect configuration overrides from the environment.

    A double underscore separates nesting levels and names are lowercased,
    so ``MCP_AUTOSTARTER_SUPERVISOR__MAX_RETRIES=5`` becomes
    ``{"supervisor": {"max_retries": 5}}``.

    Args:
        prefix: Only variables starting with this prefix are considered.

    Returns:
        Nested dictionary of overrides.
    """
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for name, raw in os.environ.items():
        key = name.removeprefix(prefix)
        if key == name or not key:
            continue
        set_nested_key(overrides, key.lower().replace("__", "."), _parse_env_value(raw))
    return overrides


def _parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Convert an environment variable string to the most specific type.

    Booleans (``true``/``false``/``1``/``0``) come first, then integers,
    decimals, JSON arrays and objects. Anything else stays a string.
    """
    word = value.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if value[:1] + value[-1:] in ("[]", "{}"):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Assign ``value`` at a dotted path, replacing non-table values on the way.

    >>> d = {}
    >>> set_nested_key(d, "supervisor.max_retries", 5)
    >>> d
    {'supervisor': {'max_retries': 5}}
    """
    *parents, leaf = key_path.split(".")
    node = d
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value
