from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from mcp_autostarter.config import (
    CONFIG_PATH_ENV_VAR,
    ConfigLoadError,
    load_config,
    safe_load_config,
)

MCP_JSON = """{
  "globalAutoStart": true,
  "servers": {
    "files": {
      "type": "stdio",
      "command": "npx",
      "args": ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"],
      "autoStart": true
    },
    "remote": {"type": "http", "url": "http://localhost:8931/mcp"}
  }
}
"""


class TestLoadConfig:
    def test_loads_mcp_json(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)

        config = load_config(path)

        assert sorted(config.servers) == ["files", "remote"]
        assert config.servers["files"].auto_start is True
        assert config.servers["remote"].auto_start is False
        assert config.supervisor.max_retries == 3

    def test_missing_file_is_empty_config(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        config = load_config(Path("/config/missing.json"))

        assert config.servers == {}
        assert config.global_auto_start is True

    def test_discovers_path_from_environment(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _ = fs.create_file("/config/mcp.json", contents=MCP_JSON)
        monkeypatch.setenv(CONFIG_PATH_ENV_VAR, "/config/mcp.json")

        assert "files" in load_config().servers

    def test_environment_overrides_file(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = Path("/config/config.toml")
        _ = fs.create_file(path, contents="[supervisor]\nmax_retries = 5\n")
        monkeypatch.setenv("MCP_AUTOSTARTER_SUPERVISOR__MAX_RETRIES", "7")
        monkeypatch.setenv("MCP_AUTOSTARTER_LOGGING__LEVEL", "debug")

        config = load_config(path)

        assert config.supervisor.max_retries == 7
        assert config.logging.level == "debug"

    def test_environment_can_be_ignored(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = Path("/config/config.toml")
        _ = fs.create_file(path, contents="[supervisor]\nmax_retries = 5\n")
        monkeypatch.setenv("MCP_AUTOSTARTER_SUPERVISOR__MAX_RETRIES", "7")

        assert load_config(path, include_env=False).supervisor.max_retries == 5

    def test_disable_auto_start_from_environment(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch  # noqa: ARG002
    ) -> None:
        monkeypatch.setenv("MCP_AUTOSTARTER_GLOBAL_AUTO_START", "false")

        assert load_config(Path("/config/missing.json")).global_auto_start is False

    def test_validation_error_carries_path(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents='{"supervisor": {"health_check_interval": -1}}')

        with pytest.raises(ConfigLoadError, match="Invalid configuration") as exc_info:
            _ = load_config(path)

        assert exc_info.value.path == path

    def test_unreadable_path(self, fs: FakeFilesystem) -> None:
        _ = fs.create_dir("/config/mcp.json")

        with pytest.raises(ConfigLoadError, match="Failed to read config file"):
            _ = load_config(Path("/config/mcp.json"))


class TestSafeLoadConfig:
    def test_success(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)

        config, error = safe_load_config(path)

        assert error is None
        assert "files" in config.servers

    def test_failure_returns_defaults(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents="{not json")

        config, error = safe_load_config(path)

        assert error is not None
        assert "Failed to parse JSON file" in error
        assert config.servers == {}


class TestWorkspaceConfig:
    def test_workspace_servers_are_added(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)
        _ = fs.create_file(
            "/work/project/.vscode/mcp.json",
            contents='{"servers": {"local": {"type": "stdio", "command": "uvx"}}}',
        )

        config = load_config(path, workspace=Path("/work/project"), include_env=False)

        assert sorted(config.servers) == ["files", "local", "remote"]

    def test_workspace_entry_replaces_user_entry(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)
        _ = fs.create_file(
            "/work/project/.vscode/mcp.json",
            contents='{"servers": {"files": {"type": "http", "url": "http://localhost:9/mcp"}}}',
        )

        config = load_config(path, workspace=Path("/work/project"), include_env=False)

        files = config.servers["files"]
        assert files.server_type == "http"
        assert files.command == ""
        assert files.auto_start is False

    def test_missing_workspace_file_is_ignored(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)

        config = load_config(path, workspace=Path("/work/empty"), include_env=False)

        assert sorted(config.servers) == ["files", "remote"]

    def test_workspace_without_user_file(self, fs: FakeFilesystem) -> None:
        _ = fs.create_file(
            "/work/project/.vscode/mcp.json",
            contents='{"servers": {"local": {"type": "stdio", "command": "uvx"}}}',
        )

        config = load_config(
            Path("/config/missing.json"), workspace=Path("/work/project"), include_env=False
        )

        assert list(config.servers) == ["local"]

    def test_broken_workspace_file(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(path, contents=MCP_JSON)
        _ = fs.create_file("/work/project/.vscode/mcp.json", contents="{broken")

        with pytest.raises(ConfigLoadError, match="Failed to parse JSON file"):
            _ = load_config(path, workspace=Path("/work/project"))


class TestInternalServers:
    def test_internal_servers_are_dropped(self, fs: FakeFilesystem) -> None:
        path = Path("/config/mcp.json")
        _ = fs.create_file(
            path,
            contents=(
                '{"servers": {"files": {"type": "stdio", "command": "npx"},'
                ' "mcp-server-time-internal": {"type": "stdio", "command": "time",'
                ' "autoStart": true}}}'
            ),
        )

        config = load_config(path, include_env=False)
        descriptors, errors = config.descriptors()

        assert list(config.servers) == ["files"]
        assert list(descriptors) == ["files"]
        assert errors == {}
