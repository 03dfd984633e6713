from pathlib import Path

import pytest

from mcp_autostarter.config import (
    AutostarterConfig,
    ConfigLoadError,
    ConfigurationError,
    LogFormat,
    LogLevel,
    ServerEntry,
    SupervisorSettings,
    is_internal_server,
)
from mcp_autostarter.supervisor import FixedBackoff, ServerKind


class TestServerEntry:
    def test_stdio_entry_becomes_process(self) -> None:
        entry = ServerEntry.model_validate(
            {
                "type": "stdio",
                "command": "npx",
                "args": ["-y", "@modelcontextprotocol/server-filesystem"],
                "cwd": "~/projects",
                "env": {"DEBUG": "1"},
                "autoStart": True,
            }
        )

        descriptor = entry.to_descriptor("files")

        assert descriptor.id == "files"
        assert descriptor.kind is ServerKind.PROCESS
        assert descriptor.argv == ("npx", "-y", "@modelcontextprotocol/server-filesystem")
        assert descriptor.working_directory == Path("~/projects").expanduser()
        assert descriptor.environment == {"DEBUG": "1"}
        assert descriptor.auto_start is True
        assert descriptor.name == "files"

    @pytest.mark.parametrize("server_type", ["http", "sse"])
    def test_remote_entry_becomes_endpoint(self, server_type: str) -> None:
        entry = ServerEntry.model_validate(
            {"type": server_type, "url": "http://localhost:8931/mcp", "name": "Remote"}
        )

        descriptor = entry.to_descriptor("remote")

        assert descriptor.kind is ServerKind.ENDPOINT
        assert descriptor.address == "http://localhost:8931/mcp"
        assert descriptor.name == "Remote"

    def test_type_is_inferred(self) -> None:
        assert ServerEntry(command="npx").server_type == "stdio"
        assert ServerEntry(url="http://localhost:9").server_type == "http"
        assert ServerEntry().server_type is None

    def test_missing_type(self) -> None:
        with pytest.raises(ConfigurationError, match="missing required 'type'") as exc_info:
            _ = ServerEntry().to_descriptor("empty")

        assert exc_info.value.server_id == "empty"
        assert exc_info.value.field == "type"

    def test_invalid_type(self) -> None:
        entry = ServerEntry(type="websocket", url="ws://localhost:9")

        with pytest.raises(ConfigurationError, match="invalid type 'websocket'"):
            _ = entry.to_descriptor("ws")

    def test_stdio_without_command(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _ = ServerEntry(type="stdio").to_descriptor("files")

        assert exc_info.value.field == "command"

    def test_http_without_url(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _ = ServerEntry(type="http").to_descriptor("remote")

        assert exc_info.value.field == "address"

    def test_auto_start_by_field_name(self) -> None:
        assert ServerEntry.model_validate({"auto_start": True}).auto_start is True

    def test_unknown_keys_are_ignored(self) -> None:
        entry = ServerEntry.model_validate(
            {"type": "stdio", "command": "npx", "envFile": ".env", "gallery": True}
        )

        assert entry.command == "npx"


class TestSupervisorSettings:
    def test_defaults(self) -> None:
        settings = SupervisorSettings()

        assert settings.health_check_interval == 30.0
        assert settings.retry_policy() == FixedBackoff(delay=2.0, max_retries=3)
        assert settings.grace_period == 2.0

    def test_rejects_zero_retries(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            _ = SupervisorSettings(max_retries=0)


class TestAutostarterConfig:
    def test_from_empty_dict(self) -> None:
        config = AutostarterConfig.from_dict({})

        assert config.servers == {}
        assert config.global_auto_start is True
        assert config.logging.level is LogLevel.INFO
        assert config.logging.format is LogFormat.JSON

    def test_from_vscode_layout(self) -> None:
        config = AutostarterConfig.from_dict(
            {
                "globalAutoStart": False,
                "inputs": [],
                "servers": {
                    "files": {"type": "stdio", "command": "npx", "autoStart": True},
                },
            }
        )

        assert config.global_auto_start is False
        assert config.servers["files"].auto_start is True

    def test_invalid_values(self) -> None:
        with pytest.raises(ConfigLoadError, match="Invalid configuration"):
            _ = AutostarterConfig.from_dict({"supervisor": {"max_retries": "many"}})

    def test_descriptors_splits_valid_and_invalid(self) -> None:
        config = AutostarterConfig.from_dict(
            {
                "servers": {
                    "files": {"type": "stdio", "command": "npx"},
                    "remote": {"type": "sse", "url": "http://localhost:9/sse"},
                    "broken": {"type": "ftp"},
                }
            }
        )

        valid, errors = config.descriptors()

        assert sorted(valid) == ["files", "remote"]
        assert list(errors) == ["broken"]
        assert errors["broken"].field == "type"

    def test_internal_servers_are_dropped(self) -> None:
        config = AutostarterConfig.from_dict(
            {
                "servers": {
                    "files": {"type": "stdio", "command": "npx"},
                    "copilot-internal": {"type": "stdio", "command": "copilot"},
                }
            }
        )

        assert list(config.servers) == ["files"]


@pytest.mark.parametrize(
    ("server_id", "expected"),
    [
        ("mcp-server-time-internal", True),
        ("github-internal-tools", True),
        ("internal", False),
        ("files", False),
    ],
)
def test_is_internal_server(server_id: str, expected: bool) -> None:
    assert is_internal_server(server_id) is expected
