# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models.

This module provides the Pydantic models for the MCP Autostarter
configuration. The ``servers`` section follows the layout of the VS Code
``mcp.json`` file so an existing file can be used as-is.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mcp_autostarter.exceptions import ConfigLoadError, ConfigurationError
from mcp_autostarter.supervisor import FixedBackoff, ServerDescriptor, ServerKind

from ._defaults import DEFAULT_CONFIG
from ._loader import deep_merge

INTERNAL_SERVER_MARKER = "-internal"


def is_internal_server(server_id: str) -> bool:
    """Check whether a server id names one of VS Code's built-in servers."""
    return INTERNAL_SERVER_MARKER in server_id


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ServerType(StrEnum):
    """Transport declared for a server in mcp.json.

    ``stdio`` servers are local processes; ``http`` and ``sse`` servers are
    remote endpoints.
    """

    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
        output_file: Path recording server output as log entries (empty
            prints it to the console).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""
    output_file: str = ""


class SupervisorSettings(BaseModel):
    """Supervisor tuning section.

    Attributes:
        health_check_interval: Seconds between health sweeps.
        max_retries: Failed health checks before a server is put in error.
        restart_delay: Seconds to wait before each automatic restart.
        grace_period: Seconds a process gets to exit after SIGTERM.
        check_timeout: Seconds after which a single health check fails.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    health_check_interval: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    restart_delay: float = Field(default=2.0, ge=0)
    grace_period: float = Field(default=2.0, ge=0)
    check_timeout: float = Field(default=5.0, gt=0)

    def retry_policy(self) -> FixedBackoff:
        """Return the restart policy described by these settings."""
        return FixedBackoff(delay=self.restart_delay, max_retries=self.max_retries)


class ServerEntry(BaseModel):
    """One entry of the ``servers`` section.

    The transport is validated per entry in ``to_descriptor()`` rather than
    by the model, so one malformed entry never hides the others.

    Attributes:
        type: Declared transport (stdio, http or sse). Inferred from
            ``command`` / ``url`` when omitted.
        command: Executable of a stdio server.
        args: Arguments of a stdio server.
        url: Address of an http or sse server.
        cwd: Working directory of a stdio server.
        env: Extra environment variables of a stdio server.
        name: Display label.
        auto_start: Whether the server is started automatically.
        enabled: Whether the server takes part in auto-start at all.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )

    type: str | None = None
    command: str = ""
    args: tuple[str, ...] = ()
    url: str = ""
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    name: str = ""
    auto_start: bool = Field(default=False, alias="autoStart")
    enabled: bool = True

    @property
    def server_type(self) -> str | None:
        """Return the declared transport, inferring it when omitted."""
        if self.type:
            return self.type
        if self.command:
            return ServerType.STDIO.value
        if self.url:
            return ServerType.HTTP.value
        return None

    def to_descriptor(self, server_id: str) -> ServerDescriptor:
        """Convert the entry into a server declaration.

        Args:
            server_id: Key of the entry in the ``servers`` section.

        Returns:
            A ServerDescriptor of kind ``process`` for stdio servers and of
            kind ``endpoint`` otherwise.

        Raises:
            ConfigurationError: If the type is missing or unknown, or the
                kind-specific field is missing.
        """
        server_type = self.server_type
        if server_type is None:
            msg = f"Server '{server_id}' is missing required 'type' field"
            raise ConfigurationError(msg, server_id=server_id, field="type")
        if server_type not in {t.value for t in ServerType}:
            msg = (
                f"Server '{server_id}' has invalid type '{server_type}'. "
                "Must be 'stdio', 'http', or 'sse'"
            )
            raise ConfigurationError(msg, server_id=server_id, field="type")

        if server_type == ServerType.STDIO:
            return ServerDescriptor(
                id=server_id,
                kind=ServerKind.PROCESS,
                name=self.name,
                command=self.command,
                args=self.args,
                working_directory=Path(self.cwd).expanduser() if self.cwd else None,
                environment=dict(self.env),
                auto_start=self.auto_start,
            )

        return ServerDescriptor(
            id=server_id,
            kind=ServerKind.ENDPOINT,
            name=self.name,
            address=self.url,
            auto_start=self.auto_start,
        )


class AutostarterConfig(BaseModel):
    """Root configuration.

    Attributes:
        servers: Server entries keyed by server id. Ids containing
            ``-internal`` belong to VS Code itself and are dropped.
        global_auto_start: Master switch for auto-start.
        supervisor: Supervisor tuning.
        logging: Logging settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )

    servers: dict[str, ServerEntry] = Field(default_factory=dict)
    global_auto_start: bool = Field(default=True, alias="globalAutoStart")
    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("servers")
    @classmethod
    def drop_internal_servers(cls, servers: dict[str, ServerEntry]) -> dict[str, ServerEntry]:
        """Remove the editor's built-in servers from the server entries."""
        return {
            server_id: entry
            for server_id, entry in servers.items()
            if not is_internal_server(server_id)
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Args:
            data: Dictionary of configuration values.

        Returns:
            The validated configuration.

        Raises:
            ConfigLoadError: If validation fails.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigLoadError(msg) from e

    def descriptors(
        self,
    ) -> tuple[dict[str, ServerDescriptor], dict[str, ConfigurationError]]:
        """Convert every server entry into a descriptor.

        Returns:
            Tuple of (valid descriptors by id, validation errors by id).
        """
        valid: dict[str, ServerDescriptor] = {}
        errors: dict[str, ConfigurationError] = {}
        for server_id, entry in self.servers.items():
            try:
                valid[server_id] = entry.to_descriptor(server_id)
            except ConfigurationError as e:
                errors[server_id] = e
        return valid, errors
