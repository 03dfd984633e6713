"""MCP Autostarter exceptions."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class AutostarterError(Exception):
    """Base exception for MCP Autostarter errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(AutostarterError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: "Path | None" = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigurationError(ConfigError, ValueError):
    """Raised when a server declaration is malformed.

    A process server without a command, or an endpoint server without an
    address, is rejected with this error before it reaches the supervisor.

    Attributes:
        server_id: The id of the offending server declaration.
        field: The name of the missing or invalid field.
    """

    def __init__(
        self,
        message: str,
        *,
        server_id: str | None = None,
        field: str | None = None,
    ) -> None:
        """Initialize with error message and declaration context.

        Args:
            message: Human-readable error message.
            server_id: The id of the offending server declaration.
            field: The name of the missing or invalid field.
        """
        super().__init__(message)
        self.server_id: str | None = server_id
        self.field: str | None = field


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(AutostarterError):
    """Base exception for supervisor errors."""


class ServerNotFoundError(SupervisorError, KeyError):
    """Raised when a server cannot be found by id.

    Attributes:
        server_id: The id of the server that was not found.
    """

    def __init__(self, message: str, *, server_id: str | None = None) -> None:
        """Initialize with error message and server context.

        Args:
            message: Human-readable error message.
            server_id: The id of the server that was not found.
        """
        super().__init__(message)
        self.server_id: str | None = server_id

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class SpawnError(SupervisorError):
    """Raised when a server process cannot be spawned.

    Attributes:
        server_id: The id of the server that failed to start.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        server_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and server context.

        Args:
            message: Human-readable error message.
            server_id: The id of the server that failed to start.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.server_id: str | None = server_id
        self.cause: Exception | None = cause


class ServerStopError(SupervisorError):
    """Raised when a server fails to stop cleanly.

    Attributes:
        server_id: The id of the server that failed to stop.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        server_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and server context.

        Args:
            message: Human-readable error message.
            server_id: The id of the server that failed to stop.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.server_id: str | None = server_id
        self.cause: Exception | None = cause
