"""Data models for the supervisor system.

This module defines the core data types for server supervision:
- ServerKind: The two server varieties (local process, remote endpoint)
- ServerState: Lifecycle states for supervised servers
- ServerEventType: Types of lifecycle events
- ServerEvent: Immutable event records
- ExitStatus: How a server process terminated
- ServerDescriptor: Immutable server declaration
- ServerRuntime: Mutable per-server runtime record
"""

from collections.abc import Mapping  # noqa: TC003 - Used in runtime type annotations
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from signal import Signals
from types import MappingProxyType
from typing import TYPE_CHECKING

from mcp_autostarter.exceptions import ConfigurationError

if TYPE_CHECKING:
    import pendulum

    from ._protocol import ServerHandle


class ServerKind(StrEnum):
    """Server varieties.

    - PROCESS: Backed by a local child process the supervisor spawns
    - ENDPOINT: A remote address the supervisor records without probing
    """

    PROCESS = "process"
    ENDPOINT = "endpoint"


class ServerState(StrEnum):
    """Server lifecycle states.

    STOPPED and ERROR are resting states; the others are transient and are
    always driven toward RUNNING, STOPPED or ERROR within bounded time.
    """

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class ServerEventType(StrEnum):
    """Types of server lifecycle events.

    - STARTED: Server reached the running state
    - STOPPED: Server was stopped by request
    - EXITED: Server process exited without being asked to
    - UNHEALTHY: Server failed a health check
    - RESTARTING: Server is scheduled for an automatic restart
    - FAILED: Server exhausted its restart budget or could not start
    """

    STARTED = "started"
    STOPPED = "stopped"
    EXITED = "exited"
    UNHEALTHY = "unhealthy"
    RESTARTING = "restarting"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ServerEvent:
    """Immutable server lifecycle event.

    Attributes:
        server_id: Id of the server that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Return code if the process terminated.
        message: Optional human-readable message.
    """

    server_id: str
    event_type: ServerEventType
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ExitStatus:
    """How a server process terminated.

    Follows the subprocess convention: a negative return code means the
    process was terminated by that signal number.

    Attributes:
        returncode: Raw return code reported for the process.
    """

    returncode: int

    @property
    def exit_code(self) -> int | None:
        """Return the exit code, or None if the process was signalled."""
        return self.returncode if self.returncode >= 0 else None

    @property
    def signal(self) -> int | None:
        """Return the terminating signal number, if any."""
        return -self.returncode if self.returncode < 0 else None

    def describe(self) -> str:
        """Return a short description such as ``exited with code 1``."""
        signum = self.signal
        if signum is None:
            return f"exited with code {self.returncode}"
        try:
            name = Signals(signum).name
        except ValueError:
            name = str(signum)
        return f"killed by signal {name}"


@dataclass(frozen=True, slots=True)
class ServerDescriptor:
    """Immutable declaration of one supervised server.

    Descriptors are produced by the configuration layer and never mutated by
    the supervisor. Construction validates the kind-specific fields, so an
    invalid declaration never reaches the supervisor.

    Attributes:
        id: Unique, stable identity of the server.
        name: Display label. Defaults to ``id``.
        kind: Whether the server is a local process or a remote endpoint.
        command: Executable to launch (process servers).
        args: Ordered command-line arguments (process servers).
        working_directory: Working directory for the process, or None for
            the supervisor's own working directory.
        environment: Variables merged on top of the supervisor environment,
            copied into a read-only mapping on construction.
        address: URL of the remote server (endpoint servers).
        auto_start: Whether the server is started automatically on boot.

    Raises:
        ConfigurationError: If a required field for the kind is missing.
    """

    id: str
    kind: ServerKind = ServerKind.PROCESS
    name: str = ""
    command: str = ""
    args: tuple[str, ...] = ()
    working_directory: Path | None = None
    environment: Mapping[str, str] = field(default_factory=dict, hash=False)
    address: str = ""
    auto_start: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            msg = "Server declaration is missing an id"
            raise ConfigurationError(msg, field="id")

        kind = ServerKind(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))
        if not self.name:
            object.__setattr__(self, "name", self.id)

        if kind is ServerKind.PROCESS and not self.command.strip():
            msg = f"Server '{self.id}' is missing required 'command' field"
            raise ConfigurationError(msg, server_id=self.id, field="command")
        if kind is ServerKind.ENDPOINT and not self.address.strip():
            msg = f"Server '{self.id}' is missing required 'address' field"
            raise ConfigurationError(msg, server_id=self.id, field="address")

    @property
    def argv(self) -> tuple[str, ...]:
        """Return the full command line for process servers."""
        return (self.command, *self.args)


@dataclass(slots=True)
class ServerRuntime:
    """Mutable runtime record of a supervised server.

    Owned exclusively by the Supervisor; every mutation happens under the
    server's lock. The descriptor is retained for the whole lifetime of the
    record so automatic recovery can always relaunch the server.

    Attributes:
        descriptor: Declaration the server was last started with.
        state: Current lifecycle state.
        handle: Live process handle, present only while a process server
            is active.
        started_at: Time the server last entered RUNNING.
        stopped_at: Time the server last left RUNNING.
        consecutive_failures: Failed health checks since the last explicit
            successful start.
        last_exit: Exit status of the most recent process, if any.
        last_error: Message of the most recent start or stop failure.
        exited_unexpectedly: Set when the process exited while RUNNING;
            cleared once the health checker has acted on it.
        generation: Incremented on every launch, used to discard stale work.
    """

    descriptor: ServerDescriptor
    state: ServerState = ServerState.STOPPED
    handle: "ServerHandle | None" = None
    started_at: "pendulum.DateTime | None" = None
    stopped_at: "pendulum.DateTime | None" = None
    consecutive_failures: int = 0
    last_exit: ExitStatus | None = None
    last_error: str | None = None
    exited_unexpectedly: bool = False
    generation: int = 0

    @property
    def id(self) -> str:
        """Return the server id."""
        return self.descriptor.id

    @property
    def kind(self) -> ServerKind:
        """Return the server kind."""
        return self.descriptor.kind

    @property
    def pid(self) -> int | None:
        """Return the process ID if a process is attached."""
        return self.handle.pid if self.handle is not None else None
