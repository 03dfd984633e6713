"""Protocol definitions for the supervisor system.

This module defines the interfaces that decouple the supervisor core from
process, output and probing implementations:
- OutputSink: Protocol for consuming server output and events
- ServerHandle: Protocol for a live server process
- ServerLauncher: Protocol for bringing a server up, one per server kind
- EndpointProbe: Protocol for pluggable endpoint reachability checks
"""

from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ExitStatus, ServerDescriptor, ServerEvent

StreamName = Literal["stdout", "stderr"]


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming server output lines.

    Each server gets its own sink. The protocol is async to support
    non-blocking I/O such as writing to files or updating a UI.

    Implementations must handle:
    - Server output lines (stdout/stderr)
    - Server lifecycle events
    """

    async def write_line(
        self,
        server_id: str,
        pid: int,
        stream: StreamName,
        line: str,
    ) -> None:
        """Write a line of server output.

        Args:
            server_id: Id of the server that produced the output.
            pid: Process ID of the server.
            stream: Which output stream the line came from.
            line: The output line (without trailing newline).
        """
        ...

    async def write_event(
        self,
        server_id: str,
        event: "ServerEvent",
    ) -> None:
        """Write a server lifecycle event.

        Args:
            server_id: Id of the server that generated the event.
            event: The lifecycle event to record.
        """
        ...


@runtime_checkable
class ServerHandle(Protocol):
    """Protocol for a live server process owned by a runtime."""

    @property
    def pid(self) -> int:
        """Return the operating system process ID."""
        ...

    def is_alive(self) -> bool:
        """Return True while the process has not exited. Never blocks."""
        ...

    async def run(self) -> "ExitStatus":
        """Forward output until the process exits and return its status."""
        ...

    async def terminate(self, grace: float) -> "ExitStatus":
        """Terminate gracefully, escalating to a kill after ``grace`` seconds.

        Raises:
            OSError: If the process cannot be signalled.
        """
        ...

    async def aclose(self) -> None:
        """Close the output streams and reap the process."""
        ...


class ServerLauncher(Protocol):
    """Protocol for bringing one kind of server to the running state."""

    async def launch(
        self,
        descriptor: "ServerDescriptor",
        sink: OutputSink,
    ) -> ServerHandle | None:
        """Launch the server.

        Args:
            descriptor: Declaration of the server to launch.
            sink: Sink for the server's output.

        Returns:
            A handle for the spawned process, or None when nothing is
            spawned (endpoint servers).

        Raises:
            SpawnError: If the server cannot be launched.
        """
        ...


@runtime_checkable
class EndpointProbe(Protocol):
    """Protocol for checking that a remote endpoint is reachable.

    No probe is installed by default: endpoint servers are trusted to be
    reachable and always report healthy.
    """

    async def probe(self, descriptor: "ServerDescriptor") -> bool:
        """Return True if the endpoint is reachable."""
        ...
