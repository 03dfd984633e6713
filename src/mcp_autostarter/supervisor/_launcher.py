"""Launchers that bring a server up, one per server kind."""

from typing import TYPE_CHECKING, final

from ._models import ServerKind
from ._process import ProcessHandle

if TYPE_CHECKING:
    from ._models import ServerDescriptor
    from ._protocol import OutputSink, ServerLauncher


@final
class ProcessLauncher:
    """Spawns a local child process for process servers."""

    __slots__ = ()

    async def launch(
        self,
        descriptor: "ServerDescriptor",
        sink: "OutputSink",
    ) -> ProcessHandle:
        """Spawn the server process.

        Raises:
            SpawnError: If the process cannot be spawned.
        """
        return await ProcessHandle.spawn(
            descriptor.id,
            descriptor.argv,
            sink=sink,
            cwd=descriptor.working_directory,
            environment=descriptor.environment,
        )


@final
class EndpointLauncher:
    """Records endpoint servers as running without spawning anything."""

    __slots__ = ()

    async def launch(
        self,
        descriptor: "ServerDescriptor",  # noqa: ARG002
        sink: "OutputSink",  # noqa: ARG002
    ) -> None:
        """Return None: the remote address is trusted to be reachable."""
        return None


def default_launchers() -> "dict[ServerKind, ServerLauncher]":
    """Return the launcher for each server kind."""
    return {
        ServerKind.PROCESS: ProcessLauncher(),
        ServerKind.ENDPOINT: EndpointLauncher(),
    }
