"""Process handle for a single supervised server process.

This module provides the ProcessHandle class that owns one operating system
process end to end: spawning, forwarding output, signalling and reaping.
"""

import os
import subprocess
from typing import TYPE_CHECKING, final

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from mcp_autostarter.exceptions import SpawnError

from ._models import ExitStatus

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from ._protocol import OutputSink, StreamName


@final
class ProcessHandle:
    """Owns one live server process.

    Output from both standard streams is forwarded line by line to the
    server's OutputSink. The exit notification fires exactly once, whether
    the exit is observed by ``run()`` or by ``terminate()``.

    Attributes:
        server_id: Id of the server this process belongs to.
    """

    __slots__ = ("_exit_status", "_exited", "_process", "_sink", "server_id")

    def __init__(
        self,
        server_id: str,
        process: anyio.abc.Process,
        sink: "OutputSink",
    ) -> None:
        """Wrap an already spawned process.

        Args:
            server_id: Id of the server this process belongs to.
            process: The spawned process.
            sink: Sink for the process output.
        """
        self.server_id = server_id
        self._process = process
        self._sink = sink
        self._exited = anyio.Event()
        self._exit_status: ExitStatus | None = None

    @classmethod
    async def spawn(
        cls,
        server_id: str,
        argv: "Sequence[str]",
        *,
        sink: "OutputSink",
        cwd: "Path | None" = None,
        environment: "Mapping[str, str] | None" = None,
    ) -> "ProcessHandle":
        """Spawn a server process.

        The given environment is merged on top of the supervisor's own
        environment; on key collision the given value wins.

        Args:
            server_id: Id of the server being spawned.
            argv: Command and arguments to execute.
            sink: Sink for the process output.
            cwd: Working directory, or None to inherit the current one.
            environment: Variables to add to the inherited environment.

        Returns:
            A handle owning the new process.

        Raises:
            SpawnError: If the executable cannot be found or the working
                directory is invalid.
        """
        if cwd is not None and not cwd.is_dir():
            msg = f"Working directory for server '{server_id}' does not exist: {cwd}"
            raise SpawnError(msg, server_id=server_id)

        env = {**os.environ, **(environment or {})}

        try:
            process = await anyio.open_process(
                list(argv),
                cwd=cwd,
                env=env,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            msg = f"Failed to start server '{server_id}': {e}"
            raise SpawnError(msg, server_id=server_id, cause=e) from e

        return cls(server_id, process, sink)

    @property
    def pid(self) -> int:
        """Return the process ID."""
        return self._process.pid

    @property
    def exit_status(self) -> ExitStatus | None:
        """Return the exit status once the exit notification has fired."""
        return self._exit_status

    def is_alive(self) -> bool:
        """Check whether the process is still running without blocking."""
        return self._process.returncode is None

    def _notify_exit(self, returncode: int) -> ExitStatus:
        if self._exit_status is None:
            self._exit_status = ExitStatus(returncode)
            self._exited.set()
        return self._exit_status

    async def wait_exit(self) -> ExitStatus:
        """Wait for the exit notification.

        Returns:
            The exit status of the process.
        """
        await self._exited.wait()
        assert self._exit_status is not None  # noqa: S101
        return self._exit_status

    async def _write_line(self, stream_name: "StreamName", line: str) -> None:
        try:  # noqa: SIM105
            await self._sink.write_line(self.server_id, self.pid, stream_name, line)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not break output forwarding
            pass

    async def _forward_output(
        self,
        stream: anyio.abc.ByteReceiveStream,
        stream_name: "StreamName",
    ) -> None:
        """Forward a byte stream to the sink one line at a time.

        Args:
            stream: The process stream to read from.
            stream_name: Name of the stream ("stdout" or "stderr").
        """
        pending = ""
        try:
            async for chunk in TextReceiveStream(stream, errors="replace"):
                pending += chunk
                *lines, pending = pending.split("\n")
                for line in lines:
                    await self._write_line(stream_name, line.rstrip("\r"))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass

        if pending:
            await self._write_line(stream_name, pending.rstrip("\r"))

    async def run(self) -> ExitStatus:
        """Forward output until the process exits.

        Returns:
            The exit status of the process.
        """
        async with anyio.create_task_group() as tg:
            if self._process.stdout is not None:
                tg.start_soon(self._forward_output, self._process.stdout, "stdout")

            if self._process.stderr is not None:
                tg.start_soon(self._forward_output, self._process.stderr, "stderr")

            returncode = await self._process.wait()

        return self._notify_exit(returncode)

    async def terminate(self, grace: float) -> ExitStatus:
        """Terminate the process.

        Sends SIGTERM and waits up to ``grace`` seconds for the process to
        exit. If it is still running after that, sends SIGKILL.

        Args:
            grace: Seconds to wait for a graceful exit.

        Returns:
            The exit status of the process.

        Raises:
            OSError: If the process cannot be signalled.
        """
        if self._process.returncode is None:
            try:
                self._process.terminate()

                with anyio.move_on_after(grace):
                    _ = await self._process.wait()

                if self._process.returncode is None:
                    self._process.kill()
            except ProcessLookupError:
                # Process already exited
                pass

        returncode = await self._process.wait()
        return self._notify_exit(returncode)

    async def aclose(self) -> None:
        """Close the process streams and reap the process."""
        await self._process.aclose()
        if self._process.returncode is not None:
            _ = self._notify_exit(self._process.returncode)
