"""Supervisor coordinating the lifecycle of MCP servers.

This module provides the Supervisor class that owns the table of server
runtimes, starts and stops servers, runs the periodic health check loop and
drives automatic, rate-limited recovery. Uses anyio for structured
concurrency: every background task (health loop, output forwarding, delayed
restarts) lives in the supervisor's task group.
"""

import signal
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Self, final

import anyio
import anyio.abc
from rich.console import Console

from mcp_autostarter.exceptions import (
    ServerNotFoundError,
    ServerStopError,
    SupervisorError,
)
from mcp_autostarter.utils import create_supervisor_logger

from ._backoff import FixedBackoff
from ._health import HealthChecker
from ._launcher import default_launchers
from ._models import ServerEvent, ServerEventType, ServerRuntime, ServerState
from ._output import ConcatenatedOutputSink

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    import pendulum
    from structlog.typing import FilteringBoundLogger

    from ._models import ServerDescriptor, ServerKind
    from ._protocol import OutputSink, ServerHandle, ServerLauncher

    Clock = Callable[[], pendulum.DateTime]
    SinkFactory = Callable[[ServerDescriptor], OutputSink]


def _utc_now() -> "pendulum.DateTime":
    """Get the current time in UTC."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC")


def console_sink_factory(console: Console | None = None) -> "SinkFactory":
    """Create a sink factory giving every server its own console sink.

    Args:
        console: Console shared as the destination of all sinks.

    Returns:
        A callable creating one ConcatenatedOutputSink per server.
    """
    shared_console = console or Console()

    def factory(_descriptor: "ServerDescriptor") -> "OutputSink":
        return ConcatenatedOutputSink(shared_console)

    return factory


def _expects_running(runtime: ServerRuntime) -> bool:
    """Check whether the health checker should evaluate a runtime."""
    if runtime.state is ServerState.RUNNING:
        return True
    return runtime.state is ServerState.STOPPED and runtime.exited_unexpectedly


@final
class Supervisor:
    """Coordinates the lifecycle of named MCP servers.

    Owns exactly one ServerRuntime per started server id. All transitions of
    a runtime happen under that server's lock, so transitions for one id are
    totally ordered while different ids never wait on each other.

    The supervisor must be open while servers are started::

        async with Supervisor() as supervisor:
            await supervisor.start(descriptor)
            ...

    Leaving the block stops the health loop first, then stops every server
    and releases all process handles.
    """

    __slots__ = (
        "_check_timeout",
        "_clock",
        "_closing",
        "_exit_stack",
        "_grace_period",
        "_health_check_interval",
        "_health_checker",
        "_health_scope",
        "_launchers",
        "_locks",
        "_logger",
        "_retry_policy",
        "_runtimes",
        "_shutdown_event",
        "_sink_factory",
        "_sinks",
        "_task_group",
    )

    def __init__(  # noqa: PLR0913
        self,
        *,
        logger: "FilteringBoundLogger | None" = None,
        clock: "Clock | None" = None,
        health_check_interval: float = 30.0,
        retry_policy: FixedBackoff | None = None,
        grace_period: float = 2.0,
        check_timeout: float = 5.0,
        health_checker: HealthChecker | None = None,
        sink_factory: "SinkFactory | None" = None,
        launchers: "Mapping[ServerKind, ServerLauncher] | None" = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            logger: Logger for status and error events. Logs to stderr if None.
            clock: Source of the current time.
            health_check_interval: Seconds between health sweeps.
            retry_policy: Restart delay and cap for unhealthy servers.
            grace_period: Seconds a process gets to exit after SIGTERM.
            check_timeout: Seconds after which a single check counts as failed.
            health_checker: Liveness predicate for servers.
            sink_factory: Creates the output sink of each server.
            launchers: Launcher used for each server kind.
        """
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else create_supervisor_logger()
        )
        self._clock: Clock = clock or _utc_now
        self._health_check_interval = health_check_interval
        self._retry_policy = retry_policy or FixedBackoff()
        self._grace_period = grace_period
        self._check_timeout = check_timeout
        self._health_checker = health_checker or HealthChecker()
        self._sink_factory: SinkFactory = sink_factory or console_sink_factory()
        self._launchers: dict[ServerKind, ServerLauncher] = (
            dict(launchers) if launchers is not None else default_launchers()
        )
        self._runtimes: dict[str, ServerRuntime] = {}
        self._locks: dict[str, anyio.Lock] = {}
        self._sinks: dict[str, OutputSink] = {}
        self._exit_stack: AsyncExitStack | None = None
        self._task_group: anyio.abc.TaskGroup | None = None
        self._health_scope: anyio.CancelScope | None = None
        self._shutdown_event: anyio.Event | None = None
        self._closing = False

    # -------------------------------------------------------------------------
    # Lifecycle of the supervisor itself
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        if self._exit_stack is not None:
            msg = "Supervisor is already running"
            raise SupervisorError(msg)

        stack = AsyncExitStack()
        self._task_group = await stack.enter_async_context(anyio.create_task_group())
        self._exit_stack = stack
        self._closing = False
        self._shutdown_event = anyio.Event()
        self._health_scope = await self._task_group.start(self._health_loop)

        self._logger.info(
            "supervisor_started",
            health_check_interval=self._health_check_interval,
            max_retries=self._retry_policy.max_retries,
            restart_delay=self._retry_policy.delay,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: "TracebackType | None",
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Dispose of the supervisor.

        Stops the health loop first so no new recovery is scheduled, then
        stops every tracked server and releases all handles. Returns only
        once everything is torn down. Calling it again is a no-op.
        """
        stack = self._exit_stack
        if stack is None or self._closing:
            return

        self._closing = True
        if self._health_scope is not None:
            self._health_scope.cancel()
            self._health_scope = None

        try:
            with anyio.CancelScope(shield=True):
                await self.stop_all()
        finally:
            if self._task_group is not None:
                # Pending restarts and output forwarding for exited processes
                self._task_group.cancel_scope.cancel()
            self._runtimes.clear()
            self._locks.clear()
            self._sinks.clear()
            self._task_group = None
            self._exit_stack = None
            await stack.aclose()
            self._logger.info("supervisor_stopped")

    async def shutdown(self) -> None:
        """Request shutdown.

        Wakes up ``wait_for_shutdown()`` and therefore ``run()``.
        """
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        """Block until ``shutdown()`` is called or SIGINT/SIGTERM arrives.

        Raises:
            SupervisorError: If the supervisor is not open.
        """
        event = self._shutdown_event
        if event is None or self._exit_stack is None:
            msg = "Supervisor is not running"
            raise SupervisorError(msg)

        async def handle_signals() -> None:
            with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
                async for signum in signals:
                    self._logger.info("shutdown_signal", signal=signum.name)
                    event.set()
                    break

        async with anyio.create_task_group() as tg:
            tg.start_soon(handle_signals)
            await event.wait()
            tg.cancel_scope.cancel()

    async def run(self) -> None:
        """Open the supervisor and block until shutdown is requested."""
        async with self:
            await self.wait_for_shutdown()

    def _ensure_open(self) -> anyio.abc.TaskGroup:
        if self._task_group is None or self._closing:
            msg = "Supervisor is not running; use 'async with Supervisor()'"
            raise SupervisorError(msg)
        return self._task_group

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def server_ids(self) -> list[str]:
        """Return the ids of all tracked servers."""
        return list(self._runtimes)

    @property
    def retry_policy(self) -> FixedBackoff:
        """Return the restart policy for unhealthy servers."""
        return self._retry_policy

    def status(self, server_id: str) -> ServerState:
        """Return the lifecycle state of a server.

        Never blocks and never creates a runtime: unknown ids are STOPPED.
        """
        runtime = self._runtimes.get(server_id)
        return runtime.state if runtime is not None else ServerState.STOPPED

    def get_runtime(self, server_id: str) -> ServerRuntime:
        """Get the runtime record of a server.

        Args:
            server_id: The server id.

        Returns:
            The ServerRuntime for the server.

        Raises:
            ServerNotFoundError: If the server has never been started.
        """
        runtime = self._runtimes.get(server_id)
        if runtime is None:
            msg = f"Server '{server_id}' not found"
            raise ServerNotFoundError(msg, server_id=server_id)
        return runtime

    def describe(self, server_id: str) -> dict[str, object]:
        """Get a status summary for one server.

        Raises:
            ServerNotFoundError: If the server has never been started.
        """
        return _snapshot(self.get_runtime(server_id))

    def get_status(self) -> dict[str, dict[str, object]]:
        """Get status summary for all tracked servers.

        Returns:
            Dictionary mapping server ids to status dictionaries.
        """
        return {
            server_id: _snapshot(runtime)
            for server_id, runtime in self._runtimes.items()
        }

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def start(self, descriptor: "ServerDescriptor") -> None:
        """Start a server.

        A no-op if the server is already running. Otherwise the server's
        runtime is created or reused and the server is launched. A
        successful explicit start resets the restart budget.

        Args:
            descriptor: Declaration of the server to start.

        Raises:
            SpawnError: If the server process cannot be spawned. The
                server is left in the ERROR state.
            SupervisorError: If the supervisor is not open.
        """
        _ = self._ensure_open()

        async with self._lock_for(descriptor.id):
            runtime = self._runtimes.get(descriptor.id)
            if runtime is not None and runtime.state is ServerState.RUNNING:
                self._logger.debug("server_already_running", server_id=descriptor.id)
                return

            if runtime is None:
                runtime = ServerRuntime(descriptor)
                self._runtimes[descriptor.id] = runtime
            else:
                runtime.descriptor = descriptor

            await self._launch(runtime, explicit=True)

    async def stop(self, server_id: str) -> None:
        """Stop a server.

        Terminates the server process (SIGTERM, then SIGKILL after the grace
        period) or stops tracking an endpoint, and cancels any pending
        automatic restart. A no-op for unknown ids.

        Args:
            server_id: The server id.

        Raises:
            ServerStopError: If the process cannot be signalled. The server
                is still moved to the STOPPED state.
        """
        async with self._lock_for(server_id):
            runtime = self._runtimes.get(server_id)
            if runtime is None:
                return

            # Invalidates pending restarts and in-flight health checks
            runtime.generation += 1
            runtime.exited_unexpectedly = False
            if runtime.state is ServerState.STOPPED and runtime.handle is None:
                return

            log = self._logger.bind(server_id=server_id)
            runtime.state = ServerState.STOPPING
            handle, runtime.handle = runtime.handle, None
            pid = handle.pid if handle is not None else None

            try:
                if handle is not None:
                    runtime.last_exit = await handle.terminate(self._grace_period)
                    await handle.aclose()
            except OSError as e:
                runtime.last_error = f"Failed to stop server '{server_id}': {e}"
                log.error("server_stop_failed", pid=pid, error=str(e))
                raise ServerStopError(
                    runtime.last_error, server_id=server_id, cause=e
                ) from e
            finally:
                runtime.state = ServerState.STOPPED
                runtime.stopped_at = self._clock()

            exit_code = runtime.last_exit.returncode if handle and runtime.last_exit else None
            log.info("server_stopped", pid=pid, returncode=exit_code)
            await self._emit(
                runtime,
                ServerEventType.STOPPED,
                pid=pid,
                exit_code=exit_code,
                message="Stopped by request",
            )

    async def restart(self, descriptor: "ServerDescriptor") -> None:
        """Stop a server and start it again with an explicit start.

        Raises:
            SpawnError: If the server process cannot be spawned.
            ServerStopError: If the running process cannot be stopped.
        """
        self._logger.info("server_restarting", server_id=descriptor.id)
        await self.stop(descriptor.id)
        await self.start(descriptor)

    async def stop_all(self) -> None:
        """Stop every tracked server.

        Servers are stopped concurrently. A failure to stop one server is
        logged and never prevents the others from being stopped.
        """
        server_ids = list(self._runtimes)
        if not server_ids:
            return

        self._logger.info("stopping_all_servers", count=len(server_ids))
        async with anyio.create_task_group() as tg:
            for server_id in server_ids:
                tg.start_soon(self._stop_and_log, server_id)

    async def _stop_and_log(self, server_id: str) -> None:
        try:
            await self.stop(server_id)
        except Exception as e:  # noqa: BLE001
            self._logger.warning(
                "server_stop_skipped", server_id=server_id, error=str(e)
            )

    # -------------------------------------------------------------------------
    # Health checks and recovery
    # -------------------------------------------------------------------------

    async def _health_loop(
        self,
        *,
        task_status: "anyio.abc.TaskStatus[anyio.CancelScope]" = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        with anyio.CancelScope() as scope:
            task_status.started(scope)
            while True:
                await anyio.sleep(self._health_check_interval)
                await self.check_health()

    async def check_health(self) -> None:
        """Run one health sweep.

        Every server expected to be running is checked in its own task, so
        a slow check never delays the others. Each check is bounded by the
        check timeout.
        """
        candidates = [
            (runtime.id, runtime.generation)
            for runtime in self._runtimes.values()
            if _expects_running(runtime)
        ]
        if not candidates:
            return

        async with anyio.create_task_group() as tg:
            for server_id, generation in candidates:
                tg.start_soon(self._check_server, server_id, generation)

    async def _check_server(self, server_id: str, generation: int) -> None:
        runtime = self._runtimes.get(server_id)
        if runtime is None or runtime.generation != generation:
            return

        reason = await self._probe(runtime)
        if reason is None:
            return

        await self._recover(server_id, generation, reason)

    async def _probe(self, runtime: ServerRuntime) -> str | None:
        """Check one server.

        Returns:
            None if the server is healthy, otherwise the failure reason.
        """
        if runtime.state is not ServerState.RUNNING:
            last_exit = runtime.last_exit
            return last_exit.describe() if last_exit is not None else "exited"

        healthy = False
        with anyio.move_on_after(self._check_timeout) as scope:
            try:
                healthy = await self._health_checker.check(runtime)
            except Exception as e:  # noqa: BLE001
                return f"health check raised {type(e).__name__}: {e}"

        if scope.cancelled_caught:
            return f"health check timed out after {self._check_timeout}s"
        return None if healthy else "not alive"

    async def _recover(self, server_id: str, generation: int, reason: str) -> None:
        """Apply the restart policy to an unhealthy server."""
        async with self._lock_for(server_id):
            runtime = self._runtimes.get(server_id)
            if (
                self._closing
                or runtime is None
                or runtime.generation != generation
                or not _expects_running(runtime)
            ):
                # Stopped or restarted while the check was in flight
                return

            max_retries = self._retry_policy.max_retries
            runtime.exited_unexpectedly = False
            runtime.consecutive_failures += 1
            failures = runtime.consecutive_failures

            log = self._logger.bind(server_id=server_id)
            log.warning(
                "health_check_failed",
                reason=reason,
                consecutive_failures=failures,
                max_retries=max_retries,
            )
            await self._emit(
                runtime,
                ServerEventType.UNHEALTHY,
                message=f"{reason} ({failures}/{max_retries})",
            )

            with anyio.CancelScope(shield=True):
                await self._teardown(runtime)

            if self._retry_policy.exhausted(failures):
                runtime.state = ServerState.ERROR
                runtime.last_error = (
                    f"Exceeded maximum restart attempts ({max_retries})"
                )
                log.error("server_failed", consecutive_failures=failures)
                await self._emit(
                    runtime, ServerEventType.FAILED, message=runtime.last_error
                )
                return

            delay = self._retry_policy.delay_for(failures - 1)
            log.info(
                "server_restart_scheduled",
                delay=delay,
                attempt=failures,
                max_retries=max_retries,
            )
            await self._emit(
                runtime,
                ServerEventType.RESTARTING,
                message=f"Restarting in {delay:.1f}s (attempt {failures}/{max_retries})",
            )

            task_group = self._ensure_open()
            task_group.start_soon(
                self._restart_after, server_id, runtime.generation, delay
            )

    async def _teardown(self, runtime: ServerRuntime) -> None:
        """Release the handle of an unhealthy server and mark it STOPPED."""
        handle, runtime.handle = runtime.handle, None
        if handle is not None:
            try:
                runtime.last_exit = await handle.terminate(self._grace_period)
                await handle.aclose()
            except OSError as e:
                runtime.last_error = f"Failed to terminate unhealthy process: {e}"
                self._logger.error(
                    "server_teardown_failed",
                    server_id=runtime.id,
                    pid=handle.pid,
                    error=str(e),
                )

        if runtime.state is not ServerState.STOPPED:
            runtime.stopped_at = self._clock()
        runtime.state = ServerState.STOPPED

    async def _restart_after(self, server_id: str, generation: int, delay: float) -> None:
        await anyio.sleep(delay)

        async with self._lock_for(server_id):
            runtime = self._runtimes.get(server_id)
            if (
                self._closing
                or runtime is None
                or runtime.generation != generation
                or runtime.state is not ServerState.STOPPED
            ):
                self._logger.debug("server_restart_discarded", server_id=server_id)
                return

            try:
                await self._launch(runtime, explicit=False)
            except Exception:  # noqa: BLE001
                # Already logged; the runtime is in the ERROR state
                return

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _lock_for(self, server_id: str) -> anyio.Lock:
        lock = self._locks.get(server_id)
        if lock is None:
            lock = self._locks[server_id] = anyio.Lock()
        return lock

    def _sink_for(self, descriptor: "ServerDescriptor") -> "OutputSink":
        sink = self._sinks.get(descriptor.id)
        if sink is None:
            sink = self._sinks[descriptor.id] = self._sink_factory(descriptor)
        return sink

    async def _launch(self, runtime: ServerRuntime, *, explicit: bool) -> None:
        """Bring a server to RUNNING. Must be called under the server's lock.

        Args:
            runtime: Runtime of the server to launch.
            explicit: Whether this is an operator-requested start, which
                resets the restart budget on success.
        """
        descriptor = runtime.descriptor
        log = self._logger.bind(server_id=descriptor.id, kind=descriptor.kind.value)

        runtime.state = ServerState.STARTING
        runtime.generation += 1
        runtime.exited_unexpectedly = False

        launcher = self._launchers[descriptor.kind]
        try:
            handle = await launcher.launch(descriptor, self._sink_for(descriptor))
        except BaseException as e:
            runtime.state = ServerState.ERROR
            runtime.handle = None
            runtime.last_error = str(e) or type(e).__name__
            if isinstance(e, Exception):
                log.error("server_start_failed", error=runtime.last_error)
                await self._emit(
                    runtime, ServerEventType.FAILED, message=runtime.last_error
                )
            raise

        runtime.handle = handle
        runtime.state = ServerState.RUNNING
        runtime.started_at = self._clock()
        runtime.last_error = None
        if explicit:
            runtime.consecutive_failures = 0

        if handle is not None:
            task_group = self._ensure_open()
            task_group.start_soon(self._watch, descriptor.id, handle)
            command = " ".join(descriptor.argv)
            log.info("server_started", pid=handle.pid, command=command, explicit=explicit)
            message = f"Started with command: {command}"
        else:
            log.info("server_started", address=descriptor.address, explicit=explicit)
            message = f"Endpoint configured at {descriptor.address}"

        await self._emit(runtime, ServerEventType.STARTED, message=message)

    async def _watch(self, server_id: str, handle: "ServerHandle") -> None:
        """Forward a process's output and handle its exit notification.

        An exit that was not requested moves the server to STOPPED whatever
        the exit code; the next health sweep decides on recovery.
        """
        try:
            status = await handle.run()
        except Exception:
            # The health checker still sees the dead process through is_alive()
            self._logger.exception("server_output_failed", server_id=server_id)
            return

        async with self._lock_for(server_id):
            runtime = self._runtimes.get(server_id)
            if (
                runtime is None
                or runtime.handle is not handle
                or runtime.state is not ServerState.RUNNING
            ):
                # Exit caused by stop() or by a health check teardown
                return

            runtime.handle = None
            runtime.last_exit = status
            runtime.state = ServerState.STOPPED
            runtime.stopped_at = self._clock()
            runtime.exited_unexpectedly = True

            with anyio.CancelScope(shield=True):
                await handle.aclose()

            self._logger.warning(
                "server_exited",
                server_id=server_id,
                pid=handle.pid,
                returncode=status.returncode,
                description=status.describe(),
            )
            await self._emit(
                runtime,
                ServerEventType.EXITED,
                pid=handle.pid,
                exit_code=status.returncode,
                message=status.describe(),
            )

    async def _emit(
        self,
        runtime: ServerRuntime,
        event_type: ServerEventType,
        *,
        pid: int | None = None,
        exit_code: int | None = None,
        message: str | None = None,
    ) -> None:
        """Emit a lifecycle event to the server's output sink."""
        event = ServerEvent(
            server_id=runtime.id,
            event_type=event_type,
            timestamp=self._clock().to_iso8601_string(),
            pid=pid if pid is not None else runtime.pid,
            exit_code=exit_code,
            message=message,
        )
        try:  # noqa: SIM105
            await self._sink_for(runtime.descriptor).write_event(runtime.id, event)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not disturb supervision
            pass


def _snapshot(runtime: ServerRuntime) -> dict[str, object]:
    """Build a status summary for one runtime."""
    descriptor = runtime.descriptor
    return {
        "name": descriptor.name,
        "kind": descriptor.kind.value,
        "state": runtime.state.value,
        "pid": runtime.pid,
        "address": descriptor.address or None,
        "consecutive_failures": runtime.consecutive_failures,
        "started_at": (
            runtime.started_at.to_iso8601_string() if runtime.started_at else None
        ),
        "stopped_at": (
            runtime.stopped_at.to_iso8601_string() if runtime.stopped_at else None
        ),
        "last_exit_code": (
            runtime.last_exit.returncode if runtime.last_exit is not None else None
        ),
        "last_error": runtime.last_error,
    }
