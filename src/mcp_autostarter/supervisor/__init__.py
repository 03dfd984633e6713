"""Supervisor package for managing MCP server processes.

This package keeps a set of named MCP servers alive: it spawns local server
processes, records remote endpoints, checks liveness periodically and
restarts failed servers a bounded number of times.

Key Components:
    - ServerDescriptor: Immutable server declaration
    - ServerRuntime: Mutable per-server runtime record
    - ServerState: Lifecycle state enumeration
    - ServerEvent: Lifecycle event records
    - ProcessHandle: One spawned OS process
    - HealthChecker: Liveness predicate
    - FixedBackoff: Restart delay and cap
    - OutputSink: Protocol for output consumption
    - ConcatenatedOutputSink: Console output implementation
    - Supervisor: Multi-server coordinator
    - create_control_router: FastAPI endpoint factory

Example:
    >>> from mcp_autostarter.supervisor import ServerDescriptor, Supervisor
    >>> descriptor = ServerDescriptor(id="files", command="npx", args=("mcp-fs",))
    >>> async with Supervisor() as supervisor:
    ...     await supervisor.start(descriptor)
    ...     await supervisor.wait_for_shutdown()
"""

from ._api import create_control_router
from ._backoff import FixedBackoff
from ._health import HealthChecker
from ._launcher import EndpointLauncher, ProcessLauncher, default_launchers
from ._models import (
    ExitStatus,
    ServerDescriptor,
    ServerEvent,
    ServerEventType,
    ServerKind,
    ServerRuntime,
    ServerState,
)
from ._output import ConcatenatedOutputSink, LoggingOutputSink
from ._process import ProcessHandle
from ._protocol import EndpointProbe, OutputSink, ServerHandle, ServerLauncher
from ._supervisor import Supervisor, console_sink_factory

__all__ = [
    "ConcatenatedOutputSink",
    "EndpointLauncher",
    "EndpointProbe",
    "ExitStatus",
    "FixedBackoff",
    "HealthChecker",
    "LoggingOutputSink",
    "OutputSink",
    "ProcessHandle",
    "ProcessLauncher",
    "ServerDescriptor",
    "ServerEvent",
    "ServerEventType",
    "ServerHandle",
    "ServerKind",
    "ServerLauncher",
    "ServerRuntime",
    "ServerState",
    "Supervisor",
    "console_sink_factory",
    "create_control_router",
    "default_launchers",
]
