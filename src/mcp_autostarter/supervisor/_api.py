"""FastAPI control endpoints for the supervisor.

This module provides REST API endpoints for controlling and monitoring
the supervisor and the MCP servers it manages.
"""

# pyright: reportUnusedFunction=false
# FastAPI route handlers are registered via decorators, not direct calls

from typing import TYPE_CHECKING, Never

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from mcp_autostarter.exceptions import (
    ServerNotFoundError,
    ServerStopError,
    SpawnError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._models import ServerDescriptor
    from ._supervisor import Supervisor

    DescriptorSource = Callable[[], Mapping[str, ServerDescriptor]]


class ServerStatusResponse(BaseModel):
    """Response model for server status."""

    id: str
    name: str
    kind: str
    state: str
    pid: int | None
    address: str | None
    consecutive_failures: int
    last_exit_code: int | None
    last_error: str | None
    started_at: str | None
    stopped_at: str | None


class SupervisorStatusResponse(BaseModel):
    """Response model for overall supervisor status."""

    servers: dict[str, ServerStatusResponse]
    total_servers: int
    running_servers: int
    failed_servers: int


class MessageResponse(BaseModel):
    """Response model for simple message responses."""

    message: str


def _optional_int(value: object) -> int | None:
    return value if isinstance(value, int) else None


def _optional_str(value: object) -> str | None:
    return str(value) if value else None


def _build_server_status(server_id: str, data: "Mapping[str, object]") -> ServerStatusResponse:
    """Build a ServerStatusResponse from raw status data.

    Args:
        server_id: The server id.
        data: Raw status dictionary from the supervisor.

    Returns:
        ServerStatusResponse with properly typed fields.
    """
    state = data.get("state")
    failures = data.get("consecutive_failures")

    return ServerStatusResponse(
        id=server_id,
        name=str(data.get("name") or server_id),
        kind=str(data.get("kind") or "process"),
        state=str(state) if state is not None else "unknown",
        pid=_optional_int(data.get("pid")),
        address=_optional_str(data.get("address")),
        consecutive_failures=failures if isinstance(failures, int) else 0,
        last_exit_code=_optional_int(data.get("last_exit_code")),
        last_error=_optional_str(data.get("last_error")),
        started_at=_optional_str(data.get("started_at")),
        stopped_at=_optional_str(data.get("stopped_at")),
    )


def _raise_not_found(server_id: str, cause: Exception | None = None) -> Never:
    """Raise HTTP 404 for server not found.

    Raises:
        HTTPException: Always raises with 404 status.
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Server '{server_id}' not found",
    ) from cause


def _raise_server_error(cause: Exception) -> Never:
    """Raise HTTP 500 for internal server error.

    Raises:
        HTTPException: Always raises with 500 status.
    """
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(cause),
    ) from cause


def create_control_router(
    supervisor: "Supervisor",
    descriptors: "DescriptorSource | None" = None,
) -> APIRouter:
    """Create a FastAPI router for supervisor control endpoints.

    Args:
        supervisor: The Supervisor instance to control.
        descriptors: Returns the currently configured servers by id. Used to
            start servers the supervisor has not seen yet and to pick up
            configuration changes on start and restart.

    Returns:
        A FastAPI APIRouter with control endpoints.
    """
    router = APIRouter(prefix="/supervisor", tags=["supervisor"])

    def resolve(server_id: str) -> "ServerDescriptor":
        configured = descriptors() if descriptors is not None else {}
        descriptor = configured.get(server_id)
        if descriptor is not None:
            return descriptor
        try:
            return supervisor.get_runtime(server_id).descriptor
        except ServerNotFoundError as e:
            _raise_not_found(server_id, e)

    @router.get("/status", response_model=SupervisorStatusResponse)
    async def get_supervisor_status() -> SupervisorStatusResponse:
        """Get overall supervisor status."""
        servers = {
            server_id: _build_server_status(server_id, data)
            for server_id, data in supervisor.get_status().items()
        }

        return SupervisorStatusResponse(
            servers=servers,
            total_servers=len(servers),
            running_servers=sum(1 for s in servers.values() if s.state == "running"),
            failed_servers=sum(1 for s in servers.values() if s.state == "error"),
        )

    @router.get("/servers", response_model=list[ServerStatusResponse])
    async def list_servers() -> list[ServerStatusResponse]:
        """List all tracked servers."""
        return [
            _build_server_status(server_id, data)
            for server_id, data in supervisor.get_status().items()
        ]

    @router.get("/servers/{server_id}", response_model=ServerStatusResponse)
    async def get_server_status(server_id: str) -> ServerStatusResponse:
        """Get status of a specific server."""
        try:
            data = supervisor.describe(server_id)
        except ServerNotFoundError as e:
            _raise_not_found(server_id, e)

        return _build_server_status(server_id, data)

    @router.post("/servers/{server_id}/start", response_model=MessageResponse)
    async def start_server(server_id: str) -> MessageResponse:
        """Start a specific server."""
        descriptor = resolve(server_id)
        try:
            await supervisor.start(descriptor)
        except SpawnError as e:
            _raise_server_error(e)

        return MessageResponse(message=f"Server '{server_id}' start requested")

    @router.post("/servers/{server_id}/stop", response_model=MessageResponse)
    async def stop_server(server_id: str) -> MessageResponse:
        """Stop a specific server.

        Unlike ``Supervisor.stop``, which ignores ids it has never seen, an id
        the supervisor does not know answers 404 so typos are reported.
        """
        if server_id not in supervisor.server_ids:
            _raise_not_found(server_id)
        try:
            await supervisor.stop(server_id)
        except ServerStopError as e:
            _raise_server_error(e)

        return MessageResponse(message=f"Server '{server_id}' stop requested")

    @router.post("/servers/{server_id}/restart", response_model=MessageResponse)
    async def restart_server(server_id: str) -> MessageResponse:
        """Restart a specific server."""
        descriptor = resolve(server_id)
        try:
            await supervisor.restart(descriptor)
        except (SpawnError, ServerStopError) as e:
            _raise_server_error(e)

        return MessageResponse(message=f"Server '{server_id}' restart requested")

    @router.post("/shutdown", response_model=MessageResponse)
    async def shutdown_supervisor() -> MessageResponse:
        """Trigger graceful shutdown of the supervisor."""
        await supervisor.shutdown()
        return MessageResponse(message="Shutdown initiated")

    return router
