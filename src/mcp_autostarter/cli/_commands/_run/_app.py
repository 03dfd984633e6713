"""Control application factory for the run command.

This module provides a factory function for creating the in-process
FastAPI control application that exposes supervisor control endpoints.
"""

from typing import TYPE_CHECKING

from fastapi import FastAPI

from mcp_autostarter.supervisor import create_control_router

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from mcp_autostarter.supervisor import ServerDescriptor, Supervisor


def create_control_app(
    supervisor: "Supervisor",
    descriptors: "Callable[[], Mapping[str, ServerDescriptor]] | None" = None,
) -> FastAPI:
    """Create the FastAPI control application.

    Args:
        supervisor: The Supervisor instance to control.
        descriptors: Returns the currently configured servers by id.

    Returns:
        A FastAPI application with supervisor control endpoints.
    """
    app = FastAPI(
        title="MCP Autostarter Control",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    control_router = create_control_router(supervisor, descriptors)
    app.include_router(control_router)

    return app
