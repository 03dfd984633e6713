"""Async runner for the run command.

This module provides the async entry point that coordinates the supervisor,
auto-start, the configuration watch and the control app using anyio.
"""

from functools import partial
from typing import TYPE_CHECKING

import anyio
import uvicorn

from mcp_autostarter.autostart import start_autostart_servers, watch_config
from mcp_autostarter.supervisor import (
    LoggingOutputSink,
    Supervisor,
    console_sink_factory,
)
from mcp_autostarter.utils import create_output_logger, create_supervisor_logger

from ._app import create_control_app

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from rich.console import Console
    from structlog.typing import FilteringBoundLogger

    from mcp_autostarter.config import AutostarterConfig
    from mcp_autostarter.supervisor import OutputSink, ServerDescriptor


def create_sink_factory(
    config: "AutostarterConfig", console: "Console | None" = None
) -> "Callable[[ServerDescriptor], OutputSink]":
    """Route server output to the console, or to a log file when one is set."""
    output_file = config.logging.output_file
    if not output_file:
        return console_sink_factory(console)
    sink = LoggingOutputSink(
        create_output_logger(
            log_file=output_file,
            log_format=config.logging.format.value,  # type: ignore[arg-type]
        )
    )
    return lambda _descriptor: sink


def create_supervisor(
    config: "AutostarterConfig",
    *,
    logger: "FilteringBoundLogger",
    console: "Console | None" = None,
) -> Supervisor:
    """Create a supervisor tuned by the configuration's supervisor section."""
    settings = config.supervisor
    return Supervisor(
        logger=logger,
        health_check_interval=settings.health_check_interval,
        retry_policy=settings.retry_policy(),
        grace_period=settings.grace_period,
        check_timeout=settings.check_timeout,
        sink_factory=create_sink_factory(config, console),
    )


async def run_supervisor(  # noqa: PLR0913
    config: "AutostarterConfig",
    config_path: "Path",
    *,
    workspace: "Path | None" = None,
    host: str = "127.0.0.1",
    control_port: int = 6279,
    control: bool = True,
    watch: bool = True,
    console: "Console | None" = None,
) -> None:
    """Run the supervisor until SIGINT/SIGTERM or a shutdown request.

    Auto-starts the configured servers, then serves the control API and
    watches the configuration file next to the supervisor.

    Args:
        config: The loaded configuration.
        config_path: The configuration file, watched for changes.
        workspace: VS Code workspace folder whose servers are added on reload.
        host: Host for the control API server.
        control_port: Port for the control API server.
        control: Whether to serve the control API.
        watch: Whether to reload the configuration when it changes.
        console: Console receiving server output.
    """
    logger = create_supervisor_logger(
        level=config.logging.level.value,
        log_format=config.logging.format.value,  # type: ignore[arg-type]
        log_file=config.logging.file,
    )
    supervisor = create_supervisor(config, logger=logger, console=console)

    descriptors, errors = config.descriptors()
    known: dict[str, ServerDescriptor] = dict(descriptors)
    for server_id, error in errors.items():
        logger.warning("invalid_server_config", server_id=server_id, error=str(error))

    async def on_config_change(new_config: "AutostarterConfig") -> None:
        new_descriptors, _ = new_config.descriptors()
        known.clear()
        known.update(new_descriptors)
        await start_autostart_servers(supervisor, new_config, logger=logger)

    stop_watch = anyio.Event()
    control_server: uvicorn.Server | None = None

    async with supervisor, anyio.create_task_group() as tg:
        if control:
            control_app = create_control_app(supervisor, lambda: known)
            uvicorn_config = uvicorn.Config(
                app=control_app,
                host=host,
                port=control_port,
                log_level="warning",
                access_log=False,
            )
            control_server = uvicorn.Server(uvicorn_config)
            # Start the control server first so it's ready before servers start
            tg.start_soon(control_server.serve)

        await start_autostart_servers(supervisor, config, logger=logger)

        if watch:
            tg.start_soon(
                partial(
                    watch_config,
                    config_path,
                    on_config_change,
                    workspace=workspace,
                    logger=logger,
                    stop_event=stop_watch,
                )
            )

        # Blocks until a signal or a shutdown request
        await supervisor.wait_for_shutdown()

        stop_watch.set()
        if control_server is not None:
            control_server.should_exit = True
