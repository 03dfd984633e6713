"""Auto-start of configured servers and configuration watching.

This module starts every server the configuration marks for auto-start and
watches the configuration file so servers added later are started too.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from mcp_autostarter.config import load_config
from mcp_autostarter.exceptions import ConfigError, ConfigurationError, SupervisorError
from mcp_autostarter.supervisor import ServerState
from mcp_autostarter.utils import create_supervisor_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import anyio
    from structlog.typing import FilteringBoundLogger
    from watchfiles import Change

    from mcp_autostarter.config import AutostarterConfig
    from mcp_autostarter.supervisor import Supervisor


@dataclass(frozen=True, slots=True)
class AutoStartReport:
    """Outcome of one auto-start pass.

    Attributes:
        started: Ids of servers started by this pass.
        failed: Ids of servers that were invalid or failed to start.
        skipped: Ids of servers that were already running.
        errors: Error message for every failed server.
    """

    started: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    errors: dict[str, str] = field(default_factory=dict)


async def start_autostart_servers(
    supervisor: "Supervisor",
    config: "AutostarterConfig",
    *,
    logger: "FilteringBoundLogger | None" = None,
) -> AutoStartReport:
    """Start every enabled server marked for auto-start.

    Servers are started one after the other. Invalid entries and start
    failures are logged and reported, never raised, so one broken server
    does not keep the others from starting.

    Args:
        supervisor: The open supervisor to start servers with.
        config: Configuration listing the servers.
        logger: Logger for the outcome of each server.

    Returns:
        Which servers were started, failed or skipped.
    """
    log = logger if logger is not None else create_supervisor_logger()

    if not config.global_auto_start:
        log.info("autostart_disabled")
        return AutoStartReport()

    started: list[str] = []
    failed: list[str] = []
    skipped: list[str] = []
    errors: dict[str, str] = {}

    for server_id, entry in config.servers.items():
        if not (entry.enabled and entry.auto_start):
            continue

        try:
            descriptor = entry.to_descriptor(server_id)
        except ConfigurationError as e:
            log.error("autostart_invalid_server", server_id=server_id, field=e.field, error=str(e))
            failed.append(server_id)
            errors[server_id] = str(e)
            continue

        if supervisor.status(server_id) is ServerState.RUNNING:
            log.debug("autostart_already_running", server_id=server_id)
            skipped.append(server_id)
            continue

        try:
            await supervisor.start(descriptor)
        except SupervisorError as e:
            log.error("autostart_start_failed", server_id=server_id, error=str(e))
            failed.append(server_id)
            errors[server_id] = str(e)
            continue

        started.append(server_id)

    log.info(
        "autostart_complete",
        started=len(started),
        failed=len(failed),
        skipped=len(skipped),
    )
    return AutoStartReport(
        started=tuple(started),
        failed=tuple(failed),
        skipped=tuple(skipped),
        errors=errors,
    )


def format_change(change: "Change", path: str) -> str:
    """Format a file change event as a string such as ``modified: /a/b``."""
    from watchfiles import Change as WatchChange  # noqa: PLC0415

    change_names = {
        WatchChange.added: "added",
        WatchChange.modified: "modified",
        WatchChange.deleted: "deleted",
    }
    return f"{change_names.get(change, 'unknown')}: {path}"


async def watch_config(
    path: Path,
    on_change: "Callable[[AutostarterConfig], Awaitable[None]]",
    *,
    workspace: Path | None = None,
    logger: "FilteringBoundLogger | None" = None,
    stop_event: "anyio.Event | None" = None,
) -> None:
    """Reload the configuration whenever its file changes.

    The file's directory is watched rather than the file itself, so a file
    that does not exist yet is picked up once it is created. A file that
    fails to load is logged and the watch continues.

    Args:
        path: The configuration file.
        on_change: Called with every successfully reloaded configuration.
        workspace: VS Code workspace folder whose servers are reloaded too.
        logger: Logger for reload events.
        stop_event: Ends the watch when set.
    """
    from watchfiles import awatch  # noqa: PLC0415

    log = logger if logger is not None else create_supervisor_logger()
    config_path = path.expanduser().absolute()
    directory = config_path.parent

    if not directory.is_dir():
        log.warning("config_watch_unavailable", path=str(config_path))
        return

    def is_config_file(_change: "Change", changed_path: str) -> bool:
        return Path(changed_path).name == config_path.name

    log.info("config_watch_started", path=str(config_path))
    async for changes in awatch(
        directory,
        watch_filter=is_config_file,
        recursive=False,
        stop_event=stop_event,
    ):
        log.info(
            "config_changed",
            path=str(config_path),
            changes=sorted(format_change(change, p) for change, p in changes),
        )
        try:
            config = load_config(config_path, workspace=workspace)
        except ConfigError as e:
            log.error("config_reload_failed", path=str(config_path), error=str(e))
            continue

        await on_change(config)
