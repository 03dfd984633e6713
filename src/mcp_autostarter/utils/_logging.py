"""Structured logging for MCP Autostarter.

Loggers are standalone structlog loggers: each one carries its own
processor chain and never touches the global structlog configuration, so
the supervisor logger and the server output logger can write to different
files in different formats.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "MCP_AUTOSTARTER_DEBUG"
LOG_LEVEL_ENV_VAR = "MCP_AUTOSTARTER_LOG_LEVEL"


def resolve_log_level(level: str | None = None) -> int:
    """Resolve the effective log level.

    ``MCP_AUTOSTARTER_DEBUG`` forces DEBUG. Otherwise ``level`` is used, then
    ``MCP_AUTOSTARTER_LOG_LEVEL``. Unknown names fall back to INFO.

    Args:
        level: Level name such as ``"warning"``, typically from the config.

    Returns:
        The stdlib logging level.
    """
    if getenv(DEBUG_ENV_VAR):
        return logging.DEBUG
    name = level if level is not None else getenv(LOG_LEVEL_ENV_VAR, "info")
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _processors(log_format: LogFormatType) -> "list[Processor]":
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "text":
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return chain


def _rotating_logger(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Logger:
    """Build a private stdlib logger whose only job is writing rendered lines."""
    target = logging.getLogger(f"mcp_autostarter.{path.stem}.{id(path)}")
    target.handlers.clear()
    target.propagate = False
    target.setLevel(level)

    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    target.addHandler(handler)
    return target


def _create_logger(
    log_file: str = "",
    *,
    level: int,
    log_format: LogFormatType = "json",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Entries go to stderr when ``log_file`` is empty. A file is rotated only
    when both ``max_bytes`` and ``backup_count`` are given.
    """
    raw_logger: object
    if not log_file:
        raw_logger = structlog.PrintLogger(file=sys.stderr)
    else:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        if max_bytes is not None and backup_count is not None:
            raw_logger = _rotating_logger(path, level, max_bytes, backup_count)
        else:
            raw_logger = structlog.WriteLogger(file=path.open("a"))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
        ),
    )


def create_supervisor_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    log_file: str = "",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger for supervisor status and error events.

    Every entry is bound with ``component="supervisor"``. See
    ``resolve_log_level`` for how the level is chosen.

    Args:
        level: Level name from the configuration.
        log_format: ``"json"`` or ``"text"``.
        log_file: Log file path. Logs go to stderr if empty.
        max_bytes: Rotate the file once it reaches this size.
        backup_count: Number of rotated files to keep.
    """
    logger = _create_logger(
        log_file,
        level=resolve_log_level(level),
        log_format=log_format,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    return logger.bind(component="supervisor")


def create_output_logger(
    *,
    log_file: str = "",
    log_format: LogFormatType = "json",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger recording server process output.

    Always logs at INFO so raising the supervisor level never drops server
    output. Entries are bound with ``component="output"``.
    """
    logger = _create_logger(log_file, level=logging.INFO, log_format=log_format)
    return logger.bind(component="output")
