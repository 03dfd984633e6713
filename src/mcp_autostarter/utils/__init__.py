"""Utilities used across MCP Autostarter."""

from ._logging import (
    LogFormatType,
    create_output_logger,
    create_supervisor_logger,
    resolve_log_level,
)

__all__ = [
    "LogFormatType",
    "create_output_logger",
    "create_supervisor_logger",
    "resolve_log_level",
]
