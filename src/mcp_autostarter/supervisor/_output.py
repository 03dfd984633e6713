"""Output sinks for server output and lifecycle events.

``ConcatenatedOutputSink`` interleaves the output of all servers on one rich
console; ``LoggingOutputSink`` turns it into structured log entries.
"""

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import ServerEventType

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._models import ServerEvent
    from ._protocol import StreamName

_PREFIX_STYLE = Style(color="blue", bold=True)
_DETAIL_STYLE = Style(dim=True)
_STREAM_STYLES: "dict[StreamName, Style]" = {
    "stdout": Style(),
    "stderr": Style(color="red", dim=True),
}
_EVENT_STYLES: dict[ServerEventType, Style] = {
    ServerEventType.STARTED: Style(color="green", bold=True),
    ServerEventType.STOPPED: Style(color="yellow"),
    ServerEventType.EXITED: Style(color="red"),
    ServerEventType.UNHEALTHY: Style(color="red", bold=True),
    ServerEventType.RESTARTING: Style(color="cyan"),
    ServerEventType.FAILED: Style(color="magenta", bold=True),
}


@final
class ConcatenatedOutputSink:
    """Prints every server's output on a shared console.

    Output lines read ``[id:pid] line`` (stderr dimmed red); lifecycle
    events read ``[id] EVENT (pid=..) exit_code=.. - message`` coloured by
    event type.
    """

    __slots__ = ("_console",)

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    async def write_line(
        self,
        server_id: str,
        pid: int,
        stream: "StreamName",
        line: str,
    ) -> None:
        self._console.print(
            Text.assemble(
                (f"[{server_id}:{pid}]", _PREFIX_STYLE),
                " ",
                (line, _STREAM_STYLES.get(stream, Style())),
            )
        )

    async def write_event(
        self,
        server_id: str,
        event: "ServerEvent",
    ) -> None:
        style = _EVENT_STYLES.get(event.event_type, Style())
        text = Text.assemble(
            (f"[{server_id}]", _PREFIX_STYLE),
            " ",
            (event.event_type.value.upper(), style),
        )
        details = []
        if event.pid is not None:
            details.append(f" (pid={event.pid})")
        if event.exit_code is not None:
            details.append(f" exit_code={event.exit_code}")
        for detail in details:
            _ = text.append(detail, style=_DETAIL_STYLE)
        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        self._console.print(text)


@final
class LoggingOutputSink:
    """Output sink that records output and events as structured log entries.

    Every output line becomes a ``server_output`` entry and every lifecycle
    event a ``server_event`` entry, both bound with the server id.
    """

    __slots__ = ("_logger",)

    def __init__(self, logger: "FilteringBoundLogger") -> None:
        """Initialize the output sink.

        Args:
            logger: Structured logger receiving the entries.
        """
        self._logger = logger

    async def write_line(
        self,
        server_id: str,
        pid: int,
        stream: "StreamName",
        line: str,
    ) -> None:
        """Log a line of server output."""
        self._logger.info(
            "server_output",
            server_id=server_id,
            pid=pid,
            stream=stream,
            line=line,
        )

    async def write_event(
        self,
        server_id: str,
        event: "ServerEvent",
    ) -> None:
        """Log a server lifecycle event."""
        self._logger.info(
            "server_event",
            server_id=server_id,
            event_type=event.event_type.value,
            pid=event.pid,
            exit_code=event.exit_code,
            message=event.message,
            event_timestamp=event.timestamp,
        )
