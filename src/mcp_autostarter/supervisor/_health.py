"""Liveness checks for supervised servers."""

from typing import TYPE_CHECKING, final

from ._models import ServerKind

if TYPE_CHECKING:
    from ._models import ServerRuntime
    from ._protocol import EndpointProbe


@final
class HealthChecker:
    """Decides whether a running server is alive.

    Process servers are healthy while their process is alive. Endpoint
    servers are healthy unconditionally unless an EndpointProbe is
    installed, in which case the probe decides.
    """

    __slots__ = ("_endpoint_probe",)

    def __init__(self, endpoint_probe: "EndpointProbe | None" = None) -> None:
        """Initialize the health checker.

        Args:
            endpoint_probe: Optional reachability probe for endpoint servers.
        """
        self._endpoint_probe = endpoint_probe

    async def check(self, runtime: "ServerRuntime") -> bool:
        """Check the liveness of a server.

        Args:
            runtime: Runtime record of the server to check.

        Returns:
            True if the server is healthy.
        """
        if runtime.kind is ServerKind.ENDPOINT:
            if self._endpoint_probe is None:
                return True
            return await self._endpoint_probe.probe(runtime.descriptor)

        handle = runtime.handle
        return handle is not None and handle.is_alive()
