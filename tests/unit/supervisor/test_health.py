import pytest
from pytest_mock import MockerFixture

from mcp_autostarter.supervisor import (
    HealthChecker,
    ServerDescriptor,
    ServerKind,
    ServerRuntime,
)

pytestmark = pytest.mark.anyio


def _process_runtime() -> ServerRuntime:
    return ServerRuntime(ServerDescriptor(id="files", command="npx"))


def _endpoint_runtime() -> ServerRuntime:
    return ServerRuntime(
        ServerDescriptor(
            id="remote", kind=ServerKind.ENDPOINT, address="http://localhost:9"
        )
    )


class TestHealthChecker:
    async def test_process_without_handle_is_unhealthy(self) -> None:
        assert await HealthChecker().check(_process_runtime()) is False

    async def test_process_health_follows_is_alive(self, mocker: MockerFixture) -> None:
        runtime = _process_runtime()
        handle = mocker.Mock()
        handle.is_alive.return_value = True
        runtime.handle = handle

        assert await HealthChecker().check(runtime) is True

        handle.is_alive.return_value = False
        assert await HealthChecker().check(runtime) is False

    async def test_endpoint_is_healthy_without_probe(self) -> None:
        assert await HealthChecker().check(_endpoint_runtime()) is True

    async def test_endpoint_probe_decides(self, mocker: MockerFixture) -> None:
        probe = mocker.Mock()
        probe.probe = mocker.AsyncMock(return_value=False)
        runtime = _endpoint_runtime()

        assert await HealthChecker(endpoint_probe=probe).check(runtime) is False
        probe.probe.assert_awaited_once_with(runtime.descriptor)
