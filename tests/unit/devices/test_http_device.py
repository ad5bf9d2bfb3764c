"""Unit tests — HttpDeviceExecutor against httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from maze_control.devices.http_device import HttpDeviceExecutor
from maze_control.exceptions import DeviceRequestError, DispatchError
from maze_control.triggers.models import parse_trigger

TRIGGER = parse_trigger(
    {"id": "scream", "type": "arduino", "arduino_ip": "10.0.0.2", "secret_key": "hunter2"}
)


def _executor(handler) -> HttpDeviceExecutor:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpDeviceExecutor(client, owns_client=True)


@pytest.mark.unit
class TestHttpDeviceExecutor:
    async def test_success_sends_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok")

        executor = _executor(handler)
        await executor.execute(TRIGGER)
        await executor.aclose()

        assert len(seen) == 1
        assert seen[0].method == "GET"
        assert seen[0].url.host == "10.0.0.2"
        assert seen[0].url.path == "/trigger"
        assert seen[0].url.params["key"] == "hunter2"

    @pytest.mark.parametrize("status", [301, 204])
    async def test_non_error_statuses_succeed(self, status: int) -> None:
        executor = _executor(lambda request: httpx.Response(status))
        await executor.execute(TRIGGER)

    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    async def test_error_status_fails(self, status: int) -> None:
        executor = _executor(lambda request: httpx.Response(status))
        with pytest.raises(DeviceRequestError) as exc_info:
            await executor.execute(TRIGGER)
        assert exc_info.value.status_code == status

    async def test_transport_error_fails(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DeviceRequestError):
            await _executor(handler).execute(TRIGGER)

    async def test_timeout_fails(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(DeviceRequestError) as exc_info:
            await _executor(handler).execute(TRIGGER)
        assert "timed out" in exc_info.value.message

    async def test_single_attempt_no_retry(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        with pytest.raises(DeviceRequestError):
            await _executor(handler).execute(TRIGGER)
        assert calls == 1

    async def test_wrong_trigger_type_rejected(self) -> None:
        light = parse_trigger({"id": "l", "type": "govee_status", "govee_device_ip": "1.2.3.4"})
        with pytest.raises(DispatchError):
            await _executor(lambda r: httpx.Response(200)).execute(light)
