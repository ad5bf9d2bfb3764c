"""HTTP device executor — sound players behind a micro-controller.

One GET to ``http://{arduino_ip}/trigger?key={secret_key}`` per activation.
There are no retries: the device plays a sound on every request it
receives, so a failed attempt is refunded rather than replayed.
"""

from __future__ import annotations

import httpx

from maze_control.devices.base import DeviceExecutor
from maze_control.exceptions import DeviceRequestError
from maze_control.logging import get_logger
from maze_control.triggers.models import HttpDeviceTrigger, Trigger, TriggerKind

log = get_logger(__name__)


def build_http_client(timeout_seconds: float = 10.0) -> httpx.AsyncClient:
    """Return the shared client used for every HTTP device."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), follow_redirects=False)


class HttpDeviceExecutor(DeviceExecutor):
    KIND = TriggerKind.HTTP_DEVICE.value

    def __init__(self, client: httpx.AsyncClient, owns_client: bool = False) -> None:
        self._client = client
        self._owns_client = owns_client

    async def execute(self, trigger: Trigger) -> None:
        device = self._expect(trigger, HttpDeviceTrigger)
        url = f"http://{device.arduino_ip}/trigger"
        try:
            response = await self._client.get(url, params={"key": device.secret_key})
        except httpx.TimeoutException as exc:
            raise DeviceRequestError(device.arduino_ip, f"timed out ({type(exc).__name__})") from exc
        except httpx.HTTPError as exc:
            raise DeviceRequestError(device.arduino_ip, str(exc) or type(exc).__name__) from exc

        if response.status_code >= 400:
            raise DeviceRequestError(
                device.arduino_ip,
                f"device returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        log.info("http_device_triggered", address=device.arduino_ip, status=response.status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
