"""Device protocol layer.

Package structure
-----------------
devices/
  base.py         DeviceExecutor ABC + ExecutorRegistry
  http_device.py  GET-based micro-controller triggers
  govee/          LAN UDP lights (protocol, client, executors)
"""

from __future__ import annotations

import httpx

from maze_control.config import DeviceConfig
from maze_control.devices.base import DeviceExecutor, ExecutorRegistry
from maze_control.devices.govee import (
    GoveeLanClient,
    LanClient,
    LightEffectExecutor,
    LightSetStateExecutor,
    LightStatusExecutor,
)
from maze_control.devices.http_device import HttpDeviceExecutor, build_http_client


def build_executors(
    config: DeviceConfig,
    http_client: httpx.AsyncClient,
    lan_client: LanClient,
) -> ExecutorRegistry:
    """Return a registry holding one executor per known trigger kind."""
    govee_kwargs = dict(
        status_timeout=config.status_timeout_seconds,
        command_gap=config.command_gap_seconds,
        rgb_only_models=config.rgb_only_models,
    )
    return ExecutorRegistry(
        [
            HttpDeviceExecutor(http_client),
            LightStatusExecutor(lan_client, **govee_kwargs),
            LightEffectExecutor(
                lan_client, duration=config.effect_duration_seconds, **govee_kwargs
            ),
            LightSetStateExecutor(lan_client, **govee_kwargs),
        ]
    )


__all__ = [
    "DeviceExecutor",
    "ExecutorRegistry",
    "GoveeLanClient",
    "HttpDeviceExecutor",
    "LanClient",
    "LightEffectExecutor",
    "LightSetStateExecutor",
    "LightStatusExecutor",
    "build_executors",
    "build_http_client",
]
