"""Govee LAN lights: codec, UDP client and executors."""

from maze_control.devices.govee.client import GoveeLanClient, LanClient
from maze_control.devices.govee.executors import (
    LightEffectExecutor,
    LightSetStateExecutor,
    LightStatusExecutor,
)
from maze_control.devices.govee.protocol import GoveeCommand, GoveeDeviceState

__all__ = [
    "GoveeCommand",
    "GoveeDeviceState",
    "GoveeLanClient",
    "LanClient",
    "LightEffectExecutor",
    "LightSetStateExecutor",
    "LightStatusExecutor",
]
