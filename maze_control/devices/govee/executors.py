"""Govee light executors — status, lightning effect, set-state.

All three talk to the light through a :class:`LanClient`.  Timing is
injectable (``sleep``, ``clock``, ``rng``) so the lightning loop can run
against a fake clock in tests.

Command pacing: constrained bulbs drop commands that arrive back to back,
so every sequence waits ``command_gap`` seconds between sends.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Awaitable, Callable, Iterable

from maze_control.devices.base import DeviceExecutor
from maze_control.devices.govee import protocol
from maze_control.devices.govee.client import LanClient
from maze_control.devices.govee.protocol import GoveeCommand, GoveeDeviceState
from maze_control.exceptions import DispatchError, PartialRestoreError
from maze_control.logging import get_logger
from maze_control.triggers.models import (
    LightEffectTrigger,
    LightSetStateTrigger,
    LightStatusTrigger,
    RGBColor,
    Trigger,
    TriggerKind,
)

log = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

FLICKER_COLOR = RGBColor(r=200, g=200, b=255)
FLICKER_HIGH = 100
FLICKER_LOW = 1
# Jitter ranges in seconds.
HIGH_HOLD = (0.05, 0.15)
LOW_HOLD = (0.08, 0.38)


class _GoveeExecutor(DeviceExecutor):
    def __init__(
        self,
        client: LanClient,
        status_timeout: float = 3.0,
        command_gap: float = 0.1,
        rgb_only_models: Iterable[str] = ("H6076",),
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._status_timeout = status_timeout
        self._gap = command_gap
        self._rgb_only = {m.upper() for m in rgb_only_models}
        self._sleep = sleep

    def _color_command(self, model: str, rgb: RGBColor) -> GoveeCommand:
        if model.upper() in self._rgb_only:
            return protocol.color(rgb)
        return protocol.color_wc(rgb)

    def _supports_temperature(self, model: str) -> bool:
        return model.upper() not in self._rgb_only

    async def _send_sequence(self, ip: str, commands: list[GoveeCommand]) -> None:
        """Send *commands* in order, spaced by the command gap.  Errors propagate."""
        for index, command in enumerate(commands):
            if index:
                await self._sleep(self._gap)
            await self._client.send(ip, command)


class LightStatusExecutor(_GoveeExecutor):
    """Succeeds iff the light answers a status query in time."""

    KIND = TriggerKind.LIGHT_STATUS.value

    async def execute(self, trigger: Trigger) -> None:
        light = self._expect(trigger, LightStatusTrigger)
        await self._client.query_status(light.govee_device_ip, self._status_timeout)


class LightEffectExecutor(_GoveeExecutor):
    """Lightning: capture, flicker for a fixed duration, restore.

    Only the capture can fail the activation.  Every flicker and restore
    send is logged on failure and the sequence carries on.
    """

    KIND = TriggerKind.LIGHT_EFFECT.value

    def __init__(
        self,
        client: LanClient,
        status_timeout: float = 3.0,
        command_gap: float = 0.1,
        rgb_only_models: Iterable[str] = ("H6076",),
        duration: float = 10.0,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(client, status_timeout, command_gap, rgb_only_models, sleep)
        self._duration = duration
        self._clock = clock
        self._rng = rng or random.Random()

    async def execute(self, trigger: Trigger) -> None:
        light = self._expect(trigger, LightEffectTrigger)
        ip = light.govee_device_ip

        captured = await self._client.query_status(ip, self._status_timeout)
        log.info(
            "lightning_capture",
            address=ip,
            power=captured.power,
            brightness=captured.brightness,
            white_mode=captured.white_mode,
        )

        flashes = await self._flicker(ip, light.govee_model)
        log.info("lightning_done", address=ip, flashes=flashes)

        failed = await self._restore(ip, light.govee_model, captured)
        if failed:
            err = PartialRestoreError(ip, failed)
            log.warning("lightning_restore_incomplete", address=ip, error=err.message)

    async def _send_quietly(self, ip: str, command: GoveeCommand) -> bool:
        try:
            await self._client.send(ip, command)
        except DispatchError as exc:
            log.debug("govee_send_failed", address=ip, cmd=command.cmd, error=exc.message)
            return False
        return True

    async def _flicker(self, ip: str, model: str) -> int:
        if not await self._send_quietly(ip, self._color_command(model, FLICKER_COLOR)):
            log.warning("lightning_color_failed", address=ip)
        await self._sleep(self._gap)

        flashes = 0
        started = self._clock()
        while self._clock() - started < self._duration:
            await self._send_quietly(ip, protocol.brightness(FLICKER_HIGH))
            await self._sleep(self._rng.uniform(*HIGH_HOLD))
            await self._send_quietly(ip, protocol.brightness(FLICKER_LOW))
            await self._sleep(self._rng.uniform(*LOW_HOLD))
            flashes += 1
        return flashes

    def _restore_steps(
        self, model: str, captured: GoveeDeviceState
    ) -> list[tuple[str, GoveeCommand]]:
        steps: list[tuple[str, GoveeCommand]] = [
            ("power", protocol.turn(True)),
            ("brightness", protocol.brightness(captured.brightness)),
        ]
        if captured.white_mode and self._supports_temperature(model):
            steps.append(
                ("color_temperature", protocol.color_wc(kelvin=captured.color_temperature_kelvin))
            )
        else:
            steps.append(("color", self._color_command(model, captured.color)))
        if not captured.power:
            # Off lights ignore colour commands; switch off only at the end.
            steps.append(("power_off", protocol.turn(False)))
        return steps

    async def _restore(self, ip: str, model: str, captured: GoveeDeviceState) -> list[str]:
        failed: list[str] = []
        for index, (step, command) in enumerate(self._restore_steps(model, captured)):
            if index:
                await self._sleep(self._gap)
            if not await self._send_quietly(ip, command):
                failed.append(step)
        return failed


class LightSetStateExecutor(_GoveeExecutor):
    """Apply the trigger's target state.

    A scene id wins and is sent alone.  Otherwise: power on, brightness,
    then colour or (if no colour) colour temperature.
    """

    KIND = TriggerKind.LIGHT_SET_STATE.value

    def plan(self, light: LightSetStateTrigger) -> list[GoveeCommand]:
        if light.govee_scene_id is not None:
            return [protocol.scene(light.govee_scene_id)]

        commands = [protocol.turn(True)]
        if light.govee_brightness is not None:
            commands.append(protocol.brightness(light.govee_brightness))
        if light.govee_color is not None:
            commands.append(self._color_command(light.govee_model, light.govee_color))
        elif light.govee_color_temp:
            if self._supports_temperature(light.govee_model):
                commands.append(protocol.color_wc(kelvin=light.govee_color_temp))
            else:
                log.warning(
                    "color_temperature_unsupported",
                    address=light.govee_device_ip,
                    model=light.govee_model,
                )
        return commands

    async def execute(self, trigger: Trigger) -> None:
        light = self._expect(trigger, LightSetStateTrigger)
        commands = self.plan(light)
        await self._send_sequence(light.govee_device_ip, commands)
        log.info(
            "light_state_applied",
            address=light.govee_device_ip,
            commands=[c.cmd for c in commands],
        )
