"""Unit tests — LightStatus, LightEffect and LightSetState executors."""

from __future__ import annotations

import random

import pytest

from maze_control.devices.govee.executors import (
    FLICKER_COLOR,
    LightEffectExecutor,
    LightSetStateExecutor,
    LightStatusExecutor,
)
from maze_control.devices.govee.protocol import GoveeDeviceState
from maze_control.exceptions import DeviceRequestError, DeviceTimeoutError, MalformedReplyError
from maze_control.triggers.models import RGBColor, parse_trigger

IP = "10.0.0.5"


def _light(kind: str, **fields) -> object:
    return parse_trigger({"id": "l", "type": kind, "govee_device_ip": IP, **fields})


def _effect(fake_lan, fake_time, model_duration: float = 1.0) -> LightEffectExecutor:
    return LightEffectExecutor(
        fake_lan,
        duration=model_duration,
        sleep=fake_time.sleep,
        clock=fake_time.clock,
        rng=random.Random(7),
    )


@pytest.mark.unit
class TestLightStatus:
    async def test_success(self, fake_lan) -> None:
        await LightStatusExecutor(fake_lan).execute(_light("govee_status"))
        assert fake_lan.status_queries == [IP]
        assert fake_lan.sent == []

    @pytest.mark.parametrize(
        "error",
        [DeviceTimeoutError(IP, 3.0), MalformedReplyError(IP, "garbage")],
    )
    async def test_failure_propagates(self, fake_lan, error) -> None:
        fake_lan.status_error = error
        with pytest.raises(type(error)):
            await LightStatusExecutor(fake_lan).execute(_light("govee_status"))


@pytest.mark.unit
class TestLightEffect:
    async def test_capture_failure_sends_nothing(self, fake_lan, fake_time) -> None:
        fake_lan.status_error = DeviceTimeoutError(IP, 3.0)
        with pytest.raises(DeviceTimeoutError):
            await _effect(fake_lan, fake_time).execute(_light("govee_lightning"))
        assert fake_lan.sent == []

    async def test_flicker_then_restore(self, fake_lan, fake_time) -> None:
        await _effect(fake_lan, fake_time).execute(
            _light("govee_lightning", govee_model="H619E")
        )

        commands = fake_lan.commands
        # Flicker colour first.
        assert commands[0] == "colorwc"
        assert fake_lan.sent[0][2]["color"] == {"r": 200, "g": 200, "b": 255}

        flicker = [data["value"] for _, cmd, data in fake_lan.sent[1:-3] if cmd == "brightness"]
        assert flicker
        assert flicker[0::2] == [100] * len(flicker[0::2])
        assert flicker[1::2] == [1] * len(flicker[1::2])

        # Restore: power, brightness, colour.
        assert commands[-3:] == ["turn", "brightness", "colorwc"]
        assert fake_lan.sent[-3][2] == {"value": 1}
        assert fake_lan.sent[-2][2] == {"value": 60}
        assert fake_lan.sent[-1][2]["color"] == {"r": 255, "g": 120, "b": 0}

    async def test_loop_runs_for_configured_duration(self, fake_lan, fake_time) -> None:
        await _effect(fake_lan, fake_time, model_duration=2.0).execute(
            _light("govee_lightning")
        )
        # The gap before the loop plus the loop itself; restore gaps come after.
        assert fake_time.now >= 2.0
        assert fake_time.now < 2.0 + 0.1 + 0.15 + 0.38 + 3 * 0.1 + 0.001

    async def test_jitter_within_bounds(self, fake_lan, fake_time) -> None:
        await _effect(fake_lan, fake_time).execute(_light("govee_lightning"))
        jitter = [s for s in fake_time.sleeps if s != pytest.approx(0.1)]
        assert jitter
        assert all(0.05 <= s <= 0.38 for s in jitter)

    async def test_rgb_only_model_uses_legacy_color(self, fake_lan, fake_time) -> None:
        await _effect(fake_lan, fake_time).execute(
            _light("govee_lightning", govee_model="H6076")
        )
        assert fake_lan.sent[0][1:] == (
            "color",
            {"r": FLICKER_COLOR.r, "g": FLICKER_COLOR.g, "b": FLICKER_COLOR.b},
        )
        assert fake_lan.commands[-1] == "color"

    async def test_restores_white_mode_with_temperature(self, fake_lan, fake_time) -> None:
        fake_lan.state = GoveeDeviceState(
            power=True, brightness=40, color=RGBColor(r=0, g=0, b=0), color_temperature_kelvin=2700
        )
        await _effect(fake_lan, fake_time).execute(_light("govee_lightning", govee_model="H619E"))
        assert fake_lan.sent[-1][1] == "colorwc"
        assert fake_lan.sent[-1][2]["colorTemInKelvin"] == 2700

    async def test_light_captured_off_is_switched_off_last(self, fake_lan, fake_time) -> None:
        fake_lan.state = GoveeDeviceState(power=False, brightness=20, color=RGBColor(r=1, g=2, b=3))
        await _effect(fake_lan, fake_time).execute(_light("govee_lightning"))
        assert fake_lan.commands[-4:] == ["turn", "brightness", "colorwc", "turn"]
        assert fake_lan.sent[-1][2] == {"value": 0}

    async def test_restore_errors_do_not_fail(self, fake_lan, fake_time) -> None:
        fake_lan.fail_commands = {"turn"}
        await _effect(fake_lan, fake_time).execute(_light("govee_lightning"))
        assert "turn" not in fake_lan.commands
        assert fake_lan.commands[-1] == "colorwc"

    async def test_flicker_errors_do_not_fail(self, fake_lan, fake_time) -> None:
        fake_lan.fail_commands = {"brightness"}
        await _effect(fake_lan, fake_time).execute(_light("govee_lightning"))
        assert fake_lan.commands[-1] == "colorwc"

    async def test_flicker_color_failure_still_flashes(self, fake_lan, fake_time) -> None:
        fake_lan.fail_commands = {"colorwc"}
        await _effect(fake_lan, fake_time).execute(
            _light("govee_lightning", govee_model="H619E")
        )
        flashes = [data["value"] for _, cmd, data in fake_lan.sent if cmd == "brightness"]
        # Flicker pairs plus the restore brightness.
        assert len(flashes) >= 3
        assert flashes[:2] == [100, 1]
        assert fake_lan.commands[-2:] == ["turn", "brightness"]


@pytest.mark.unit
class TestLightSetState:
    async def test_scene_sent_alone(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(
            _light("govee_set_state", govee_scene_id=12, govee_brightness=50,
                   govee_color={"r": 1, "g": 1, "b": 1})
        )
        assert fake_lan.sent == [(IP, "scene", {"value": 12})]

    async def test_full_sequence_order(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(
            _light("govee_set_state", govee_model="H619E", govee_brightness=50,
                   govee_color={"r": 180, "g": 0, "b": 0})
        )
        assert fake_lan.commands == ["turn", "brightness", "colorwc"]
        assert fake_time.sleeps == [pytest.approx(0.1)] * 2

    async def test_color_wins_over_temperature(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(
            _light("govee_set_state", govee_color={"r": 9, "g": 9, "b": 9},
                   govee_color_temp=3000)
        )
        last = fake_lan.sent[-1]
        assert last[1] == "colorwc"
        assert last[2] == {"color": {"r": 9, "g": 9, "b": 9}, "colorTemInKelvin": 0}

    async def test_temperature_only(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(_light("govee_set_state", govee_color_temp=4000))
        assert fake_lan.commands == ["turn", "colorwc"]
        assert fake_lan.sent[-1][2]["colorTemInKelvin"] == 4000

    async def test_rgb_only_model_skips_temperature(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(
            _light("govee_set_state", govee_model="h6076", govee_color_temp=4000)
        )
        assert fake_lan.commands == ["turn"]

    async def test_rgb_only_model_uses_color_command(self, fake_lan, fake_time) -> None:
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        await executor.execute(
            _light("govee_set_state", govee_model="H6076", govee_color={"r": 5, "g": 6, "b": 7})
        )
        assert fake_lan.sent[-1][1:] == ("color", {"r": 5, "g": 6, "b": 7})

    async def test_send_failure_fails_activation(self, fake_lan, fake_time) -> None:
        fake_lan.fail_commands = {"turn"}
        executor = LightSetStateExecutor(fake_lan, sleep=fake_time.sleep)
        with pytest.raises(DeviceRequestError):
            await executor.execute(_light("govee_set_state", govee_brightness=10))
