"""Unit tests — Govee LAN codec."""

from __future__ import annotations

import json

import pytest

from maze_control.devices.govee import protocol
from maze_control.exceptions import MalformedReplyError
from maze_control.triggers.models import RGBColor


def _reply(data: dict, cmd: str = "devStatus") -> bytes:
    return json.dumps({"msg": {"cmd": cmd, "data": data}}).encode()


@pytest.mark.unit
class TestEncode:
    def test_frame_shape(self) -> None:
        raw = protocol.encode_command("turn", {"value": 1})
        assert json.loads(raw) == {"msg": {"cmd": "turn", "data": {"value": 1}}}

    def test_dev_status_has_empty_data(self) -> None:
        assert json.loads(protocol.dev_status().encode()) == {
            "msg": {"cmd": "devStatus", "data": {}}
        }

    def test_brightness_clamped(self) -> None:
        assert protocol.brightness(0).data == {"value": 1}
        assert protocol.brightness(250).data == {"value": 100}

    def test_color_wc_with_kelvin(self) -> None:
        command = protocol.color_wc(kelvin=2700)
        assert command.cmd == "colorwc"
        assert command.data == {"color": {"r": 0, "g": 0, "b": 0}, "colorTemInKelvin": 2700}

    def test_legacy_color(self) -> None:
        command = protocol.color(RGBColor(r=1, g=2, b=3))
        assert command.cmd == "color"
        assert command.data == {"r": 1, "g": 2, "b": 3}

    def test_scene(self) -> None:
        assert protocol.scene(42).data == {"value": 42}


@pytest.mark.unit
class TestDecodeStatus:
    def test_full_reply(self) -> None:
        state = protocol.decode_status(
            _reply({"onOff": 1, "brightness": 80, "color": {"r": 255, "g": 10, "b": 0},
                    "colorTemInKelvin": 0}),
            "10.0.0.5",
        )
        assert state.power is True
        assert state.brightness == 80
        assert state.color == RGBColor(r=255, g=10, b=0)
        assert state.white_mode is False

    def test_white_mode(self) -> None:
        state = protocol.decode_status(
            _reply({"onOff": 0, "brightness": 30, "color": {"r": 0, "g": 0, "b": 0},
                    "colorTemInKelvin": 3000}),
            "10.0.0.5",
        )
        assert state.power is False
        assert state.white_mode is True
        assert state.color_temperature_kelvin == 3000

    def test_kelvin_nested_in_color(self) -> None:
        state = protocol.decode_status(
            _reply({"onOff": 1, "brightness": 30,
                    "color": {"r": 0, "g": 0, "b": 0, "colorTemInKelvin": 4000}}),
            "10.0.0.5",
        )
        assert state.color_temperature_kelvin == 4000

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            b"\xff\xfe",
            b"[]",
            json.dumps({"msg": "x"}).encode(),
            _reply({"onOff": 1, "brightness": 10}, cmd="turn"),
            _reply({"brightness": 10}),
            _reply({"onOff": True, "brightness": 10}),
            _reply({"onOff": 1, "brightness": 10, "color": {"r": 300, "g": 0, "b": 0}}),
            _reply({"onOff": 1, "brightness": 10, "color": "red"}),
        ],
    )
    def test_malformed(self, raw: bytes) -> None:
        with pytest.raises(MalformedReplyError):
            protocol.decode_status(raw, "10.0.0.5")
