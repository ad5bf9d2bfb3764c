"""Govee LAN protocol codec.

Every datagram is a UTF-8 JSON object of the form::

    {"msg": {"cmd": "<command>", "data": {...}}}

Commands sent to the device (UDP port 4003):

    turn        {"value": 0 | 1}
    brightness  {"value": 1..100}
    color       {"r": .., "g": .., "b": ..}                   legacy RGB-only bulbs
    colorwc     {"color": {"r","g","b"}, "colorTemInKelvin": k}
    scene       {"value": <scene id>}
    devStatus   {}

The device answers ``devStatus`` on UDP port 4002 with::

    {"msg": {"cmd": "devStatus", "data": {
        "onOff": 1, "brightness": 80,
        "color": {"r": 255, "g": 0, "b": 0}, "colorTemInKelvin": 0}}}

Some firmware nests ``colorTemInKelvin`` inside ``color``; both are accepted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from maze_control.exceptions import MalformedReplyError
from maze_control.triggers.models import RGBColor

CMD_TURN = "turn"
CMD_BRIGHTNESS = "brightness"
CMD_COLOR = "color"
CMD_COLORWC = "colorwc"
CMD_SCENE = "scene"
CMD_DEV_STATUS = "devStatus"

DEVICE_PORT = 4003
LISTEN_PORT = 4002


@dataclass(frozen=True)
class GoveeCommand:
    cmd: str
    data: dict[str, Any]

    def encode(self) -> bytes:
        return encode_command(self.cmd, self.data)


@dataclass(frozen=True)
class GoveeDeviceState:
    """Snapshot of a light captured before an effect runs."""

    power: bool
    brightness: int
    color: RGBColor
    color_temperature_kelvin: int = 0

    @property
    def white_mode(self) -> bool:
        return self.color_temperature_kelvin > 0


def encode_command(cmd: str, data: dict[str, Any] | None = None) -> bytes:
    return json.dumps({"msg": {"cmd": cmd, "data": data or {}}}, separators=(",", ":")).encode(
        "utf-8"
    )


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------


def turn(on: bool) -> GoveeCommand:
    return GoveeCommand(CMD_TURN, {"value": 1 if on else 0})


def brightness(value: int) -> GoveeCommand:
    return GoveeCommand(CMD_BRIGHTNESS, {"value": max(1, min(100, value))})


def color(rgb: RGBColor) -> GoveeCommand:
    return GoveeCommand(CMD_COLOR, {"r": rgb.r, "g": rgb.g, "b": rgb.b})


def color_wc(rgb: RGBColor | None = None, kelvin: int = 0) -> GoveeCommand:
    """Colour or colour temperature.  A non-zero *kelvin* selects white mode."""
    rgb = rgb or RGBColor(r=0, g=0, b=0)
    return GoveeCommand(
        CMD_COLORWC,
        {"color": {"r": rgb.r, "g": rgb.g, "b": rgb.b}, "colorTemInKelvin": kelvin},
    )


def scene(scene_id: int) -> GoveeCommand:
    return GoveeCommand(CMD_SCENE, {"value": scene_id})


def dev_status() -> GoveeCommand:
    return GoveeCommand(CMD_DEV_STATUS, {})


# ---------------------------------------------------------------------------
# Reply decoding
# ---------------------------------------------------------------------------


def _int_field(data: dict[str, Any], key: str, address: str, raw: bytes) -> int:
    value = data.get(key)
    # bool is an int subclass; a JSON true here is still malformed.
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedReplyError(address, f"field '{key}' missing or not an integer", raw)
    return value


def decode_status(raw: bytes, address: str) -> GoveeDeviceState:
    """Decode a ``devStatus`` reply.

    Raises:
        MalformedReplyError: Not JSON, wrong command, or missing fields.
    """
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedReplyError(address, f"not valid JSON: {exc}", raw) from exc

    msg = payload.get("msg") if isinstance(payload, dict) else None
    if not isinstance(msg, dict):
        raise MalformedReplyError(address, "missing 'msg' object", raw)
    if msg.get("cmd") != CMD_DEV_STATUS:
        raise MalformedReplyError(address, f"unexpected command {msg.get('cmd')!r}", raw)
    data = msg.get("data")
    if not isinstance(data, dict):
        raise MalformedReplyError(address, "missing 'data' object", raw)

    on_off = _int_field(data, "onOff", address, raw)
    level = _int_field(data, "brightness", address, raw)

    color_data = data.get("color") or {}
    if not isinstance(color_data, dict):
        raise MalformedReplyError(address, "field 'color' is not an object", raw)
    try:
        rgb = RGBColor(
            r=color_data.get("r", 0),
            g=color_data.get("g", 0),
            b=color_data.get("b", 0),
        )
    except ValueError as exc:
        raise MalformedReplyError(address, f"invalid color: {exc}", raw) from exc

    kelvin = data.get("colorTemInKelvin", color_data.get("colorTemInKelvin", 0))
    if not isinstance(kelvin, int) or isinstance(kelvin, bool):
        raise MalformedReplyError(address, "field 'colorTemInKelvin' is not an integer", raw)

    return GoveeDeviceState(
        power=on_off == 1,
        brightness=level,
        color=rgb,
        color_temperature_kelvin=kelvin,
    )
