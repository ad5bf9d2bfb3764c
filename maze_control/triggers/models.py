"""Trigger data models.

A trigger is one configured remote effect.  The ``type`` key of a config
record selects its variant:

    arduino          HttpDeviceTrigger     — GET to a micro-controller
    govee_status     LightStatusTrigger    — devStatus round trip
    govee_lightning  LightEffectTrigger    — capture / flicker / restore
    govee_set_state  LightSetStateTrigger  — apply a declarative light state

Records without a ``type`` key predate light support and are HTTP devices.
Records with a ``type`` nobody recognises load as a plain :class:`Trigger`;
their activations fail at dispatch with ``UnknownTriggerTypeError`` and are
refunded.

All models are frozen.  A reload builds a new table; nothing is mutated in
place.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TriggerKind(str, Enum):
    HTTP_DEVICE = "arduino"
    LIGHT_STATUS = "govee_status"
    LIGHT_EFFECT = "govee_lightning"
    LIGHT_SET_STATE = "govee_set_state"


class RGBColor(BaseModel):
    model_config = ConfigDict(frozen=True)

    r: Annotated[int, Field(ge=0, le=255)]
    g: Annotated[int, Field(ge=0, le=255)]
    b: Annotated[int, Field(ge=0, le=255)]


class Trigger(BaseModel):
    """Fields shared by every trigger kind.

    ``kind`` is serialised as ``type`` to match the config file format.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    kind: str = Field(alias="type")

    def public_view(self) -> dict[str, Any]:
        """Return the fields safe to show to browser clients."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.kind,
        }


class HttpDeviceTrigger(Trigger):
    kind: Literal["arduino"] = Field(default="arduino", alias="type")
    arduino_ip: str = Field(min_length=1)
    secret_key: str = Field(default="", repr=False)


class GoveeTrigger(Trigger):
    """Base for the three light kinds.  All address one Govee LAN device."""

    govee_device_ip: str = Field(min_length=1)
    govee_device_id: str = ""
    govee_model: str = ""


class LightStatusTrigger(GoveeTrigger):
    kind: Literal["govee_status"] = Field(default="govee_status", alias="type")


class LightEffectTrigger(GoveeTrigger):
    kind: Literal["govee_lightning"] = Field(default="govee_lightning", alias="type")


class LightSetStateTrigger(GoveeTrigger):
    kind: Literal["govee_set_state"] = Field(default="govee_set_state", alias="type")
    govee_color: RGBColor | None = None
    govee_color_temp: Annotated[int, Field(ge=0, le=10_000)] | None = None
    govee_brightness: Annotated[int, Field(ge=1, le=100)] | None = None
    govee_scene_id: int | None = None


_VARIANTS: dict[str, type[Trigger]] = {
    TriggerKind.HTTP_DEVICE.value: HttpDeviceTrigger,
    TriggerKind.LIGHT_STATUS.value: LightStatusTrigger,
    TriggerKind.LIGHT_EFFECT.value: LightEffectTrigger,
    TriggerKind.LIGHT_SET_STATE.value: LightSetStateTrigger,
}


def parse_trigger(record: dict[str, Any]) -> Trigger:
    """Validate one config record into its tagged variant.

    Raises:
        pydantic.ValidationError: The record is missing required fields.
    """
    data = dict(record)
    if not data.get("type"):
        data["type"] = TriggerKind.HTTP_DEVICE.value
    kind = data["type"]
    # A non-string tag falls through to Trigger, whose str field rejects it.
    variant = _VARIANTS.get(kind, Trigger) if isinstance(kind, str) else Trigger
    return variant.model_validate(data)
