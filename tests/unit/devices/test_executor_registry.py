"""Unit tests — ExecutorRegistry and build_executors."""

from __future__ import annotations

import httpx
import pytest

from maze_control.config import DeviceConfig
from maze_control.devices import build_executors
from maze_control.devices.base import ExecutorRegistry
from maze_control.exceptions import UnknownTriggerTypeError
from maze_control.triggers.models import TriggerKind, parse_trigger


@pytest.mark.unit
class TestExecutorRegistry:
    async def test_dispatch_by_kind(self, make_executor) -> None:
        http = make_executor("arduino")
        registry = ExecutorRegistry([http])
        trigger = parse_trigger({"id": "s", "arduino_ip": "10.0.0.2"})

        await registry.dispatch(trigger)

        assert http.calls == ["s"]

    async def test_unknown_kind(self, make_executor) -> None:
        registry = ExecutorRegistry([make_executor("arduino")])
        trigger = parse_trigger({"id": "fog", "type": "fog_machine"})
        with pytest.raises(UnknownTriggerTypeError) as exc_info:
            await registry.dispatch(trigger)
        assert exc_info.value.kind == "fog_machine"

    def test_executor_without_kind_rejected(self, make_executor) -> None:
        with pytest.raises(ValueError):
            ExecutorRegistry([make_executor("")])

    def test_later_registration_replaces(self, make_executor) -> None:
        first, second = make_executor("arduino"), make_executor("arduino")
        registry = ExecutorRegistry([first, second])
        assert registry.get("arduino") is second
        assert len(registry) == 1


@pytest.mark.unit
class TestBuildExecutors:
    async def test_all_kinds_covered(self, fake_lan) -> None:
        async with httpx.AsyncClient() as client:
            registry = build_executors(DeviceConfig(), client, fake_lan)
            assert registry.kinds() == sorted(k.value for k in TriggerKind)
