"""Shared pytest fixtures for the maze-control test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from maze_control.config import Settings, override_settings
from maze_control.devices.base import DeviceExecutor
from maze_control.devices.govee.client import LanClient
from maze_control.devices.govee.protocol import GoveeCommand, GoveeDeviceState
from maze_control.exceptions import DeviceRequestError
from maze_control.ledger.store import TokenLedger
from maze_control.triggers.models import RGBColor, Trigger


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLanClient(LanClient):
    """In-memory Govee client recording every command sent."""

    def __init__(
        self,
        state: GoveeDeviceState | None = None,
        status_error: Exception | None = None,
        fail_commands: set[str] | None = None,
    ) -> None:
        self.state = state or GoveeDeviceState(
            power=True, brightness=60, color=RGBColor(r=255, g=120, b=0)
        )
        self.status_error = status_error
        self.fail_commands = fail_commands or set()
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.status_queries: list[str] = []

    async def send(self, ip: str, command: GoveeCommand) -> None:
        if command.cmd in self.fail_commands:
            raise DeviceRequestError(ip, f"refused {command.cmd}")
        self.sent.append((ip, command.cmd, dict(command.data)))

    async def query_status(self, ip: str, timeout: float) -> GoveeDeviceState:
        self.status_queries.append(ip)
        if self.status_error is not None:
            raise self.status_error
        return self.state

    @property
    def commands(self) -> list[str]:
        return [cmd for _, cmd, _ in self.sent]


class FakeTime:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeExecutor(DeviceExecutor):
    """Executor whose outcome is set by the test."""

    def __init__(self, kind: str, error: Exception | None = None) -> None:
        self.KIND = kind
        self.error = error
        self.calls: list[str] = []

    async def execute(self, trigger: Trigger) -> None:
        self.calls.append(trigger.id)
        if self.error is not None:
            raise self.error


# ---------------------------------------------------------------------------
# Trigger files
# ---------------------------------------------------------------------------


SAMPLE_TRIGGERS: list[dict[str, Any]] = [
    {
        "id": "scream",
        "name": "Scream",
        "description": "Plays a scream",
        "type": "arduino",
        "arduino_ip": "10.0.0.2",
        "secret_key": "hunter2",
    },
    {
        "id": "storm",
        "name": "Storm",
        "type": "govee_lightning",
        "govee_device_ip": "10.0.0.5",
        "govee_model": "H6076",
    },
]


def write_triggers(path: Path, triggers: list[dict[str, Any]]) -> Path:
    path.write_text(json.dumps({"triggers": triggers}), encoding="utf-8")
    return path


@pytest.fixture
def trigger_file(tmp_path: Path) -> Path:
    return write_triggers(tmp_path / "config.json", SAMPLE_TRIGGERS)


# ---------------------------------------------------------------------------
# Settings and ledger
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path, trigger_file: Path) -> Settings:
    settings = Settings(
        ledger={"db_path": str(tmp_path / "dashboard.db"), "default_tokens": 3},
        triggers={"config_path": str(trigger_file), "watch": False},
        security={"admin_secret_key": "let-me-in"},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


@pytest_asyncio.fixture
async def ledger(tmp_path: Path) -> AsyncGenerator[TokenLedger, None]:
    store = TokenLedger(tmp_path / "ledger.db", default_tokens=3)
    await store.init()
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# Fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_lan() -> FakeLanClient:
    return FakeLanClient()


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def make_executor():
    """Factory for :class:`FakeExecutor` instances."""
    return FakeExecutor


@pytest.fixture
def sample_triggers() -> list[dict[str, Any]]:
    return [dict(t) for t in SAMPLE_TRIGGERS]
