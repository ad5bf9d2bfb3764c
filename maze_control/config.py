"""Maze Control — Dashboard configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with MAZE_ (nested with ``__``)
    3. System config: /etc/maze-control/config.yaml
    4. User config:   ~/.maze-control/config.yaml
    5. Explicit file passed with ``--config``

YAML values are passed to the constructor, so pydantic-settings ranks them
above the environment.

Settings are loaded once at startup and injected through FastAPI app state.
The trigger table is *not* part of the settings: it lives in its own file
(``triggers.config_path``) and is hot-reloaded by the trigger watcher.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: Literal["debug", "info", "warning", "error"] = "info"
    shutdown_drain_seconds: Annotated[float, Field(ge=0.0, le=120.0)] = Field(
        default=15.0,
        description=(
            "Seconds to wait for in-flight device dispatches on shutdown. "
            "Long enough for one lightning effect plus its restore sequence."
        ),
    )


class LedgerConfig(BaseModel):
    db_path: Path = Path("./data/dashboard.db")
    default_tokens: Annotated[int, Field(ge=0, le=10_000)] = Field(
        default=10,
        description="Balance given to new users and restored by a recharge.",
    )


class DeviceConfig(BaseModel):
    """Timeouts and pacing for the device protocol clients."""

    http_timeout_seconds: Annotated[float, Field(gt=0.0, le=120.0)] = 10.0
    govee_command_port: int = Field(default=4003, ge=1, le=65535)
    govee_listen_port: int = Field(default=4002, ge=1, le=65535)
    status_timeout_seconds: Annotated[float, Field(gt=0.0, le=30.0)] = Field(
        default=3.0,
        description="Deadline for the devStatus reply datagram.",
    )
    effect_duration_seconds: Annotated[float, Field(gt=0.0, le=120.0)] = Field(
        default=10.0,
        description="Wall-clock length of the lightning flicker loop.",
    )
    command_gap_seconds: Annotated[float, Field(ge=0.0, le=5.0)] = Field(
        default=0.1,
        description="Pause between consecutive Govee commands in a sequence.",
    )
    rgb_only_models: list[str] = Field(
        default_factory=lambda: ["H6076"],
        description="Govee models that only accept the legacy 'color' command.",
    )


class TriggersConfig(BaseModel):
    config_path: Path = Path("./config/config.json")
    watch: bool = Field(
        default=True,
        description="Reload the trigger table when the file changes.",
    )


class SecurityConfig(BaseModel):
    admin_secret_key: str = Field(
        default="SUPER_SECRET",
        description="Key accepted by POST /api/admin/login. Override via MAZE_SECURITY__ADMIN_SECRET_KEY.",
    )
    cookie_name: str = "spooky-user-id"
    cookie_max_age_seconds: int = Field(default=365 * 24 * 3600, ge=60)


class StatsConfig(BaseModel):
    window_minutes: Annotated[int, Field(ge=1, le=24 * 60)] = 60


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MAZE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    devices: DeviceConfig = Field(default_factory=DeviceConfig)
    triggers: TriggersConfig = Field(default_factory=TriggersConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("ledger", mode="before")
    @classmethod
    def expand_ledger_path(cls, v: object) -> object:
        if isinstance(v, dict) and isinstance(v.get("db_path"), str):
            v["db_path"] = Path(v["db_path"]).expanduser()
        return v

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/maze-control/config.yaml"),
            Path.home() / ".maze-control" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
