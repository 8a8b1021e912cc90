"""Walkthrough Recorder — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/walkthrough-recorder/config.yaml
    3. User config:   ~/.walkthrough/config.yaml
    4. An explicit config file passed to ``Settings.load()``
    5. Environment variables prefixed with WALKTHROUGH_

Call ``Settings.load()`` once at shell startup and inject the relevant
sub-blocks into the PlaybackController and SessionStore.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class SamplingConfig(BaseModel):
    """Background state sampling while recording."""

    state_hz: Annotated[float, Field(gt=0, le=240)] = Field(
        default=60.0,
        description="General-state sampling cadence (effects, focus, document, animation).",
    )
    camera_hz: Annotated[float, Field(gt=0, le=240)] = Field(
        default=30.0,
        description="Camera-pose sampling cadence.",
    )
    change_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.01,
        description=(
            "Numeric fields and camera axes count as changed only when they move "
            "by more than this amount since the last emitted sample."
        ),
    )


class PlaybackConfig(BaseModel):
    """Replay loop timing."""

    tick_hz: Annotated[float, Field(gt=0, le=240)] = Field(
        default=60.0,
        description="Replay ticks per second.",
    )
    change_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.01,
        description="Document zoom is re-applied only when it differs by more than this.",
    )


class StorageConfig(BaseModel):
    db_path: Path = Field(
        default=Path("~/.walkthrough/sessions.db"),
        description="SQLite database path for saved sessions.",
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WALKTHROUGH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("storage", mode="before")
    @classmethod
    def expand_storage_paths(cls, v: object) -> object:
        if isinstance(v, dict) and isinstance(v.get("db_path"), str):
            v["db_path"] = Path(v["db_path"]).expanduser()
        return v

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/walkthrough-recorder/config.yaml"),
            Path.home() / ".walkthrough" / "config.yaml",
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

    def session_db_path(self) -> Path:
        return self.storage.db_path.expanduser()


# Module-level singleton, replaced by ``Settings.load()`` at shell startup.
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
