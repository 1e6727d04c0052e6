"""Presence server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class PresenceServerSettings(BaseSettings):
    model_config = {"env_prefix": "PRESENCE_"}

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535)
    max_players: int = Field(default=5, ge=1)

    movement_throttle_ms: int = Field(default=50, ge=0)
    liveness_window_ms: int = Field(default=10_000, ge=1)
    # Sweeps less often than the liveness window: eviction can lag up to
    # liveness_window_ms + reaper_interval_seconds behind the last update.
    reaper_interval_seconds: float = Field(default=30.0, gt=0)

    heartbeat_interval_seconds: float = Field(default=5.0, gt=0)
    heartbeat_timeout_seconds: float = Field(default=30.0, gt=0)

    cors_origins: list[str] = ["http://localhost:3000"]
    static_dir: str | None = None
    log_dir: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @model_validator(mode="after")
    def _validate_heartbeat(self) -> Self:
        if self.heartbeat_timeout_seconds <= self.heartbeat_interval_seconds:
            raise ValueError("heartbeat_timeout_seconds must be longer than heartbeat_interval_seconds")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
