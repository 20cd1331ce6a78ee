"""Runtime configuration for mc-keepalive."""

from __future__ import annotations

import random
from enum import Enum

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VERSIONS = "1.21.131,1.21.124,1.21.100"


class ConfigurationError(RuntimeError):
    """Required settings are missing or invalid; the process cannot start."""


class ReconnectMode(str, Enum):
    """What to do after a connection ends."""

    RETRY = "retry"
    EXIT = "exit"


class Settings(BaseSettings):
    """Environment-driven runtime settings.

    Variable names match what hosting platforms and existing deployments use
    (``MC_HOST``, ``PORT``...), so no prefix is applied.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mc_host: str = Field(description="Game server host.")
    mc_port: int = Field(gt=0, le=65535, description="Game server port.")
    bot_name: str = "BedrockBot"
    bot_name_random_suffix: bool = False
    mc_versions: str = Field(
        default=DEFAULT_VERSIONS,
        description="Comma separated protocol version candidates, tried in order.",
    )
    reconnect_mode: ReconnectMode = ReconnectMode.RETRY
    reconnect_delay_ms: int = Field(default=60_000, ge=0)
    backoff_step_ms: int = Field(default=5_000, ge=0)
    backoff_cap_ms: int = Field(default=60_000, ge=0)
    rotation_delay_ms: int = Field(default=1_000, ge=0)
    max_attempts: int = Field(default=100, gt=0, description="Saturation cap for the failed attempt counter.")

    patrol_step_sec_min: float = Field(default=3.0, gt=0)
    patrol_step_sec_max: float = Field(default=6.0, gt=0)
    patrol_turn_sec_min: float = Field(default=15.0, gt=0)
    patrol_turn_sec_max: float = Field(default=30.0, gt=0)
    chat_interval_ms: int = Field(default=180_000, gt=0)
    chat_jitter_ms: int = Field(default=120_000, ge=0)
    max_patrol_distance: float = Field(default=5.0, gt=0)
    jump_probability: float = Field(default=0.3, ge=0, le=1)
    keepalive_log_sec: float = Field(default=60.0, gt=0)

    port: int = Field(default=3000, gt=0, le=65535, description="Liveness endpoint port.")
    health_enabled: bool = True
    client_module: str = "bedrock_protocol"
    log_level: str = "INFO"

    @field_validator("mc_host")
    @classmethod
    def _host_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("MC_HOST must not be empty")
        return value

    @field_validator("reconnect_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("mc_versions")
    @classmethod
    def _versions_not_empty(cls, value: str) -> str:
        if not _split_versions(value):
            raise ValueError("MC_VERSIONS must list at least one version")
        return value

    @model_validator(mode="after")
    def _ranges_ordered(self) -> "Settings":
        if self.patrol_step_sec_min > self.patrol_step_sec_max:
            raise ValueError("PATROL_STEP_SEC_MIN must not exceed PATROL_STEP_SEC_MAX")
        if self.patrol_turn_sec_min > self.patrol_turn_sec_max:
            raise ValueError("PATROL_TURN_SEC_MIN must not exceed PATROL_TURN_SEC_MAX")
        return self

    @property
    def version_candidates(self) -> list[str]:
        return _split_versions(self.mc_versions)

    def identity(self, rng: random.Random | None = None) -> str:
        """Display name, optionally with a random numeric suffix."""
        if not self.bot_name_random_suffix:
            return self.bot_name
        return f"{self.bot_name}{(rng or random).randint(1000, 9999)}"


def _split_versions(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_settings(**overrides: object) -> Settings:
    """Read settings from the environment, failing with ``ConfigurationError``."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
