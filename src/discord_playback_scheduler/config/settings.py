"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages
from ..domain.shared.validators import validate_discord_snowflake


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="!",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("guild_ids", "guilds")
    )
    sync_on_startup: bool = False

    @field_validator("guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        # Convert list to tuple if needed (from JSON array in env vars)
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            validate_discord_snowflake(snowflake)
        return v


class AudioSettings(BaseModel):
    """Audio resolution and streaming configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: float = Field(default=0.5, ge=0.0, le=2.0)
    ffmpeg_options: dict[str, str] = Field(
        default_factory=lambda: {
            "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
            "options": "-vn",
        }
    )
    ytdlp_format: str = "251/140/bestaudio[protocol^=http]/bestaudio/best"
    resolve_timeout_s: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        validation_alias=AliasChoices("resolve_timeout_s", "resolve_timeout"),
    )
    cache_ttl_seconds: int = Field(
        default=1800, ge=0, validation_alias=AliasChoices("cache_ttl_seconds", "cache_ttl")
    )


class PlaybackSettings(BaseModel):
    """Session scheduling configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    connect_timeout_s: float = Field(
        default=20.0,
        gt=0.0,
        le=120.0,
        validation_alias=AliasChoices("connect_timeout_s", "connect_timeout"),
    )
    max_consecutive_failures: int = Field(default=5, ge=1, le=100)
    ready_poll_interval_s: float = Field(default=0.25, gt=0.0, le=5.0)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__COMMAND_PREFIX, etc. (nested with ``__``)
    - AUDIO__RESOLVE_TIMEOUT_S, PLAYBACK__CONNECT_TIMEOUT_S, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=sorted(valid_levels))
            )
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
