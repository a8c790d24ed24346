"""Global settings for registry loading and validation defaults."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class VmconfSettings(BaseSettings):
    """Environment-driven configuration for vmconf."""

    model_config = SettingsConfigDict(
        env_prefix="VMCONF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PLUGINS_FILE: str | None = Field(
        default=None,
        description="YAML manifest of extra provisioner plugins to register.",
    )
    STRICT: bool = Field(
        default=False,
        description="Treat unknown provisioner types as errors instead of warnings.",
    )
    LOG_LEVEL: str = Field(
        default="WARNING",
        description="Root log level used by the CLI (CRITICAL|ERROR|WARNING|INFO|DEBUG).",
    )

    @model_validator(mode="after")
    def validate_log_level(self) -> "VmconfSettings":
        """Normalize LOG_LEVEL to an upper-case logging level name."""
        normalized = self.LOG_LEVEL.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(
                f"VMCONF_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}"
            )
        object.__setattr__(self, "LOG_LEVEL", normalized)
        return self

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.LOG_LEVEL)


@lru_cache
def get_settings() -> VmconfSettings:
    """Return cached settings."""
    return VmconfSettings()


__all__ = ["LOG_LEVELS", "VmconfSettings", "get_settings"]
