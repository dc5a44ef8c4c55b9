"""Host settings via pydantic-settings.

These cover the process itself (logging, forced plugins) and come from the
environment; plugin options live in the generated config file instead.
"""

import logging
from pathlib import Path
from typing import Annotated

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from plughost.exceptions import ConfigError


class HostSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLUGHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    # Plugins initialized even when not selected with --plugin
    autostart: Annotated[list[str], NoDecode] = []

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("autostart", mode="before")
    @classmethod
    def parse_autostart(cls, v: list[str] | str) -> list[str]:
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v


def load_settings(**overrides: object) -> HostSettings:
    try:
        return HostSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigError(str(e)) from e
