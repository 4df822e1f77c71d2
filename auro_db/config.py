import logging
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when the database handle cannot be constructed from configuration."""


class Settings(BaseSettings):
    database_url: Optional[str] = Field(default=None)
    # Set while the code is being built or analysed without a database.
    building: bool = False
    sql_echo: bool = False
    log_level: str = "INFO"
    web_host: str = "127.0.0.1"
    web_port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_url_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level


def load_settings() -> Settings:
    """Read settings from the environment (and .env) on every call.

    Raises:
        ConfigurationError: if any value fails validation.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
