"""
Configuration for the STH feeder using Pydantic v2 Settings.

Values are read once at startup from ``STHFEEDER_*`` environment variables
and may be overridden by command-line flags (see ``sthfeeder.cli.main``).
Nothing here is persisted; every run starts with empty snapshots.
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import urlsplit

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

from .errors import ConfigurationError

DEFAULT_LOG_LIST_URL = "https://www.gstatic.com/ct/log_list/v3/log_list.json"


def _is_http_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class Settings(BaseSettings):
    """Top-level feeder configuration."""

    log_list_url: str = Field(
        default=DEFAULT_LOG_LIST_URL,
        description="The location of the CT log list (v3 JSON)",
    )
    witness_url: str = Field(
        default="",
        description="The endpoint of the witness HTTP API",
    )
    poll_interval_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="How often each log is polled; also the per-round deadline",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Timeout applied to each individual HTTP request",
    )
    user_agent: str = Field(
        default="sthfeeder",
        description="User-Agent header sent to logs, the witness and the log list",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum level for operational logging",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )

    model_config = SettingsConfigDict(
        env_prefix="STHFEEDER_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("log_list_url")
    @classmethod
    def _check_log_list_url(cls, value: str) -> str:
        value = value.strip()
        if not _is_http_url(value):
            raise ValueError("log_list_url must be an absolute http(s) URL")
        return value

    @field_validator("witness_url")
    @classmethod
    def _check_witness_url(cls, value: str) -> str:
        value = value.strip()
        if value and not _is_http_url(value):
            raise ValueError("witness_url must be an absolute http(s) URL")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def validate_startup(self) -> None:
        """Checks that only matter once the process is about to run."""
        if not self.witness_url:
            raise ConfigurationError(
                "witness_url is required",
                context={"field": "witness_url"},
            )


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment plus explicit overrides.

    Overrides whose value is ``None`` are ignored so unset CLI flags fall
    through to the environment.

    Raises:
        ConfigurationError: If validation fails.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = Settings(**values)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            cause=e,
        ) from e
    settings.validate_startup()
    return settings


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (
    Settings._check_log_list_url,
    Settings._check_witness_url,
    Settings._upper_log_level,
)
