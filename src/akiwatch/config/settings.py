"""Pydantic settings models for configuration management."""

from functools import lru_cache
from pathlib import Path

import pytz
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import ConfigError


class ScrapingSettings(BaseModel):
    """Page fetching configuration."""

    timeout: float = 30.0  # seconds
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    accept_language: str = "ja,en-US;q=0.9,en;q=0.8"
    headless: bool = True

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v

    def default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
        }


class LineSettings(BaseSettings):
    """LINE Messaging API credentials, read from LINE_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="LINE_", env_file=".env", extra="ignore"
    )

    channel_access_token: SecretStr = Field(default=SecretStr(""))
    user_id: str = ""
    api_url: str = "https://api.line.me/v2/bot/message/push"
    timeout: float = 10.0
    max_retries: int = 2

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v):
        if v < 0:
            raise ValueError("Max retries cannot be negative")
        return v

    @property
    def configured(self) -> bool:
        return bool(self.channel_access_token.get_secret_value() and self.user_id)


class ApiSettings(BaseModel):
    """Cron trigger API configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    token: SecretStr = Field(default=SecretStr(""))


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="AKIWATCH_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    config_file: Path = Path("config/sites.yml")
    status_file: Path = Path("docs/status.json")
    timezone: str = "Asia/Tokyo"
    product_expiry_hours: float = 24.0
    notify_on_error: bool = False
    schedule: str = "*/15 * * * *"

    scraping: ScrapingSettings = Field(default_factory=ScrapingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    line: LineSettings = Field(default_factory=LineSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("product_expiry_hours")
    @classmethod
    def validate_expiry(cls, v):
        if v <= 0:
            raise ValueError("Product expiry must be positive")
        return v

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v):
        if len(v.split()) != 5:
            raise ValueError(f"Schedule must be a 5-field cron expression: {v}")
        return v

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


@lru_cache
def get_settings() -> AppSettings:
    """Get the application settings instance."""
    try:
        return AppSettings()
    except Exception as e:
        raise ConfigError(f"Failed to load settings: {str(e)}") from e


def reload_settings() -> AppSettings:
    """Force reload of settings (useful for testing)."""
    get_settings.cache_clear()
    return get_settings()

