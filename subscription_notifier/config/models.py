"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .check_time import CheckTimeParseError, normalize_check_time, validate_timezone


SUPPORTED_CHANNELS = ("telegram", "email")

# Languages a user may pick; templates exist for a subset of these
SUPPORTED_LANGUAGES = ("zh-CN", "en", "ja", "ko", "fr", "de", "es")

ADVANCE_DAYS_MIN = 0
ADVANCE_DAYS_MAX = 30


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class SchedulerConfig(BaseModel):
    """Defaults for the daily notification check.

    These seed the persisted scheduler settings on first start; after that
    the persisted row is authoritative.
    """

    check_time: str = Field("09:00", description="Daily check time (HH:MM, 24-hour)")
    timezone: str = Field("Asia/Shanghai", description="Timezone the check time is in")
    enabled: bool = Field(True, description="Whether the daily check is scheduled")

    @field_validator("check_time")
    @classmethod
    def validate_check_time(cls, v: str) -> str:
        try:
            return normalize_check_time(v)
        except CheckTimeParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("timezone")
    @classmethod
    def validate_timezone_name(cls, v: str) -> str:
        try:
            return validate_timezone(v)
        except CheckTimeParseError as e:
            raise ValueError(str(e)) from e


class NotificationDefaultsConfig(BaseModel):
    """Defaults applied when notification settings are seeded or queried."""

    default_language: str = Field("zh-CN", description="Language used when no preference is stored")
    default_channels: List[str] = Field(
        default_factory=lambda: ["telegram"],
        min_length=1,
        description="Channels seeded into every notification setting",
    )
    default_advance_days: int = Field(
        7,
        ge=ADVANCE_DAYS_MIN,
        le=ADVANCE_DAYS_MAX,
        description="Renewal reminder window in days",
    )
    default_repeat_notification: bool = Field(
        True, description="Whether renewal reminders may repeat inside the window"
    )
    default_page_size: int = Field(20, ge=1, description="History page size")
    max_page_size: int = Field(100, ge=1, description="Upper bound for history page size")

    @field_validator("default_language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        stripped = v.strip()
        if stripped not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language '{v}'. Must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
            )
        return stripped

    @field_validator("default_channels")
    @classmethod
    def validate_channels(cls, v: List[str]) -> List[str]:
        normalized = []
        for channel in v:
            name = channel.strip().lower()
            if name not in SUPPORTED_CHANNELS:
                raise ValueError(
                    f"Unsupported channel '{channel}'. Must be one of: {', '.join(SUPPORTED_CHANNELS)}"
                )
            if name not in normalized:
                normalized.append(name)
        return normalized

    @model_validator(mode="after")
    def validate_page_sizes(self):
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) cannot exceed "
                f"max_page_size ({self.max_page_size})"
            )
        return self


class TelegramConfig(BaseModel):
    """Telegram Bot API settings (the token itself comes from the environment)."""

    api_base_url: str = Field(
        "https://api.telegram.org", min_length=1, description="Bot API base URL"
    )
    request_timeout: int = Field(
        10, ge=1, le=120, description="Request timeout for Bot API calls (seconds)"
    )
    parse_mode: str = Field("HTML", description="Message parse mode")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return stripped


class EmailConfig(BaseModel):
    """Email channel settings (SMTP credentials come from the environment)."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    sender_name: str = Field(
        "Subscription Notifier", min_length=1, description="Display name for the sender"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the subscription notifier."""

    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig, description="Daily check defaults"
    )
    notifications: NotificationDefaultsConfig = Field(
        default_factory=NotificationDefaultsConfig, description="Notification defaults"
    )
    telegram: TelegramConfig = Field(
        default_factory=TelegramConfig, description="Telegram channel settings"
    )
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
