"""Configuration management module for the subscription notifier."""

from .check_time import (
    SUPPORTED_TIMEZONES,
    CheckTimeParseError,
    normalize_check_time,
    parse_check_time,
    validate_timezone,
)
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import apply_environment_overrides, load_config, validate_config_file
from .models import (
    ADVANCE_DAYS_MAX,
    ADVANCE_DAYS_MIN,
    SUPPORTED_CHANNELS,
    SUPPORTED_LANGUAGES,
    AppConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    NotificationDefaultsConfig,
    SchedulerConfig,
    TelegramConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    "apply_environment_overrides",
    # Configuration models
    "AppConfig",
    "SchedulerConfig",
    "NotificationDefaultsConfig",
    "TelegramConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Check time helpers
    "parse_check_time",
    "normalize_check_time",
    "validate_timezone",
    "CheckTimeParseError",
    # Constants
    "SUPPORTED_TIMEZONES",
    "SUPPORTED_CHANNELS",
    "SUPPORTED_LANGUAGES",
    "ADVANCE_DAYS_MIN",
    "ADVANCE_DAYS_MAX",
    # Exceptions
    "ConfigurationError",
]
