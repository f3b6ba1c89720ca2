"""Environment variable loading and validation."""

import os
from typing import Optional

from .check_time import CheckTimeParseError, normalize_check_time, validate_timezone
from .exceptions import ConfigurationError
from .models import SUPPORTED_LANGUAGES

DEFAULT_DATABASE_URL = "sqlite:///./data/subscriptions.db"
DEFAULT_SMTP_PORT = 587


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        telegram_bot_token: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        scheduler_check_time: Optional[str] = None,
        scheduler_timezone: Optional[str] = None,
        default_language: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.telegram_bot_token = telegram_bot_token
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port or DEFAULT_SMTP_PORT
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.scheduler_check_time = scheduler_check_time
        self.scheduler_timezone = scheduler_timezone
        self.default_language = default_language

    @property
    def smtp_configured(self) -> bool:
        """True when enough SMTP settings exist to register the email channel."""
        return bool(self.smtp_host)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - TELEGRAM_BOT_TOKEN: Bot API token for the telegram channel
    - SMTP_HOST / SMTP_PORT: SMTP server for the email channel (port defaults to 587)
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - SMTP_SENDER_NAME: Display name for email sender
    - DATABASE_URL: Database URL (default: sqlite:///./data/subscriptions.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - SCHEDULER_CHECK_TIME: Override default daily check time (HH:MM)
    - SCHEDULER_TIMEZONE: Override default scheduler timezone
    - NOTIFICATION_DEFAULT_LANGUAGE: Override default notification language

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If any variable is invalid
    """
    errors = []

    telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN") or None
    smtp_host = os.getenv("SMTP_HOST") or None
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER") or None
    smtp_pass = os.getenv("SMTP_PASS") or None
    smtp_sender_name = os.getenv("SMTP_SENDER_NAME") or None
    log_level = os.getenv("LOG_LEVEL") or None
    database_url = os.getenv("DATABASE_URL") or None
    check_time = os.getenv("SCHEDULER_CHECK_TIME") or None
    timezone = os.getenv("SCHEDULER_TIMEZONE") or None
    default_language = os.getenv("NOTIFICATION_DEFAULT_LANGUAGE") or None

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if log_level:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )

    if check_time:
        try:
            check_time = normalize_check_time(check_time)
        except CheckTimeParseError as e:
            errors.append(f"Invalid SCHEDULER_CHECK_TIME: {e}")

    if timezone:
        try:
            timezone = validate_timezone(timezone)
        except CheckTimeParseError as e:
            errors.append(f"Invalid SCHEDULER_TIMEZONE: {e}")

    if default_language and default_language not in SUPPORTED_LANGUAGES:
        errors.append(
            f"Invalid NOTIFICATION_DEFAULT_LANGUAGE: '{default_language}'. "
            f"Must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            source="environment",
            suggestions=[
                "Copy .env.example to .env and adjust the values",
                "Verify SMTP_PORT is a number between 1 and 65535",
                "Use HH:MM for SCHEDULER_CHECK_TIME",
            ],
        )

    return EnvironmentConfig(
        telegram_bot_token=telegram_bot_token,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=smtp_sender_name,
        log_level=log_level,
        database_url=database_url,
        scheduler_check_time=check_time,
        scheduler_timezone=timezone,
        default_language=default_language,
    )
