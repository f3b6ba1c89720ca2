"""Configuration loader for the subscription notifier."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .validators import check_for_warnings, emit_warnings

DEFAULT_CONFIG_CANDIDATES = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)


def load_config(config_path: Optional[Path] = None) -> tuple[AppConfig, EnvironmentConfig]:
    """
    Load and validate configuration from YAML file and environment variables.

    Config file lookup:
    1. Use provided config_path if given (must exist)
    2. Try config.yaml in current directory
    3. Try ./config/config.yaml
    4. Fall back to built-in defaults

    Environment overrides (SCHEDULER_CHECK_TIME, SCHEDULER_TIMEZONE,
    NOTIFICATION_DEFAULT_LANGUAGE, LOG_LEVEL) are applied on top of the file.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or an explicit file is missing
    """
    config_file = _find_config_file(config_path)
    config_dict = _read_config_file(config_file) if config_file else {}

    warnings = check_for_warnings(config_dict)
    if warnings:
        emit_warnings(warnings)

    app_config = _validate_config_dict(config_dict, source=str(config_file) if config_file else None)

    try:
        env_config = load_environment_config()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=[
                "Copy .env.example to .env and adjust the values",
            ],
        )

    return apply_environment_overrides(app_config, env_config), env_config


def apply_environment_overrides(
    app_config: AppConfig, env_config: EnvironmentConfig
) -> AppConfig:
    """Return a copy of app_config with environment overrides applied."""
    scheduler_updates: Dict[str, Any] = {}
    if env_config.scheduler_check_time:
        scheduler_updates["check_time"] = env_config.scheduler_check_time
    if env_config.scheduler_timezone:
        scheduler_updates["timezone"] = env_config.scheduler_timezone

    notification_updates: Dict[str, Any] = {}
    if env_config.default_language:
        notification_updates["default_language"] = env_config.default_language

    logging_updates: Dict[str, Any] = {}
    if env_config.log_level:
        logging_updates["level"] = env_config.log_level.upper()

    email_updates: Dict[str, Any] = {}
    if env_config.smtp_sender_name:
        email_updates["sender_name"] = env_config.smtp_sender_name

    # Values were validated by load_environment_config, so model_copy is safe
    return app_config.model_copy(
        update={
            "scheduler": app_config.scheduler.model_copy(update=scheduler_updates),
            "notifications": app_config.notifications.model_copy(update=notification_updates),
            "logging": app_config.logging.model_copy(update=logging_updates),
            "email": app_config.email.model_copy(update=email_updates),
        }
    )


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {config_file}",
            suggestions=[
                "Copy config.example.yaml to config.yaml",
                f"Ensure {config_file} exists and is readable",
            ],
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[
                f"Ensure {config_file} is readable",
                "Check file permissions",
            ],
        )

    if config_dict is None:
        return {}

    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping at the top level",
            suggestions=["Review config.example.yaml for the expected layout"],
        )

    return config_dict


def _validate_config_dict(config_dict: Dict[str, Any], source: Optional[str] = None) -> AppConfig:
    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            error_msg = error["msg"]
            error_type = error["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ["string_type", "int_type", "bool_type", "list_type"]:
                expected_type = error_type.replace("_type", "")
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, got {error.get('input')}"
                )
            elif "enum" in error_type:
                errors.append(f"Invalid value for '{field_path}': {error_msg}")
            else:
                errors.append(f"{field_path}: {error_msg}")

        raise ConfigurationError(
            "Configuration validation failed",
            errors=errors,
            source=source,
            suggestions=[
                "Review config.example.yaml for correct format",
                "Verify field types match the expected schema",
            ],
        )


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find configuration file using fallback logic.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Path to configuration file, or None when defaults should be used

    Raises:
        ConfigurationError: If an explicit config_path does not exist
    """
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Check the path and try again",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_CANDIDATES:
        if candidate.exists():
            return candidate

    return None


def validate_config_file(config_path: Path) -> bool:
    """
    Validate a configuration file without loading environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        True if valid, False otherwise (errors printed to stdout)
    """
    try:
        _validate_config_dict(_read_config_file(config_path), source=str(config_path))
    except ConfigurationError as e:
        print(f"✗ Configuration validation failed:\n{e}")
        return False

    print(f"✓ Configuration file {config_path} is valid")
    return True
