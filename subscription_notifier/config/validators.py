"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    scheduler = config_dict.get("scheduler", {})
    if isinstance(scheduler, dict) and scheduler.get("enabled") is False:
        warning_messages.append(
            "Scheduler is disabled by default; notifications only go out on manual checks"
        )

    notifications = config_dict.get("notifications", {})
    if isinstance(notifications, dict):
        advance_days = notifications.get("default_advance_days")
        if advance_days == 0:
            # The reminder window starts tomorrow, so a zero-day window never matches
            warning_messages.append(
                "default_advance_days is 0; renewal reminders will never be selected"
            )

        channels = notifications.get("default_channels", [])
        if isinstance(channels, list):
            normalized = [c.strip().lower() for c in channels if isinstance(c, str)]
            if len(normalized) != len(set(normalized)):
                warning_messages.append(
                    "Duplicate entries in default_channels will be deduplicated"
                )

        max_page_size = notifications.get("max_page_size")
        if isinstance(max_page_size, int) and max_page_size > 500:
            warning_messages.append(
                f"Large max_page_size ({max_page_size}) may slow down history queries"
            )

    telegram = config_dict.get("telegram", {})
    if isinstance(telegram, dict):
        timeout = telegram.get("request_timeout")
        if isinstance(timeout, int) and timeout > 60:
            warning_messages.append(
                f"Long telegram request_timeout ({timeout}s) stalls the check run while waiting"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
