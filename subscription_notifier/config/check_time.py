"""Daily check time and timezone parsing utilities."""

import re
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


SUPPORTED_TIMEZONES: Tuple[str, ...] = (
    "Asia/Shanghai",
    "Asia/Tokyo",
    "Asia/Seoul",
    "Asia/Hong_Kong",
    "America/New_York",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Paris",
    "UTC",
)

# Hour may omit its leading zero ("9:05"); minutes are always two digits
CHECK_TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


class CheckTimeParseError(ValueError):
    """Raised when a check time or timezone string is invalid."""

    pass


def parse_check_time(check_time: str) -> Tuple[int, int]:
    """
    Parse an ``HH:MM`` check time into hour and minute.

    Args:
        check_time: Time of day, 24-hour clock

    Returns:
        Tuple of (hour, minute)

    Raises:
        CheckTimeParseError: If the string is not a valid HH:MM time

    Examples:
        >>> parse_check_time("09:00")
        (9, 0)
        >>> parse_check_time("23:59")
        (23, 59)
    """
    if not isinstance(check_time, str):
        raise CheckTimeParseError(f"Check time must be a string, got {type(check_time).__name__}")

    match = CHECK_TIME_PATTERN.match(check_time.strip())
    if not match:
        raise CheckTimeParseError(
            f"Invalid check time: '{check_time}'. Expected HH:MM (00:00 to 23:59)"
        )

    return int(match.group(1)), int(match.group(2))


def normalize_check_time(check_time: str) -> str:
    """Return the zero-padded ``HH:MM`` form of a check time."""
    hour, minute = parse_check_time(check_time)
    return f"{hour:02d}:{minute:02d}"


def validate_timezone(timezone: str) -> str:
    """
    Validate a timezone identifier against the supported set.

    Args:
        timezone: IANA timezone name

    Returns:
        The timezone name, stripped

    Raises:
        CheckTimeParseError: If the timezone is not supported or unknown
    """
    if not isinstance(timezone, str) or not timezone.strip():
        raise CheckTimeParseError("Timezone cannot be empty")

    name = timezone.strip()
    if name not in SUPPORTED_TIMEZONES:
        raise CheckTimeParseError(
            f"Unsupported timezone: '{name}'. Must be one of: {', '.join(SUPPORTED_TIMEZONES)}"
        )

    try:
        ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise CheckTimeParseError(f"Timezone database has no entry for '{name}'") from e

    return name
