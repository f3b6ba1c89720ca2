"""Utility functions for time handling."""

from .timestamps import (
    ensure_utc,
    format_storage_timestamp,
    format_timestamp,
    local_day_bounds,
    local_today,
    parse_date,
    parse_storage_timestamp,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "format_storage_timestamp",
    "parse_storage_timestamp",
    "format_timestamp",
    "parse_date",
    "local_today",
    "local_day_bounds",
]
