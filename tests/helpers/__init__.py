"""Test helper utilities for Subscription Notifier tests."""

from .builders import (
    add_subscription,
    configure_channel,
    history_rows,
    record_history,
    update_setting,
)
from .recording_channel import RecordingChannel

__all__ = [
    "RecordingChannel",
    "add_subscription",
    "configure_channel",
    "update_setting",
    "record_history",
    "history_rows",
]
