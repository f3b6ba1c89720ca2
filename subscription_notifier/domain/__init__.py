"""Domain models for the subscription notifier."""

from .models import (
    ChannelConfig,
    HistoryEntry,
    HistoryStatus,
    NotificationSetting,
    NotificationStats,
    NotificationType,
    SchedulerSettings,
    Subscription,
    SubscriptionStatus,
)

__all__ = [
    "NotificationType",
    "HistoryStatus",
    "SubscriptionStatus",
    "Subscription",
    "NotificationSetting",
    "ChannelConfig",
    "HistoryEntry",
    "SchedulerSettings",
    "NotificationStats",
]
