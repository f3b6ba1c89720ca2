"""Data models for due-notification selection."""

from dataclasses import dataclass, field
from typing import List

from subscription_notifier.domain.models import Subscription


@dataclass
class DueNotification:
    """A (subscription, notification type) pair due in the current run.

    Attributes:
        subscription: Subscription row as read at selection time
        notification_type: NotificationType value
        channels: Channels configured on the type's setting
        repeat_notification: The setting's repeat flag (meaningful for reminders)
    """

    subscription: Subscription
    notification_type: str
    channels: List[str] = field(default_factory=list)
    repeat_notification: bool = False

    @property
    def subscription_id(self) -> int:
        return self.subscription.id
