"""Selection of (subscription, notification type) pairs due for sending."""

from .models import DueNotification
from .selector import DueNotificationSelector

__all__ = ["DueNotification", "DueNotificationSelector"]
