"""Data models and exceptions for the notification service.

This module defines result types and custom exceptions used throughout
the notification pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when no template exists or rendering fails."""

    pass


class NotificationSettingsError(NotificationError):
    """Raised when a notification setting update is invalid."""

    pass


OUTCOME_SENT = "sent"
OUTCOME_FAILED = "failed"
OUTCOME_NOT_CONFIGURED = "not_configured"


@dataclass
class RenderedMessage:
    """Message text ready for a channel.

    Attributes:
        subject: Email subject, None for channels without one
        content: Message body
        language: Language of the template actually used
        used_default: True when no template resolved and the one-line
            default message was built instead
    """

    subject: Optional[str]
    content: str
    language: str
    used_default: bool = False


@dataclass
class ChannelOutcome:
    """Result of delivering one notification over one channel.

    Attributes:
        channel: Channel key
        status: "sent", "failed" or "not_configured"
        error: Error message when not sent
        history_id: Id of the history row written, None when none was written
    """

    channel: str
    status: str
    error: Optional[str] = None
    history_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel,
            "status": self.status,
            "error": self.error,
            "history_id": self.history_id,
        }


@dataclass
class NotificationResult:
    """Result of sending one notification type for one subscription.

    ``success`` is true when at least one channel delivered. ``skipped`` is
    set when the pair was dropped before any channel was tried (missing
    subscription, missing or disabled setting); a skip is not a failure.
    """

    subscription_id: Optional[int]
    notification_type: str
    success: bool
    results: List[ChannelOutcome] = field(default_factory=list)
    message: Optional[str] = None
    skipped: bool = False

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.results if outcome.status == status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subscription_id": self.subscription_id,
            "notification_type": self.notification_type,
            "success": self.success,
            "skipped": self.skipped,
            "message": self.message,
            "results": [outcome.to_dict() for outcome in self.results],
        }
