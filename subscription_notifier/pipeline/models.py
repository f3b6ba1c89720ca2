"""Data models for check run tracking and reporting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from subscription_notifier.utils.timestamps import format_timestamp


@dataclass
class CheckRunResult:
    """
    Aggregate results from one notification check run.

    Attributes:
        run_id: Unique identifier attached to every log line of the run
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        timezone: Scheduler timezone that defined "today" for the run
        renewal_candidates: Renewal reminders selected
        expiration_candidates: Expiration warnings selected
        notifications_processed: Pairs handed to the notification service
        notifications_delivered: Pairs delivered on at least one channel
        channel_sent: Channel sends recorded as sent
        channel_failed: Channel sends recorded as failed
        channel_not_configured: Channels skipped for lack of configuration
        skipped: Pairs skipped before any channel was tried
        total_duration_seconds: Time for the entire run
    """

    run_id: str
    run_started_at: datetime
    run_finished_at: datetime
    timezone: str
    renewal_candidates: int = 0
    expiration_candidates: int = 0
    notifications_processed: int = 0
    notifications_delivered: int = 0
    channel_sent: int = 0
    channel_failed: int = 0
    channel_not_configured: int = 0
    skipped: int = 0
    total_duration_seconds: float = 0.0

    def __post_init__(self):
        """Compute duration if not set."""
        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def had_failures(self) -> bool:
        return self.channel_failed > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "run_started_at": format_timestamp(self.run_started_at),
            "run_finished_at": format_timestamp(self.run_finished_at),
            "timezone": self.timezone,
            "renewal_candidates": self.renewal_candidates,
            "expiration_candidates": self.expiration_candidates,
            "notifications_processed": self.notifications_processed,
            "notifications_delivered": self.notifications_delivered,
            "channel_sent": self.channel_sent,
            "channel_failed": self.channel_failed,
            "channel_not_configured": self.channel_not_configured,
            "skipped": self.skipped,
            "duration_seconds": round(self.total_duration_seconds, 3),
        }
