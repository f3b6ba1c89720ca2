"""Status reporting for the schedule manager."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from subscription_notifier.utils.timestamps import format_timestamp


@dataclass
class SchedulerStatus:
    """Whether a daily trigger is active, and for which schedule.

    Attributes:
        running: True when a trigger is installed
        current_schedule: Last reconciled schedule (check_time, timezone,
            enabled), None before the first reconcile
        next_run_time: Next firing time, if known
    """

    running: bool
    current_schedule: Optional[Dict[str, Any]] = None
    next_run_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "current_schedule": self.current_schedule,
            "next_run_time": (
                format_timestamp(self.next_run_time) if self.next_run_time else None
            ),
        }
