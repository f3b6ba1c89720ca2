"""Scheduling module for the daily notification check."""

from .exceptions import ScheduleReconcileError, SchedulerError, ScheduleValidationError
from .models import SchedulerStatus
from .service import CHECK_JOB_ID, ScheduleManager

__all__ = [
    "ScheduleManager",
    "SchedulerStatus",
    "CHECK_JOB_ID",
    # Exceptions
    "SchedulerError",
    "ScheduleValidationError",
    "ScheduleReconcileError",
]
