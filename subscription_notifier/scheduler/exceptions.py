"""Exceptions raised by the schedule manager."""


class SchedulerError(Exception):
    """Base exception for scheduling errors."""

    pass


class ScheduleValidationError(SchedulerError):
    """Raised when new scheduler settings are malformed; nothing is persisted."""

    pass


class ScheduleReconcileError(SchedulerError):
    """Raised when the trigger cannot be rebuilt from the persisted settings.

    The previously active trigger, if any, is left in place.
    """

    pass
