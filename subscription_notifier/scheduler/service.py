"""Schedule manager for the daily notification check."""

import threading
from datetime import timezone as dt_timezone
from typing import Any, Callable, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from subscription_notifier.config.check_time import (
    CheckTimeParseError,
    normalize_check_time,
    parse_check_time,
    validate_timezone,
)
from subscription_notifier.config.models import SchedulerConfig
from subscription_notifier.domain.models import SchedulerSettings
from subscription_notifier.logging import get_logger
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.exceptions import PersistenceError
from subscription_notifier.persistence.repositories import SchedulerSettingsRepository

from .exceptions import ScheduleReconcileError, SchedulerError, ScheduleValidationError
from .models import SchedulerStatus

logger = get_logger(__name__, component="scheduler")

CHECK_JOB_ID = "notification-check"


class ScheduleManager:
    """
    Keeps one daily APScheduler trigger in line with the persisted settings.

    Any change to check time, timezone or the enabled flag cancels the
    current job and installs a new one; there is no in-place reschedule.
    Reconciling an unchanged schedule is a no-op.
    """

    def __init__(
        self,
        check_callable: Callable[[], Any],
        scheduler: Optional[BackgroundScheduler] = None,
        defaults: Optional[SchedulerConfig] = None,
        session_scope=get_session,
    ):
        """
        Initialize the schedule manager.

        Args:
            check_callable: Function to call on each firing (e.g., pipeline.run_once)
            scheduler: APScheduler instance (creates a BackgroundScheduler if None)
            defaults: Settings seeded when none are persisted
            session_scope: Context manager factory yielding a database session
        """
        self.check_callable = check_callable
        self.defaults = defaults or SchedulerConfig()
        self.session_scope = session_scope

        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "coalesce": True,  # If a firing is delayed, only execute once
                "misfire_grace_time": 3600,
            },
            timezone=dt_timezone.utc,
        )

        self._lock = threading.Lock()
        self._applied_key: Optional[Tuple[str, str, bool]] = None
        self._current: Optional[SchedulerSettings] = None
        self._job_active = False

    def start(self) -> None:
        """
        Start the scheduler and install the trigger for the stored settings.
        """
        if not self.scheduler.running:
            self.scheduler.start()

        self.reconcile()

        logger.info(
            "Scheduler started",
            extra={
                "event": "scheduler.started",
                "trigger_active": self._job_active,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: If True, wait for a running check to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={
                "event": "scheduler.stopping",
                "wait_for_jobs": wait,
            },
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        with self._lock:
            self._job_active = False
            self._applied_key = None

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def reconcile(self) -> bool:
        """
        Make the live trigger match the persisted settings.

        Returns:
            True if the trigger was changed, False if the schedule was
            unchanged or could not be applied. On failure the previous
            trigger stays in place.
        """
        try:
            settings = self.get_settings()
        except SchedulerError as e:
            logger.error(
                f"Reconcile failed, keeping the current schedule: {e}",
                extra={"event": "scheduler.reconcile.failed"},
            )
            return False

        with self._lock:
            if settings.schedule_key() == self._applied_key:
                logger.debug(
                    "Schedule unchanged, nothing to reconcile",
                    extra={"event": "scheduler.reconcile.noop"},
                )
                return False

            try:
                self._apply(settings)
            except ScheduleReconcileError as e:
                logger.error(
                    f"Reconcile failed, keeping the current schedule: {e}",
                    extra={"event": "scheduler.reconcile.failed"},
                )
                return False

            self._applied_key = settings.schedule_key()
            self._current = settings
            return True

    def update_settings(
        self,
        check_time: Optional[str] = None,
        timezone: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> SchedulerSettings:
        """
        Validate, persist and apply new scheduler settings.

        Omitted fields keep their current value.

        Returns:
            The persisted settings

        Raises:
            ScheduleValidationError: If check_time, timezone or enabled is
                malformed (nothing is persisted)
            SchedulerError: If the settings cannot be read or written
        """
        try:
            new_check_time = normalize_check_time(check_time) if check_time is not None else None
            new_timezone = validate_timezone(timezone) if timezone is not None else None
        except CheckTimeParseError as e:
            raise ScheduleValidationError(str(e)) from e

        if enabled is not None and not isinstance(enabled, bool):
            raise ScheduleValidationError(f"enabled must be a boolean, got {enabled!r}")

        current = self.get_settings()
        updated = SchedulerSettings(
            check_time=new_check_time or current.check_time,
            timezone=new_timezone or current.timezone,
            is_enabled=current.is_enabled if enabled is None else enabled,
        )

        try:
            with self.session_scope() as session:
                saved = SchedulerSettingsRepository(session).save(updated)
        except PersistenceError as e:
            raise SchedulerError(f"Failed to save scheduler settings: {e}") from e

        logger.info(
            f"Scheduler settings updated: {saved.check_time} {saved.timezone} "
            f"(enabled={saved.is_enabled})",
            extra={
                "event": "scheduler.settings.updated",
                "check_time": saved.check_time,
                "timezone": saved.timezone,
                "enabled": saved.is_enabled,
            },
        )

        self.reconcile()
        return saved

    def get_settings(self) -> SchedulerSettings:
        """
        Return the persisted settings, seeding defaults on first use.

        Raises:
            SchedulerError: If the settings cannot be read
        """
        try:
            with self.session_scope() as session:
                return SchedulerSettingsRepository(session).ensure_default(self.defaults)
        except PersistenceError as e:
            raise SchedulerError(f"Failed to read scheduler settings: {e}") from e

    def trigger_manually(self) -> Any:
        """
        Run the check routine now in the calling thread.

        Runs whether or not the schedule is enabled, and may overlap a
        scheduled run.
        """
        logger.info(
            "Triggering manual notification check",
            extra={"event": "scheduler.trigger_now"},
        )
        return self.check_callable()

    def get_status(self) -> SchedulerStatus:
        next_run_time = None
        if self._job_active:
            job = self.scheduler.get_job(CHECK_JOB_ID)
            # Jobs added before the scheduler starts have no next_run_time yet
            next_run_time = getattr(job, "next_run_time", None) if job else None

        current_schedule = None
        if self._current is not None:
            current_schedule = {
                "check_time": self._current.check_time,
                "timezone": self._current.timezone,
                "enabled": self._current.is_enabled,
            }

        return SchedulerStatus(
            running=self._job_active,
            current_schedule=current_schedule,
            next_run_time=next_run_time,
        )

    def _apply(self, settings: SchedulerSettings) -> None:
        if not settings.is_enabled:
            self._remove_job()
            logger.info(
                "Daily check disabled, no trigger installed",
                extra={"event": "scheduler.disabled"},
            )
            return

        # Build the new trigger before touching the old job
        try:
            hour, minute = parse_check_time(settings.check_time)
            trigger = CronTrigger(hour=hour, minute=minute, timezone=ZoneInfo(settings.timezone))
        except (CheckTimeParseError, ValueError, ZoneInfoNotFoundError) as e:
            raise ScheduleReconcileError(
                f"Cannot build trigger for {settings.check_time} {settings.timezone}: {e}"
            ) from e

        self._remove_job()
        self.scheduler.add_job(
            func=self._run_check,
            trigger=trigger,
            id=CHECK_JOB_ID,
            name="Daily notification check",
        )
        self._job_active = True

        logger.info(
            f"Daily check scheduled at {settings.check_time} {settings.timezone}",
            extra={
                "event": "scheduler.rescheduled",
                "check_time": settings.check_time,
                "timezone": settings.timezone,
            },
        )

    def _remove_job(self) -> None:
        try:
            self.scheduler.remove_job(CHECK_JOB_ID)
        except JobLookupError:
            pass
        self._job_active = False

    def _run_check(self) -> None:
        try:
            self.check_callable()
        except Exception as e:
            logger.error(
                f"Scheduled notification check failed: {e}",
                exc_info=True,
                extra={"event": "scheduler.run.failed"},
            )
