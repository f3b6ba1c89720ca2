"""Check routine run by the daily trigger and by manual triggers."""

from datetime import datetime
from typing import Callable, ContextManager, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from subscription_notifier.config.models import SchedulerConfig
from subscription_notifier.domain.models import NotificationType
from subscription_notifier.logging import get_logger
from subscription_notifier.logging.context import log_context
from subscription_notifier.notifications.models import (
    OUTCOME_FAILED,
    OUTCOME_NOT_CONFIGURED,
    OUTCOME_SENT,
)
from subscription_notifier.notifications.service import NotificationService
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.exceptions import PersistenceError
from subscription_notifier.persistence.repositories import SchedulerSettingsRepository
from subscription_notifier.selection.selector import DueNotificationSelector
from subscription_notifier.utils.timestamps import ensure_utc, utc_now

from .models import CheckRunResult

logger = get_logger(__name__, component="pipeline")


class NotificationCheckPipeline:
    """
    Runs one notification check: select due pairs, then deliver them.

    There is no lock: a manual run may overlap a scheduled one. The only
    guard against duplicate sends is the selector's history check, which is
    read-then-decide, so two runs evaluating the same pair at the same
    instant can both send.
    """

    def __init__(
        self,
        selector: DueNotificationSelector,
        notification_service: NotificationService,
        scheduler_defaults: Optional[SchedulerConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        session_scope: Callable[[], ContextManager[Session]] = get_session,
    ):
        """
        Initialize the check pipeline.

        Args:
            selector: Due-notification selector
            notification_service: Service that delivers each due pair
            scheduler_defaults: Used for the timezone when none is stored
            clock: Returns the current aware UTC datetime
            session_scope: Context manager factory yielding a database session
        """
        self.selector = selector
        self.notification_service = notification_service
        self.scheduler_defaults = scheduler_defaults or SchedulerConfig()
        self.clock = clock
        self.session_scope = session_scope

    def run_once(self, now: Optional[datetime] = None) -> CheckRunResult:
        """
        Execute a complete notification check.

        This method:
        1. Reads the scheduler timezone snapshot
        2. Selects due reminders and expiration warnings
        3. Delivers each pair in order through the notification service
        4. Aggregates per-channel outcomes

        Args:
            now: Run instant (defaults to the clock)

        Returns:
            CheckRunResult with aggregate counts

        Raises:
            No exceptions are raised for selection or delivery failures; they
            are logged and reflected in the counts.
        """
        run_started_at = ensure_utc(now) if now is not None else self.clock()
        run_id = uuid4().hex

        with log_context(run_id=run_id):
            timezone = self._current_timezone()

            logger.info(
                "Notification check started",
                extra={"event": "pipeline.run.started", "timezone": timezone},
            )

            due = self.selector.select(now=run_started_at, timezone=timezone)
            results = self.notification_service.process_due(due, scheduled_at=run_started_at)

            outcomes = [outcome for result in results for outcome in result.results]
            result = CheckRunResult(
                run_id=run_id,
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                timezone=timezone,
                renewal_candidates=sum(
                    1 for d in due if d.notification_type == NotificationType.RENEWAL_REMINDER.value
                ),
                expiration_candidates=sum(
                    1
                    for d in due
                    if d.notification_type == NotificationType.EXPIRATION_WARNING.value
                ),
                notifications_processed=len(results),
                notifications_delivered=sum(1 for r in results if r.success),
                channel_sent=sum(1 for o in outcomes if o.status == OUTCOME_SENT),
                channel_failed=sum(1 for o in outcomes if o.status == OUTCOME_FAILED),
                channel_not_configured=sum(
                    1 for o in outcomes if o.status == OUTCOME_NOT_CONFIGURED
                ),
                skipped=sum(1 for r in results if r.skipped),
            )

            logger.info(
                "Notification check completed",
                extra={
                    "event": "pipeline.run.completed",
                    "duration_ms": int(result.total_duration_seconds * 1000),
                    "renewal_candidates": result.renewal_candidates,
                    "expiration_candidates": result.expiration_candidates,
                    "notifications_processed": result.notifications_processed,
                    "channel_sent": result.channel_sent,
                    "channel_failed": result.channel_failed,
                    "channel_not_configured": result.channel_not_configured,
                    "skipped": result.skipped,
                },
            )

            return result

    def _current_timezone(self) -> str:
        try:
            with self.session_scope() as session:
                settings = SchedulerSettingsRepository(session).get()
        except PersistenceError as e:
            logger.warning(
                f"Could not read scheduler settings, using {self.scheduler_defaults.timezone}: {e}",
                extra={"event": "pipeline.settings.fallback"},
            )
            return self.scheduler_defaults.timezone

        return settings.timezone if settings else self.scheduler_defaults.timezone
