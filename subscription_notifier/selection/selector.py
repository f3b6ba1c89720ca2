"""Due-notification selection.

Computes which (subscription, notification type) pairs should be sent in a
check run. History is the only deduplication source: a pair is excluded
when a matching ``sent`` row already exists in the relevant window.

"Today" is the calendar date of the run instant in the scheduler timezone.
"""

from datetime import datetime, timedelta
from typing import Callable, ContextManager, List, Optional

from sqlalchemy.orm import Session

from subscription_notifier.domain.models import NotificationType
from subscription_notifier.logging import get_logger
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.repositories import (
    NotificationHistoryRepository,
    NotificationSettingRepository,
    SubscriptionRepository,
)
from subscription_notifier.utils.timestamps import (
    ensure_utc,
    local_day_bounds,
    local_today,
    utc_now,
)

from .models import DueNotification

logger = get_logger(__name__, component="selector")


class DueNotificationSelector:
    """Selects renewal reminders and expiration warnings due now."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        session_scope: Callable[[], ContextManager[Session]] = get_session,
    ):
        self.clock = clock
        self.session_scope = session_scope

    def select(
        self, now: Optional[datetime] = None, timezone: str = "UTC"
    ) -> List[DueNotification]:
        """Compute the due pairs at ``now``.

        Each notification type is selected independently; a failure while
        selecting one type is logged and yields no candidates for that type
        only.

        Args:
            now: Run instant (defaults to the clock)
            timezone: IANA timezone that defines "today"

        Returns:
            Reminders ordered by next_billing_date then id, followed by
            expiration warnings ordered by id
        """
        now = ensure_utc(now) if now is not None else self.clock()

        # An unknown timezone surfaces inside each guard as a failure for that type
        reminders = self._guarded(
            NotificationType.RENEWAL_REMINDER.value,
            lambda: self._renewal_reminders(now, local_today(now, timezone)),
        )
        expirations = self._guarded(
            NotificationType.EXPIRATION_WARNING.value,
            lambda: self._expiration_warnings(local_today(now, timezone), timezone),
        )

        logger.info(
            f"Selected {len(reminders)} renewal reminder(s) and "
            f"{len(expirations)} expiration warning(s) at {now.isoformat()} ({timezone})",
            extra={
                "event": "selector.completed",
                "renewal_candidates": len(reminders),
                "expiration_candidates": len(expirations),
                "run_at": now.isoformat(),
                "timezone": timezone,
            },
        )
        return reminders + expirations

    def _guarded(self, notification_type: str, select_fn) -> List[DueNotification]:
        try:
            return select_fn()
        except Exception as e:
            logger.error(
                f"Selection failed for {notification_type}: {e}",
                exc_info=True,
                extra={
                    "event": "selector.failure",
                    "notification_type": notification_type,
                    "error_type": type(e).__name__,
                },
            )
            return []

    def _renewal_reminders(self, now: datetime, today) -> List[DueNotification]:
        notification_type = NotificationType.RENEWAL_REMINDER.value

        with self.session_scope() as session:
            setting = NotificationSettingRepository(session).get(notification_type)
            if setting is None or not setting.is_enabled:
                logger.debug(f"{notification_type} disabled or missing, nothing to select")
                return []

            if setting.advance_days < 1:
                return []

            window_start = today + timedelta(days=1)
            window_end = today + timedelta(days=setting.advance_days)
            candidates = SubscriptionRepository(session).find_active_due_between(
                window_start, window_end
            )

            history = NotificationHistoryRepository(session)
            lookback = now - timedelta(days=setting.advance_days)

            due = []
            for subscription in candidates:
                if not setting.repeat_notification and history.has_sent_since(
                    subscription.id, notification_type, lookback
                ):
                    logger.debug(
                        f"Reminder for subscription {subscription.id} already sent since "
                        f"{lookback.isoformat()}"
                    )
                    continue

                due.append(
                    DueNotification(
                        subscription=subscription,
                        notification_type=notification_type,
                        channels=list(setting.notification_channels),
                        repeat_notification=setting.repeat_notification,
                    )
                )
            return due

    def _expiration_warnings(self, today, timezone: str) -> List[DueNotification]:
        notification_type = NotificationType.EXPIRATION_WARNING.value

        with self.session_scope() as session:
            setting = NotificationSettingRepository(session).get(notification_type)
            if setting is None or not setting.is_enabled:
                logger.debug(f"{notification_type} disabled or missing, nothing to select")
                return []

            # Fixed one-day-after-expiry offset; the stored advance_days is ignored
            expired_on = today - timedelta(days=1)
            candidates = SubscriptionRepository(session).find_active_due_on(expired_on)

            history = NotificationHistoryRepository(session)
            day_start, day_end = local_day_bounds(today, timezone)

            due = []
            for subscription in candidates:
                if history.has_sent_between(
                    subscription.id, notification_type, day_start, day_end
                ):
                    continue

                due.append(
                    DueNotification(
                        subscription=subscription,
                        notification_type=notification_type,
                        channels=list(setting.notification_channels),
                        repeat_notification=setting.repeat_notification,
                    )
                )
            return due
