"""Notification service for delivering subscription notifications.

This module provides the NotificationService class that drives one
(subscription, notification type) pair across its channels: re-reading the
current subscription and setting, rendering the message, dispatching it and
writing exactly one history row per attempted channel.
"""

import logging
from datetime import datetime
from typing import Callable, ContextManager, Iterable, List, Optional

from sqlalchemy.orm import Session

from subscription_notifier.channels.dispatcher import ChannelDispatcher
from subscription_notifier.channels.models import DispatchResult
from subscription_notifier.config.models import SUPPORTED_CHANNELS
from subscription_notifier.domain.models import (
    HistoryEntry,
    HistoryStatus,
    NotificationType,
    Subscription,
)
from subscription_notifier.logging import get_logger
from subscription_notifier.logging.context import log_context
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.exceptions import PersistenceError
from subscription_notifier.persistence.repositories import (
    NotificationHistoryRepository,
    NotificationSettingRepository,
    SubscriptionRepository,
    UserPreferenceRepository,
)
from subscription_notifier.utils.timestamps import utc_now

from .models import (
    OUTCOME_FAILED,
    OUTCOME_NOT_CONFIGURED,
    OUTCOME_SENT,
    ChannelOutcome,
    NotificationResult,
    NotificationTemplateError,
)
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")


class NotificationService:
    """Service for sending subscription notifications over configured channels.

    Coordinates the flow for one pair:
    1. Reject unknown notification types and channel overrides up front
    2. Re-read the subscription and its notification setting (skip if gone
       or disabled)
    3. For each channel in turn: resolve the language, render, dispatch
    4. Record one history row per attempted channel and stamp the channel
       as used on success

    Channels that are not configured are reported but leave no history.
    Nothing is retried.
    """

    def __init__(
        self,
        dispatcher: ChannelDispatcher,
        renderer: Optional[TemplateRenderer] = None,
        clock: Callable[[], datetime] = utc_now,
        default_language: str = "zh-CN",
        session_scope: Callable[[], ContextManager[Session]] = get_session,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification service.

        Args:
            dispatcher: Channel dispatcher used for every send
            renderer: Template renderer (creates default if None)
            clock: Returns the current aware UTC datetime
            default_language: Language used when no preference can be read
            session_scope: Context manager factory yielding a database session
            logger_instance: Logger instance (uses module logger if None)
        """
        self.dispatcher = dispatcher
        self.renderer = renderer or TemplateRenderer()
        self.clock = clock
        self.default_language = default_language
        self.session_scope = session_scope
        self.logger = logger_instance or logger

    def send_notification(
        self,
        subscription_id: int,
        notification_type: str,
        channels: Optional[List[str]] = None,
        scheduled_at: Optional[datetime] = None,
    ) -> NotificationResult:
        """Send one notification type for one subscription.

        Args:
            subscription_id: Subscription to notify about
            notification_type: One of the NotificationType values
            channels: Explicit channel list (manual sends); defaults to the
                setting's configured channels
            scheduled_at: When the send was planned (the run start for
                scheduled checks)

        Returns:
            NotificationResult with one ChannelOutcome per channel tried
        """
        with log_context(subscription_id=subscription_id, notification_type=notification_type):
            if notification_type not in NotificationType.values():
                self.logger.warning(
                    f"Rejected unknown notification type {notification_type}",
                    extra={"event": "notification.rejected", "reason": "unknown_type"},
                )
                return NotificationResult(
                    subscription_id=subscription_id,
                    notification_type=notification_type,
                    success=False,
                    message=f"Unsupported notification type: {notification_type}",
                )

            if channels is not None:
                unsupported = [c for c in channels if c not in SUPPORTED_CHANNELS]
                if unsupported:
                    self.logger.warning(
                        f"Rejected unsupported channels {unsupported}",
                        extra={"event": "notification.rejected", "reason": "unknown_channel"},
                    )
                    return NotificationResult(
                        subscription_id=subscription_id,
                        notification_type=notification_type,
                        success=False,
                        message=f"Unsupported channel(s): {', '.join(unsupported)}",
                    )

            try:
                with self.session_scope() as session:
                    subscription = SubscriptionRepository(session).get_by_id(subscription_id)
                    setting = NotificationSettingRepository(session).get(notification_type)
            except PersistenceError as e:
                error_msg = f"Failed to load notification data: {e}"
                self.logger.error(error_msg, extra={"event": "notification.load.failed"})
                return NotificationResult(
                    subscription_id=subscription_id,
                    notification_type=notification_type,
                    success=False,
                    message=error_msg,
                )

            if subscription is None:
                return self._skip(subscription_id, notification_type, "Subscription not found")
            if setting is None:
                return self._skip(
                    subscription_id, notification_type, "Notification setting not found"
                )
            if not setting.is_enabled:
                return self._skip(
                    subscription_id, notification_type, "Notification type is disabled"
                )

            target_channels = channels if channels is not None else setting.notification_channels
            if not target_channels:
                return self._skip(subscription_id, notification_type, "No channels configured")

            sent_at = self.clock()
            results = [
                self._send_via_channel(
                    subscription, notification_type, channel, scheduled_at or sent_at
                )
                for channel in target_channels
            ]

            sent = sum(1 for r in results if r.status == OUTCOME_SENT)
            failed = sum(1 for r in results if r.status == OUTCOME_FAILED)
            not_configured = sum(1 for r in results if r.status == OUTCOME_NOT_CONFIGURED)

            self.logger.info(
                f"Notification for {subscription.name}: {sent} sent, {failed} failed, "
                f"{not_configured} not configured",
                extra={
                    "event": "notification.completed",
                    "sent": sent,
                    "failed": failed,
                    "not_configured": not_configured,
                },
            )

            return NotificationResult(
                subscription_id=subscription_id,
                notification_type=notification_type,
                success=sent > 0,
                results=results,
                message=f"{sent} sent, {failed} failed, {not_configured} not configured",
            )

    def process_due(
        self,
        due_notifications: Iterable,
        scheduled_at: Optional[datetime] = None,
    ) -> List[NotificationResult]:
        """Send notifications for a batch of due pairs, one at a time.

        Continues processing even if individual notifications fail.

        Args:
            due_notifications: Iterable of DueNotification objects
            scheduled_at: Run start time recorded on every history row

        Returns:
            List of NotificationResult objects (one per pair)
        """
        results = []

        for due in due_notifications:
            subscription_id = due.subscription.id
            try:
                result = self.send_notification(
                    subscription_id, due.notification_type, scheduled_at=scheduled_at
                )
            except Exception as e:
                # Keep the batch going whatever happens to one pair
                self.logger.error(
                    f"Unexpected error processing {due.notification_type} for "
                    f"subscription {subscription_id}: {e}",
                    exc_info=True,
                    extra={"event": "notification.unexpected_error"},
                )
                result = NotificationResult(
                    subscription_id=subscription_id,
                    notification_type=due.notification_type,
                    success=False,
                    message=str(e),
                )
            results.append(result)

        succeeded = sum(1 for r in results if r.success)
        skipped = sum(1 for r in results if r.skipped)
        self.logger.info(
            f"Notification batch complete: {succeeded} delivered, {skipped} skipped, "
            f"{len(results) - succeeded - skipped} not delivered (total: {len(results)})",
            extra={"event": "notification.batch.completed"},
        )

        return results

    def _send_via_channel(
        self,
        subscription: Subscription,
        notification_type: str,
        channel: str,
        scheduled_at: datetime,
    ) -> ChannelOutcome:
        with log_context(channel=channel):
            language = self._user_language()

            try:
                rendered = self.renderer.render(subscription, notification_type, language, channel)
            except NotificationTemplateError as e:
                dispatch = DispatchResult.failure(str(e))
                return self._record(subscription, notification_type, channel, dispatch, None, scheduled_at)

            dispatch = self.dispatcher.send(channel, rendered.content, subject=rendered.subject)

            if dispatch.not_configured:
                self.logger.info(
                    f"Channel {channel} not configured, skipping",
                    extra={"event": "notification.channel.not_configured"},
                )
                return ChannelOutcome(
                    channel=channel, status=OUTCOME_NOT_CONFIGURED, error=dispatch.error
                )

            outcome = self._record(
                subscription, notification_type, channel, dispatch, rendered.content, scheduled_at
            )
            if dispatch.success:
                self.dispatcher.mark_used(channel)
            return outcome

    def _record(
        self,
        subscription: Subscription,
        notification_type: str,
        channel: str,
        dispatch: DispatchResult,
        content: Optional[str],
        scheduled_at: datetime,
    ) -> ChannelOutcome:
        status = HistoryStatus.SENT if dispatch.success else HistoryStatus.FAILED
        entry = HistoryEntry(
            subscription_id=subscription.id,
            notification_type=notification_type,
            channel_type=channel,
            status=status,
            recipient=dispatch.recipient,
            message_content=content,
            error_message=None if dispatch.success else dispatch.error,
            scheduled_at=scheduled_at,
            sent_at=self.clock() if dispatch.success else None,
        )

        if dispatch.success:
            self.logger.info(
                f"Sent {notification_type} for {subscription.name} via {channel}",
                extra={"event": "notification.send.success"},
            )
        else:
            self.logger.warning(
                f"Failed to send {notification_type} for {subscription.name} via "
                f"{channel}: {dispatch.error}",
                extra={"event": "notification.send.failure"},
            )

        history_id = None
        try:
            with self.session_scope() as session:
                history_id = NotificationHistoryRepository(session).record(entry).id
        except PersistenceError as e:
            self.logger.error(
                f"Could not record history for {channel}: {e}",
                extra={"event": "notification.history.failed"},
            )

        return ChannelOutcome(
            channel=channel,
            status=status.value,
            error=entry.error_message,
            history_id=history_id,
        )

    def _user_language(self) -> str:
        try:
            with self.session_scope() as session:
                language = UserPreferenceRepository(session).get_language()
        except PersistenceError as e:
            self.logger.warning(
                f"Could not read language preference, using {self.default_language}: {e}",
                extra={"event": "notification.language.fallback"},
            )
            return self.default_language
        return language or self.default_language

    def _skip(
        self, subscription_id: int, notification_type: str, reason: str
    ) -> NotificationResult:
        self.logger.info(
            f"Skipping {notification_type} for subscription {subscription_id}: {reason}",
            extra={"event": "notification.skip", "reason": reason},
        )
        return NotificationResult(
            subscription_id=subscription_id,
            notification_type=notification_type,
            success=False,
            message=reason,
            skipped=True,
        )
