"""Data access layer (repositories) for persistence operations.

This module provides repository classes for the notification engine's tables.
Repositories encapsulate database operations and return domain models rather
than ORM models. Every SQLAlchemy error is wrapped in a PersistenceError.
"""

import json
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from subscription_notifier.config.models import NotificationDefaultsConfig, SchedulerConfig
from subscription_notifier.domain.models import (
    ChannelConfig,
    HistoryEntry,
    HistoryStatus,
    NotificationSetting,
    NotificationStats,
    NotificationType,
    SchedulerSettings,
    Subscription,
    SubscriptionStatus,
)
from subscription_notifier.utils.timestamps import (
    DATE_FORMAT,
    format_storage_timestamp,
    utc_now,
)

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    SCHEDULER_SETTINGS_ID,
    USER_PREFERENCE_ID,
    ChannelConfigModel,
    NotificationHistoryModel,
    NotificationSettingModel,
    PaymentMethodModel,
    SchedulerSettingsModel,
    SubscriptionModel,
    UserPreferenceModel,
)

logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """Read access to subscriptions, plus the minimal writes tests and tools need."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        """Retrieve a subscription with its payment method label.

        Args:
            subscription_id: Subscription primary key

        Returns:
            Subscription domain model if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            subscription_model = self.session.get(SubscriptionModel, subscription_id)
            if subscription_model is None:
                return None
            return subscription_model.to_domain()

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving subscription {subscription_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve subscription: {e}") from e

    def add(self, subscription: Subscription) -> Subscription:
        """Insert a subscription row.

        Raises:
            DataIntegrityError: If a constraint is violated
            PersistenceError: If database error occurs
        """
        try:
            subscription_model = SubscriptionModel.from_domain(subscription)
            self.session.add(subscription_model)
            self.session.flush()
            self.session.refresh(subscription_model)
            return subscription_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error adding subscription: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to add subscription due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding subscription: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add subscription: {e}") from e

    def add_payment_method(self, label: str, value: Optional[str] = None) -> int:
        """Insert a payment method and return its id."""
        try:
            payment_method = PaymentMethodModel(label=label, value=value)
            self.session.add(payment_method)
            self.session.flush()
            return payment_method.id

        except SQLAlchemyError as e:
            logger.error(f"Error adding payment method: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add payment method: {e}") from e

    def delete(self, subscription_id: int) -> None:
        """Delete a subscription; its history rows go with it (FK cascade).

        Raises:
            RecordNotFoundError: If the subscription doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            result = self.session.execute(
                delete(SubscriptionModel).where(SubscriptionModel.id == subscription_id)
            )
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"Subscription {subscription_id} not found")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error deleting subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete subscription: {e}") from e

    def find_active_due_between(self, start: date, end: date) -> List[Subscription]:
        """Active subscriptions with start <= next_billing_date <= end.

        Returns:
            Subscriptions ordered by next_billing_date, then id
        """
        try:
            stmt = (
                select(SubscriptionModel)
                .where(
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
                    SubscriptionModel.next_billing_date >= start.strftime(DATE_FORMAT),
                    SubscriptionModel.next_billing_date <= end.strftime(DATE_FORMAT),
                )
                .order_by(SubscriptionModel.next_billing_date, SubscriptionModel.id)
            )
            return [row.to_domain() for row in self.session.execute(stmt).unique().scalars()]

        except SQLAlchemyError as e:
            logger.error(
                f"Error querying subscriptions due between {start} and {end}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to query due subscriptions: {e}") from e

    def find_active_due_on(self, day: date) -> List[Subscription]:
        """Active subscriptions whose next_billing_date equals ``day``, ordered by id."""
        try:
            stmt = (
                select(SubscriptionModel)
                .where(
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
                    SubscriptionModel.next_billing_date == day.strftime(DATE_FORMAT),
                )
                .order_by(SubscriptionModel.id)
            )
            return [row.to_domain() for row in self.session.execute(stmt).unique().scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error querying subscriptions due on {day}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query due subscriptions: {e}") from e


class NotificationSettingRepository:
    """Repository for per-type notification settings."""

    def __init__(self, session: Session):
        self.session = session

    def _get_model(self, notification_type: str) -> Optional[NotificationSettingModel]:
        stmt = select(NotificationSettingModel).where(
            NotificationSettingModel.notification_type == notification_type
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, notification_type: str) -> Optional[NotificationSetting]:
        """Retrieve the setting for one notification type.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            setting_model = self._get_model(notification_type)
            return setting_model.to_domain() if setting_model else None

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving notification setting {notification_type}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to retrieve notification setting: {e}") from e

    def get_all(self) -> List[NotificationSetting]:
        """All settings, in NotificationType declaration order."""
        try:
            rows = self.session.execute(select(NotificationSettingModel)).scalars().all()
            by_type = {row.notification_type: row.to_domain() for row in rows}
            return [by_type[t] for t in NotificationType.values() if t in by_type]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification settings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification settings: {e}") from e

    def update(
        self,
        notification_type: str,
        is_enabled: Optional[bool] = None,
        advance_days: Optional[int] = None,
        repeat_notification: Optional[bool] = None,
        notification_channels: Optional[List[str]] = None,
    ) -> NotificationSetting:
        """Update the given fields of a setting; None leaves a field unchanged.

        Raises:
            RecordNotFoundError: If no setting exists for the type
            PersistenceError: If database error occurs
        """
        try:
            setting_model = self._get_model(notification_type)
            if setting_model is None:
                raise RecordNotFoundError(
                    f"Notification setting for {notification_type} not found"
                )

            if is_enabled is not None:
                setting_model.is_enabled = is_enabled
            if advance_days is not None:
                setting_model.advance_days = advance_days
            if repeat_notification is not None:
                setting_model.repeat_notification = repeat_notification
            if notification_channels is not None:
                setting_model.notification_channels = json.dumps(notification_channels)
            setting_model.updated_at = format_storage_timestamp(utc_now())

            self.session.flush()
            return setting_model.to_domain()

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                f"Error updating notification setting {notification_type}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to update notification setting: {e}") from e

    def ensure_defaults(self, defaults: NotificationDefaultsConfig) -> int:
        """Seed one setting per notification type where missing.

        Renewal reminders get the configured window and repeat flag; the
        other types are seeded with a zero window and no repeat.

        Returns:
            Number of rows created
        """
        try:
            existing = set(
                self.session.execute(
                    select(NotificationSettingModel.notification_type)
                ).scalars()
            )

            created = 0
            for notification_type in NotificationType:
                if notification_type.value in existing:
                    continue

                is_reminder = notification_type is NotificationType.RENEWAL_REMINDER
                setting = NotificationSetting(
                    notification_type=notification_type,
                    is_enabled=True,
                    advance_days=defaults.default_advance_days if is_reminder else 0,
                    repeat_notification=(
                        defaults.default_repeat_notification if is_reminder else False
                    ),
                    notification_channels=list(defaults.default_channels),
                )
                self.session.add(NotificationSettingModel.from_domain(setting))
                created += 1

            self.session.flush()
            return created

        except SQLAlchemyError as e:
            logger.error(f"Error seeding notification settings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to seed notification settings: {e}") from e


class ChannelConfigRepository:
    """Repository for per-channel configuration rows."""

    def __init__(self, session: Session):
        self.session = session

    def _get_model(self, channel_type: str) -> Optional[ChannelConfigModel]:
        stmt = select(ChannelConfigModel).where(ChannelConfigModel.channel_type == channel_type)
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, channel_type: str) -> Optional[ChannelConfig]:
        """Retrieve a channel configuration regardless of its active flag."""
        try:
            channel_model = self._get_model(channel_type)
            return channel_model.to_domain() if channel_model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving channel config {channel_type}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve channel config: {e}") from e

    def upsert(self, channel_type: str, config: Dict) -> ChannelConfig:
        """Create or replace a channel configuration and mark it active."""
        try:
            now = format_storage_timestamp(utc_now())
            channel_model = self._get_model(channel_type)

            if channel_model is None:
                channel_model = ChannelConfigModel(
                    channel_type=channel_type,
                    channel_config=json.dumps(config),
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
                self.session.add(channel_model)
            else:
                channel_model.channel_config = json.dumps(config)
                channel_model.is_active = True
                channel_model.updated_at = now

            self.session.flush()
            return channel_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting channel {channel_type}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert channel config due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting channel config {channel_type}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert channel config: {e}") from e

    def set_active(self, channel_type: str, is_active: bool) -> None:
        """Toggle a channel's active flag.

        Raises:
            RecordNotFoundError: If the channel has never been configured
        """
        try:
            result = self.session.execute(
                update(ChannelConfigModel)
                .where(ChannelConfigModel.channel_type == channel_type)
                .values(is_active=is_active, updated_at=format_storage_timestamp(utc_now()))
            )
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"Channel {channel_type} not configured")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating channel {channel_type}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update channel: {e}") from e

    def touch_last_used(self, channel_type: str, when: datetime) -> None:
        """Record the time of the last successful send through a channel."""
        try:
            self.session.execute(
                update(ChannelConfigModel)
                .where(ChannelConfigModel.channel_type == channel_type)
                .values(last_used_at=format_storage_timestamp(when))
            )
            self.session.flush()

        except SQLAlchemyError as e:
            logger.error(
                f"Error updating last_used_at for channel {channel_type}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to update channel last_used_at: {e}") from e


class NotificationHistoryRepository:
    """Append-only access to notification history.

    There is deliberately no update method: each attempt is written once with
    its final status.
    """

    def __init__(self, session: Session):
        self.session = session

    def record(self, entry: HistoryEntry) -> HistoryEntry:
        """Insert one history row.

        Args:
            entry: Attempt with its final status

        Returns:
            The persisted entry, including its id and created_at

        Raises:
            DataIntegrityError: If the subscription doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            history_model = NotificationHistoryModel.from_domain(entry)
            self.session.add(history_model)
            self.session.flush()
            return history_model.to_domain()

        except IntegrityError as e:
            logger.error(
                f"Integrity error recording history for subscription {entry.subscription_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(
                f"Failed to record history due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording notification history: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record notification history: {e}") from e

    def has_sent_since(
        self, subscription_id: int, notification_type: str, since: datetime
    ) -> bool:
        """True if a ``sent`` row exists for the pair with sent_at >= since."""
        return self._exists_sent(subscription_id, notification_type, since, None)

    def has_sent_between(
        self,
        subscription_id: int,
        notification_type: str,
        start: datetime,
        end: datetime,
    ) -> bool:
        """True if a ``sent`` row exists for the pair with start <= sent_at < end."""
        return self._exists_sent(subscription_id, notification_type, start, end)

    def _exists_sent(
        self,
        subscription_id: int,
        notification_type: str,
        start: datetime,
        end: Optional[datetime],
    ) -> bool:
        try:
            conditions = [
                NotificationHistoryModel.subscription_id == subscription_id,
                NotificationHistoryModel.notification_type == notification_type,
                NotificationHistoryModel.status == HistoryStatus.SENT.value,
                NotificationHistoryModel.sent_at >= format_storage_timestamp(start),
            ]
            if end is not None:
                conditions.append(
                    NotificationHistoryModel.sent_at < format_storage_timestamp(end)
                )

            stmt = select(NotificationHistoryModel.id).where(*conditions).limit(1)
            return self.session.execute(stmt).first() is not None

        except SQLAlchemyError as e:
            logger.error(
                f"Error checking history for subscription {subscription_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to check notification history: {e}") from e

    def list_page(
        self,
        page: int,
        limit: int,
        status: Optional[str] = None,
        notification_type: Optional[str] = None,
    ) -> Tuple[List[HistoryEntry], int]:
        """One page of history, newest first, with the subscription name joined.

        Returns:
            Tuple of (entries, total rows matching the filters)
        """
        try:
            conditions = []
            if status:
                conditions.append(NotificationHistoryModel.status == status)
            if notification_type:
                conditions.append(NotificationHistoryModel.notification_type == notification_type)

            total = self.session.execute(
                select(func.count(NotificationHistoryModel.id)).where(*conditions)
            ).scalar_one()

            stmt = (
                select(NotificationHistoryModel, SubscriptionModel.name)
                .outerjoin(
                    SubscriptionModel,
                    NotificationHistoryModel.subscription_id == SubscriptionModel.id,
                )
                .where(*conditions)
                .order_by(
                    NotificationHistoryModel.created_at.desc(),
                    NotificationHistoryModel.id.desc(),
                )
                .limit(limit)
                .offset((page - 1) * limit)
            )
            entries = [
                history_model.to_domain(subscription_name=name)
                for history_model, name in self.session.execute(stmt).all()
            ]
            return entries, total

        except SQLAlchemyError as e:
            logger.error(f"Error listing notification history: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list notification history: {e}") from e

    def get_stats(self) -> NotificationStats:
        """Aggregate counts overall, by notification type and by channel."""
        try:
            stats = NotificationStats()

            type_rows = self.session.execute(
                select(
                    NotificationHistoryModel.notification_type,
                    NotificationHistoryModel.status,
                    func.count(NotificationHistoryModel.id),
                ).group_by(
                    NotificationHistoryModel.notification_type,
                    NotificationHistoryModel.status,
                )
            ).all()
            for notification_type, status, count in type_rows:
                _accumulate(stats.by_type, notification_type, status, count)
                stats.total += count
                if status == HistoryStatus.SENT.value:
                    stats.sent += count
                elif status == HistoryStatus.FAILED.value:
                    stats.failed += count

            channel_rows = self.session.execute(
                select(
                    NotificationHistoryModel.channel_type,
                    NotificationHistoryModel.status,
                    func.count(NotificationHistoryModel.id),
                ).group_by(
                    NotificationHistoryModel.channel_type,
                    NotificationHistoryModel.status,
                )
            ).all()
            for channel_type, status, count in channel_rows:
                _accumulate(stats.by_channel, channel_type, status, count)

            return stats

        except SQLAlchemyError as e:
            logger.error(f"Error computing notification stats: {e}", exc_info=True)
            raise PersistenceError(f"Failed to compute notification stats: {e}") from e


def _accumulate(bucket: Dict[str, Dict[str, int]], key: str, status: str, count: int) -> None:
    counts = bucket.setdefault(key, {"total": 0, "sent": 0, "failed": 0})
    counts["total"] += count
    if status in counts:
        counts[status] += count


class SchedulerSettingsRepository:
    """Repository for the singleton scheduler settings row."""

    def __init__(self, session: Session):
        self.session = session

    def get(self) -> Optional[SchedulerSettings]:
        try:
            settings_model = self.session.get(SchedulerSettingsModel, SCHEDULER_SETTINGS_ID)
            return settings_model.to_domain() if settings_model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving scheduler settings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve scheduler settings: {e}") from e

    def save(self, settings: SchedulerSettings) -> SchedulerSettings:
        """Write the singleton row, creating it if needed."""
        try:
            now = format_storage_timestamp(utc_now())
            settings_model = self.session.get(SchedulerSettingsModel, SCHEDULER_SETTINGS_ID)
            if settings_model is None:
                settings_model = SchedulerSettingsModel(id=SCHEDULER_SETTINGS_ID)
                self.session.add(settings_model)

            settings_model.notification_check_time = settings.check_time
            settings_model.timezone = settings.timezone
            settings_model.is_enabled = settings.is_enabled
            settings_model.updated_at = now

            self.session.flush()
            return settings_model.to_domain()

        except SQLAlchemyError as e:
            logger.error(f"Error saving scheduler settings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save scheduler settings: {e}") from e

    def ensure_default(self, defaults: SchedulerConfig) -> SchedulerSettings:
        """Return the stored settings, seeding them from defaults on first use."""
        existing = self.get()
        if existing is not None:
            return existing
        return self.save(
            SchedulerSettings(
                check_time=defaults.check_time,
                timezone=defaults.timezone,
                is_enabled=defaults.enabled,
            )
        )


class UserPreferenceRepository:
    """Repository for the single global user preference row."""

    def __init__(self, session: Session):
        self.session = session

    def get_language(self) -> Optional[str]:
        try:
            preference = self.session.get(UserPreferenceModel, USER_PREFERENCE_ID)
            return preference.language if preference else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user language: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user language: {e}") from e

    def set_language(self, language: str) -> str:
        try:
            preference = self.session.get(UserPreferenceModel, USER_PREFERENCE_ID)
            if preference is None:
                preference = UserPreferenceModel(id=USER_PREFERENCE_ID)
                self.session.add(preference)

            preference.language = language
            preference.updated_at = format_storage_timestamp(utc_now())
            self.session.flush()
            return preference.language

        except SQLAlchemyError as e:
            logger.error(f"Error saving user language: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save user language: {e}") from e

    def ensure_default(self, language: str) -> str:
        existing = self.get_language()
        if existing is not None:
            return existing
        return self.set_language(language)
