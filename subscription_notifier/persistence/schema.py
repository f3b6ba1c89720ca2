"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the database schema and provides
conversion methods between ORM models and domain models.

The ``subscriptions`` and ``payment_methods`` tables belong to the subscription
CRUD layer; they are declared here so the engine can query and join them.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from subscription_notifier.domain.models import (
    ChannelConfig,
    HistoryEntry,
    NotificationSetting,
    SchedulerSettings,
    Subscription,
)
from subscription_notifier.utils.timestamps import (
    DATE_FORMAT,
    format_storage_timestamp,
    parse_date,
    parse_storage_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

SCHEDULER_SETTINGS_ID = 1
USER_PREFERENCE_ID = 1


class PaymentMethodModel(Base):
    """ORM model for payment_methods table (label lookup only)."""

    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(String(100), nullable=True)
    label = Column(String(255), nullable=False)


class SubscriptionModel(Base):
    """ORM model for subscriptions table."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    plan = Column(String(255), nullable=True)
    billing_cycle = Column(String(50), nullable=True)
    # Stored as YYYY-MM-DD so range comparisons work on the string column
    next_billing_date = Column(String(10), nullable=True)
    amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(10), nullable=False, default="USD")
    payment_method_id = Column(
        Integer, ForeignKey("payment_methods.id", ondelete="SET NULL"), nullable=True
    )
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    payment_method = relationship(PaymentMethodModel, lazy="joined")

    __table_args__ = (
        Index("idx_subscriptions_status_billing", "status", "next_billing_date"),
    )

    def to_domain(self) -> Subscription:
        return Subscription(
            id=self.id,
            name=self.name,
            plan=self.plan,
            billing_cycle=self.billing_cycle,
            next_billing_date=parse_date(self.next_billing_date),
            amount=self.amount if self.amount is not None else 0.0,
            currency=self.currency or "USD",
            payment_method_id=self.payment_method_id,
            payment_method_label=self.payment_method.label if self.payment_method else None,
            status=self.status,
        )

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionModel":
        now = format_storage_timestamp(utc_now())
        return cls(
            id=subscription.id,
            name=subscription.name,
            plan=subscription.plan,
            billing_cycle=subscription.billing_cycle,
            next_billing_date=(
                subscription.next_billing_date.strftime(DATE_FORMAT)
                if subscription.next_billing_date
                else None
            ),
            amount=subscription.amount,
            currency=subscription.currency,
            payment_method_id=subscription.payment_method_id,
            status=subscription.status,
            created_at=now,
            updated_at=now,
        )


class NotificationSettingModel(Base):
    """ORM model for notification_settings table (one row per notification type)."""

    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    notification_type = Column(String(50), nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    advance_days = Column(Integer, nullable=False, default=0)
    repeat_notification = Column(Boolean, nullable=False, default=False)
    notification_channels = Column(Text, nullable=False, default='["telegram"]')
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> NotificationSetting:
        return NotificationSetting(
            notification_type=self.notification_type,
            is_enabled=bool(self.is_enabled),
            advance_days=self.advance_days or 0,
            repeat_notification=bool(self.repeat_notification),
            notification_channels=_load_json_list(self.notification_channels),
        )

    @classmethod
    def from_domain(cls, setting: NotificationSetting) -> "NotificationSettingModel":
        now = format_storage_timestamp(utc_now())
        return cls(
            notification_type=setting.notification_type,
            is_enabled=setting.is_enabled,
            advance_days=setting.advance_days,
            repeat_notification=setting.repeat_notification,
            notification_channels=json.dumps(setting.notification_channels),
            created_at=now,
            updated_at=now,
        )


class ChannelConfigModel(Base):
    """ORM model for notification_channels table (one row per channel type)."""

    __tablename__ = "notification_channels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_type = Column(String(50), nullable=False, unique=True)
    channel_config = Column(Text, nullable=False, default="{}")
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> ChannelConfig:
        return ChannelConfig(
            channel_type=self.channel_type,
            config=_load_json_dict(self.channel_config),
            is_active=bool(self.is_active),
            last_used_at=parse_storage_timestamp(self.last_used_at),
            created_at=parse_storage_timestamp(self.created_at),
            updated_at=parse_storage_timestamp(self.updated_at),
        )


class NotificationHistoryModel(Base):
    """ORM model for notification_history table.

    Rows are inserted once with their final status and never updated.
    """

    __tablename__ = "notification_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(
        Integer, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False
    )
    notification_type = Column(String(50), nullable=False)
    channel_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)
    recipient = Column(Text, nullable=True)
    message_content = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    scheduled_at = Column(String(50), nullable=True)
    sent_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)
    retry_count = Column(Integer, nullable=False, default=0)
    max_retry = Column(Integer, nullable=False, default=3)

    __table_args__ = (
        Index(
            "idx_history_dedup",
            "subscription_id",
            "notification_type",
            "status",
            "sent_at",
        ),
        Index("idx_history_created_at", "created_at"),
    )

    def to_domain(self, subscription_name: Optional[str] = None) -> HistoryEntry:
        return HistoryEntry(
            id=self.id,
            subscription_id=self.subscription_id,
            notification_type=self.notification_type,
            channel_type=self.channel_type,
            status=self.status,
            recipient=self.recipient,
            message_content=self.message_content,
            error_message=self.error_message,
            scheduled_at=parse_storage_timestamp(self.scheduled_at),
            sent_at=parse_storage_timestamp(self.sent_at),
            created_at=parse_storage_timestamp(self.created_at),
            retry_count=self.retry_count or 0,
            max_retry=self.max_retry if self.max_retry is not None else 3,
            subscription_name=subscription_name,
        )

    @classmethod
    def from_domain(cls, entry: HistoryEntry) -> "NotificationHistoryModel":
        return cls(
            subscription_id=entry.subscription_id,
            notification_type=entry.notification_type,
            channel_type=entry.channel_type,
            status=entry.status,
            recipient=entry.recipient,
            message_content=entry.message_content,
            error_message=entry.error_message,
            scheduled_at=format_storage_timestamp(entry.scheduled_at),
            sent_at=format_storage_timestamp(entry.sent_at),
            created_at=format_storage_timestamp(entry.created_at or utc_now()),
            retry_count=entry.retry_count,
            max_retry=entry.max_retry,
        )


class SchedulerSettingsModel(Base):
    """ORM model for scheduler_settings table (singleton row, id=1)."""

    __tablename__ = "scheduler_settings"

    id = Column(Integer, primary_key=True)
    notification_check_time = Column(String(5), nullable=False, default="09:00")
    timezone = Column(String(64), nullable=False, default="Asia/Shanghai")
    is_enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> SchedulerSettings:
        return SchedulerSettings(
            check_time=self.notification_check_time,
            timezone=self.timezone,
            is_enabled=bool(self.is_enabled),
            updated_at=parse_storage_timestamp(self.updated_at),
        )


class UserPreferenceModel(Base):
    """ORM model for user_preferences table (singleton row, id=1)."""

    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True)
    language = Column(String(10), nullable=False, default="zh-CN")
    updated_at = Column(String(50), nullable=True)


def _load_json_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return ["telegram"]
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Unparseable notification_channels value, using default",
            extra={"event": "schema.json_invalid", "raw_value": raw},
        )
        return ["telegram"]
    return [str(item) for item in value] if isinstance(value, list) else ["telegram"]


def _load_json_dict(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Unparseable channel_config value, using empty config",
            extra={"event": "schema.json_invalid"},
        )
        return {}
    return value if isinstance(value, dict) else {}


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
