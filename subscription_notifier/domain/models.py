"""Core domain models for subscriptions and notifications.

This module defines the data structures used throughout the application:
- Subscription: the subscription row the engine reads (owned elsewhere)
- NotificationSetting: per-type enablement, window and channel list
- ChannelConfig: persisted per-channel recipient configuration
- HistoryEntry: one append-only send attempt
- SchedulerSettings: the singleton daily-check schedule
- NotificationStats: aggregate history counts
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from subscription_notifier.config.models import ADVANCE_DAYS_MAX, ADVANCE_DAYS_MIN
from subscription_notifier.utils.timestamps import ensure_utc


class NotificationType(str, Enum):
    """The five fixed notification categories."""

    RENEWAL_REMINDER = "renewal_reminder"
    EXPIRATION_WARNING = "expiration_warning"
    RENEWAL_SUCCESS = "renewal_success"
    RENEWAL_FAILURE = "renewal_failure"
    SUBSCRIPTION_CHANGE = "subscription_change"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class HistoryStatus(str, Enum):
    """Final outcome of a send attempt."""

    SENT = "sent"
    FAILED = "failed"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"


class Subscription(BaseModel):
    """Subscription data as seen by the notification engine.

    ``payment_method_label`` is joined from the payment methods table and is
    preferred over the raw id when rendering messages.
    """

    id: Optional[int] = Field(None, description="Database id")
    name: str = Field(..., min_length=1, description="Service name")
    plan: Optional[str] = Field(None, description="Plan name")
    billing_cycle: Optional[str] = Field(None, description="monthly, yearly, ...")
    next_billing_date: Optional[date] = Field(None, description="Next renewal/expiry date")
    amount: float = Field(0.0, description="Renewal amount")
    currency: str = Field("USD", description="ISO currency code")
    payment_method_id: Optional[int] = Field(None, description="Payment method reference")
    payment_method_label: Optional[str] = Field(None, description="Payment method display label")
    status: SubscriptionStatus = Field(
        SubscriptionStatus.ACTIVE, validate_default=True, description="Lifecycle status"
    )

    model_config = {"use_enum_values": True}

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Subscription name cannot be empty or whitespace-only")
        return stripped

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value

    @property
    def payment_method(self) -> Optional[str]:
        """Label shown to the user: the joined label, else the raw id."""
        if self.payment_method_label:
            return self.payment_method_label
        if self.payment_method_id is not None:
            return str(self.payment_method_id)
        return None


class NotificationSetting(BaseModel):
    """Per-type notification rule.

    ``advance_days`` only drives renewal reminders; expiration warnings always
    fire on the day after expiry whatever value is stored.
    """

    notification_type: NotificationType
    is_enabled: bool = True
    advance_days: int = Field(0, ge=ADVANCE_DAYS_MIN, le=ADVANCE_DAYS_MAX)
    repeat_notification: bool = False
    notification_channels: List[str] = Field(default_factory=lambda: ["telegram"])

    model_config = {"use_enum_values": True}

    @field_validator("notification_channels")
    @classmethod
    def dedupe_channels(cls, v: List[str]) -> List[str]:
        seen: List[str] = []
        for channel in v:
            name = channel.strip().lower()
            if name and name not in seen:
                seen.append(name)
        return seen


class ChannelConfig(BaseModel):
    """Persisted configuration for one delivery channel."""

    channel_type: str = Field(..., min_length=1)
    config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("last_used_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class HistoryEntry(BaseModel):
    """One notification send attempt, written once with its final status.

    ``retry_count`` and ``max_retry`` are persisted for schema compatibility
    and are never acted upon.
    """

    id: Optional[int] = None
    subscription_id: int
    notification_type: NotificationType
    channel_type: str
    status: HistoryStatus
    recipient: Optional[str] = None
    message_content: Optional[str] = None
    error_message: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    retry_count: int = 0
    max_retry: int = 3
    subscription_name: Optional[str] = Field(None, description="Joined for history listings")

    model_config = {"use_enum_values": True}

    @field_validator("scheduled_at", "sent_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_sent_at(self):
        if self.status == HistoryStatus.FAILED.value and self.sent_at is not None:
            raise ValueError("A failed attempt cannot carry sent_at")
        return self


class SchedulerSettings(BaseModel):
    """Singleton daily-check schedule."""

    check_time: str = Field(..., description="HH:MM, 24-hour")
    timezone: str = Field(..., description="IANA timezone name")
    is_enabled: bool = True
    updated_at: Optional[datetime] = None

    @field_validator("updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def schedule_key(self) -> Tuple[str, str, bool]:
        """The fields whose change forces a trigger rebuild."""
        return (self.check_time, self.timezone, self.is_enabled)


class NotificationStats(BaseModel):
    """Aggregate history counts; breakdowns map key -> {total, sent, failed}."""

    total: int = 0
    sent: int = 0
    failed: int = 0
    by_type: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    by_channel: Dict[str, Dict[str, int]] = Field(default_factory=dict)
