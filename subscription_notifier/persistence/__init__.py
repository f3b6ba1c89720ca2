"""Persistence layer for database operations using SQLite.

This module provides the public API for database operations including:
- Database initialization, default seeding and connection management
- Repository classes for subscriptions, settings, channels, history and preferences
- Custom exceptions for error handling

Example usage:
    >>> from subscription_notifier.persistence import init_database, get_session
    >>> from subscription_notifier.persistence import NotificationHistoryRepository
    >>>
    >>> init_database("sqlite:///./data/subscriptions.db")
    >>>
    >>> with get_session() as session:
    ...     stats = NotificationHistoryRepository(session).get_stats()
"""

from .database import close_database, get_engine, get_session, init_database, seed_defaults

from .repositories import (
    ChannelConfigRepository,
    NotificationHistoryRepository,
    NotificationSettingRepository,
    SchedulerSettingsRepository,
    SubscriptionRepository,
    UserPreferenceRepository,
)

from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "seed_defaults",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "SubscriptionRepository",
    "NotificationSettingRepository",
    "ChannelConfigRepository",
    "NotificationHistoryRepository",
    "SchedulerSettingsRepository",
    "UserPreferenceRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
