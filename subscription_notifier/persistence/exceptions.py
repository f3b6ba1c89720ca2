"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers such as
the selector and the orchestrator can catch storage failures in one clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialised or reached.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - get_session() called before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a row that doesn't exist.

    Lookups that may legitimately miss (a subscription by id, a channel
    config) return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations.

    Examples:
    - History row referencing a deleted subscription
    - Duplicate channel_type or notification_type
    """

    pass
