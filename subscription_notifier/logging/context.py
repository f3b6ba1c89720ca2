"""Context propagation for structured logging.

Fields pushed here (run_id, subscription_id, notification_type, channel, ...)
are merged into every log record emitted inside the scope. Context is stored
in a ContextVar, so a scheduled check on the scheduler thread and a manual
check on a caller thread never see each other's fields.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently in scope."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge fields into the current logging context.

    Args:
        **kwargs: Fields to add; existing keys are overwritten

    Returns:
        Token for pop_log_context() to restore the previous state

    Example:
        >>> token = push_log_context(run_id="abc123", subscription_id=7)
        >>> # ... every record now carries run_id and subscription_id ...
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the logging context captured by push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field (used by tests)."""
    LogContextVar.set({})


class log_context:
    """Context manager for scoped logging fields.

    Example:
        >>> with log_context(run_id="abc123", channel="telegram"):
        ...     logger.info("Dispatching")  # includes run_id and channel
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False
