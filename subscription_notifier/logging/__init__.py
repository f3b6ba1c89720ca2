"""Structured logging helpers shared by every component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges a fixed ``component`` field into each call's extra."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        # Call-site extra wins over the adapter's defaults
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally tagging every record with a component name.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier injected into all records

    Example:
        >>> logger = get_logger(__name__, component="scheduler")
        >>> logger.info("Schedule reconciled", extra={"event": "scheduler.reconciled"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
