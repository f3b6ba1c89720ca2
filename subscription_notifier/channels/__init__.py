"""Delivery channels and the dispatcher that routes messages to them."""

from .base import BaseChannel
from .dispatcher import ChannelDispatcher
from .exceptions import (
    ChannelConfigurationError,
    ChannelError,
    ChannelHTTPError,
    ChannelResponseError,
    ChannelTimeoutError,
    SMTPDeliveryError,
)
from .mail import EmailChannel
from .models import NOT_CONFIGURED_ERROR, DispatchResult
from .registry import ChannelRegistry, build_channel_registry
from .smtp_client import SMTPClient, SMTPServer, build_sender_address, parse_recipients
from .telegram import TelegramChannel

__all__ = [
    "BaseChannel",
    "TelegramChannel",
    "EmailChannel",
    "ChannelRegistry",
    "build_channel_registry",
    "ChannelDispatcher",
    "DispatchResult",
    "NOT_CONFIGURED_ERROR",
    "SMTPClient",
    "SMTPServer",
    "build_sender_address",
    "parse_recipients",
    # Exceptions
    "ChannelError",
    "ChannelConfigurationError",
    "ChannelHTTPError",
    "ChannelTimeoutError",
    "ChannelResponseError",
    "SMTPDeliveryError",
]
