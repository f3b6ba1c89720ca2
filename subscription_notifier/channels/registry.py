"""String-keyed registry of delivery channels."""

import logging
from typing import Dict, Iterator, List, Optional

from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.models import AppConfig

from .base import BaseChannel
from .exceptions import ChannelConfigurationError
from .mail import EmailChannel
from .telegram import TelegramChannel

logger = logging.getLogger(__name__)


class ChannelRegistry:
    """Maps channel keys ("telegram", "email") to channel instances."""

    def __init__(self) -> None:
        self._channels: Dict[str, BaseChannel] = {}

    def register(self, channel: BaseChannel) -> None:
        """Register a channel under its channel_type.

        Raises:
            ChannelConfigurationError: If the channel has no channel_type
        """
        if not channel.channel_type:
            raise ChannelConfigurationError(
                f"{type(channel).__name__} does not declare a channel_type"
            )
        self._channels[channel.channel_type] = channel

    def get(self, channel_type: str) -> Optional[BaseChannel]:
        return self._channels.get(channel_type)

    def names(self) -> List[str]:
        return sorted(self._channels)

    def __contains__(self, channel_type: object) -> bool:
        return channel_type in self._channels

    def __iter__(self) -> Iterator[BaseChannel]:
        return iter(self._channels.values())

    def __len__(self) -> int:
        return len(self._channels)


def build_channel_registry(env_config: EnvironmentConfig, app_config: AppConfig) -> ChannelRegistry:
    """Create the registry for this process.

    Telegram is always registered so a missing token surfaces as a send
    failure rather than a silently skipped channel. Email is only registered
    when an SMTP host is configured.

    Example:
        >>> registry = build_channel_registry(env_config, app_config)
        >>> registry.get("telegram").send("12345", "hello")
    """
    registry = ChannelRegistry()

    registry.register(
        TelegramChannel(
            bot_token=env_config.telegram_bot_token,
            api_base_url=app_config.telegram.api_base_url,
            timeout=app_config.telegram.request_timeout,
            parse_mode=app_config.telegram.parse_mode,
            language=app_config.notifications.default_language,
        )
    )

    if env_config.smtp_configured:
        registry.register(EmailChannel(env_config, app_config.email))

    logger.debug(
        "Channel registry built",
        extra={"event": "channels.registry.built", "channels": registry.names()},
    )
    return registry
