"""Channel dispatcher: persisted channel config + registered channel -> send.

The dispatcher is the only component that combines a channel implementation
with its persisted recipient. Every public send-like method returns a
DispatchResult; nothing raises to the caller.
"""

from typing import Callable, ContextManager, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from subscription_notifier.domain.models import ChannelConfig
from subscription_notifier.logging import get_logger
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.exceptions import PersistenceError
from subscription_notifier.persistence.repositories import ChannelConfigRepository
from subscription_notifier.utils.timestamps import utc_now

from .base import BaseChannel
from .exceptions import ChannelConfigurationError
from .models import DispatchResult
from .registry import ChannelRegistry

logger = get_logger(__name__, component="dispatcher")


class ChannelDispatcher:
    """Uniform send/test/validate entry point over all registered channels."""

    def __init__(
        self,
        registry: ChannelRegistry,
        clock: Callable = utc_now,
        session_scope: Callable[[], ContextManager[Session]] = get_session,
    ):
        """Initialize the dispatcher.

        Args:
            registry: Registered channel implementations
            clock: Returns the current aware UTC datetime
            session_scope: Context manager factory yielding a database session
        """
        self.registry = registry
        self.clock = clock
        self.session_scope = session_scope

    def supported_channels(self) -> list:
        return self.registry.names()

    def get_channel_config(self, channel_type: str) -> Optional[ChannelConfig]:
        """Return the persisted config for a channel, active or not.

        Raises:
            PersistenceError: If the config cannot be read
        """
        with self.session_scope() as session:
            return ChannelConfigRepository(session).get(channel_type)

    def configure_channel(self, channel_type: str, config: Dict) -> ChannelConfig:
        """Create or replace a channel's config and (re)activate it.

        Raises:
            ChannelConfigurationError: If the channel is unknown or the config
                lacks a recipient
            PersistenceError: If the config cannot be written
        """
        channel = self.registry.get(channel_type)
        if channel is None:
            raise ChannelConfigurationError(f"Unsupported channel type: {channel_type}")

        if channel.recipient_from_config(config or {}) is None:
            raise ChannelConfigurationError(
                f"Configuration for {channel_type} does not contain a recipient"
            )

        with self.session_scope() as session:
            saved = ChannelConfigRepository(session).upsert(channel_type, config)

        logger.info(
            "Channel configured",
            extra={"event": "channel.configured", "channel": channel_type},
        )
        return saved

    def send(
        self, channel_type: str, content: str, subject: Optional[str] = None
    ) -> DispatchResult:
        """Send content to the channel's configured recipient.

        Returns:
            DispatchResult; ``not_configured`` is set, with no send attempted,
            when the channel is unknown, has no config, is inactive, or the
            config has no recipient
        """
        resolved = self._resolve(channel_type)
        if isinstance(resolved, DispatchResult):
            return resolved

        channel, recipient = resolved
        return channel.send(recipient, content, subject=subject)

    def test_notification(self, channel_type: str) -> DispatchResult:
        """Send the channel's diagnostic message to its configured recipient."""
        resolved = self._resolve(channel_type)
        if isinstance(resolved, DispatchResult):
            return resolved

        channel, recipient = resolved
        result = channel.send_test(recipient)

        logger.info(
            "Channel test notification finished",
            extra={
                "event": "channel.test.completed",
                "channel": channel_type,
                "success": result.success,
            },
        )
        return result

    def validate_recipient(self, channel_type: str, recipient: str) -> DispatchResult:
        """Best-effort reachability check for a recipient before it is saved."""
        channel = self.registry.get(channel_type)
        if channel is None:
            return DispatchResult.failure(f"Unsupported channel type: {channel_type}")
        return channel.validate_recipient(recipient)

    def mark_used(self, channel_type: str) -> None:
        """Stamp the channel's last_used_at; failures are logged, not raised."""
        try:
            with self.session_scope() as session:
                ChannelConfigRepository(session).touch_last_used(channel_type, self.clock())
        except PersistenceError as e:
            logger.warning(
                f"Could not update last_used_at for {channel_type}: {e}",
                extra={"event": "channel.last_used.failed", "channel": channel_type},
            )

    def _resolve(self, channel_type: str) -> Tuple[BaseChannel, str] | DispatchResult:
        channel = self.registry.get(channel_type)
        if channel is None:
            logger.info(
                f"Channel {channel_type} is not registered",
                extra={"event": "channel.not_configured", "channel": channel_type},
            )
            return DispatchResult.channel_not_configured()

        try:
            config = self.get_channel_config(channel_type)
        except PersistenceError as e:
            logger.error(
                f"Could not read config for {channel_type}: {e}",
                extra={"event": "channel.config.read_failed", "channel": channel_type},
            )
            return DispatchResult.failure(f"Failed to read channel config: {e}")

        recipient = channel.recipient_from_config(config.config) if config else None
        if config is None or not config.is_active or recipient is None:
            logger.info(
                f"Channel {channel_type} has no active configuration",
                extra={"event": "channel.not_configured", "channel": channel_type},
            )
            return DispatchResult.channel_not_configured()

        return channel, recipient
