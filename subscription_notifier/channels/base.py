"""Base channel class with shared functionality for all delivery channels.

This module provides the abstract base class that every channel implements.
Concrete channels raise ChannelError subclasses from their hooks; the public
methods here turn every error into a structured DispatchResult so nothing
escapes to the orchestrator.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from subscription_notifier.logging import get_logger

from .exceptions import ChannelError
from .models import DispatchResult

logger = get_logger(__name__, component="channel")


class BaseChannel(ABC):
    """Base class for all delivery channels.

    Subclasses implement:
    - is_configured(): whether credentials exist to use the channel at all
    - recipient_from_config(): extract the recipient from the persisted blob
    - _deliver(): perform the remote send
    - _verify_recipient(): optional best-effort reachability check
    - _test_message(): the fixed diagnostic message for send_test()

    Attributes:
        channel_type: Registry key for the channel (e.g. "telegram")
    """

    channel_type: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the channel has the credentials it needs to send."""

    @abstractmethod
    def recipient_from_config(self, config: Dict[str, Any]) -> Optional[str]:
        """Extract the recipient identifier from a persisted config blob."""

    @abstractmethod
    def _deliver(
        self, recipient: str, content: str, subject: Optional[str] = None
    ) -> Dict[str, Any]:
        """Send content to recipient.

        Returns:
            Channel-specific details for the DispatchResult

        Raises:
            ChannelError: On any delivery failure
        """

    def _verify_recipient(self, recipient: str) -> Dict[str, Any]:
        """Check a recipient is reachable; raise ChannelError if not."""
        return {}

    def _test_message(self) -> tuple[Optional[str], str]:
        """Return (subject, content) for the diagnostic message."""
        return None, "Subscription notifier test message"

    def send(self, recipient: str, content: str, subject: Optional[str] = None) -> DispatchResult:
        """Send a message and report the outcome without raising.

        Args:
            recipient: Channel-specific recipient identifier
            content: Rendered message body
            subject: Subject line for channels that use one

        Returns:
            DispatchResult with success or the error text
        """
        try:
            details = self._deliver(recipient, content, subject)
        except ChannelError as e:
            logger.warning(
                f"{self.channel_type} delivery failed: {e}",
                extra={
                    "event": "channel.send.failed",
                    "channel": self.channel_type,
                    "error_type": type(e).__name__,
                },
            )
            return DispatchResult.failure(str(e), recipient=recipient)
        except Exception as e:
            logger.error(
                f"Unexpected {self.channel_type} delivery error: {e}",
                exc_info=True,
                extra={
                    "event": "channel.send.failed",
                    "channel": self.channel_type,
                    "error_type": type(e).__name__,
                },
            )
            return DispatchResult.failure(str(e) or type(e).__name__, recipient=recipient)

        logger.debug(
            f"{self.channel_type} delivery succeeded",
            extra={"event": "channel.send.succeeded", "channel": self.channel_type},
        )
        return DispatchResult.ok(recipient, **(details or {}))

    def validate_recipient(self, recipient: str) -> DispatchResult:
        """Best-effort check that a recipient is reachable before it is saved."""
        try:
            details = self._verify_recipient(recipient)
        except ChannelError as e:
            return DispatchResult.failure(str(e), recipient=recipient)
        except Exception as e:
            logger.error(
                f"Unexpected error validating {self.channel_type} recipient: {e}",
                exc_info=True,
                extra={"event": "channel.validate.failed", "channel": self.channel_type},
            )
            return DispatchResult.failure(str(e) or type(e).__name__, recipient=recipient)

        return DispatchResult.ok(recipient, **(details or {}))

    def send_test(self, recipient: str) -> DispatchResult:
        """Send the fixed diagnostic message to recipient."""
        subject, content = self._test_message()
        return self.send(recipient, content, subject=subject)
