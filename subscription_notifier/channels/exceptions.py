"""Custom exceptions for delivery channels.

None of these escape BaseChannel.send(); they are converted into a failed
DispatchResult carrying the exception message.
"""

from typing import Optional


class ChannelError(Exception):
    """Base exception for all channel errors."""

    pass


class ChannelConfigurationError(ChannelError):
    """Channel is missing credentials or was given an unusable recipient.

    Examples: no bot token, empty chat id, unsupported channel type.
    """

    pass


class ChannelHTTPError(ChannelError):
    """Remote API call failed at the HTTP level.

    ``status_code`` is 0 when no response was received (connection refused,
    DNS failure).
    """

    def __init__(self, message: str, status_code: int, method: Optional[str] = None) -> None:
        """Initialize HTTP error.

        Args:
            message: Human-readable error message (the API's description when available)
            status_code: HTTP status code, 0 for transport errors
            method: Remote API method that failed
        """
        super().__init__(message)
        self.status_code = status_code
        self.method = method


class ChannelTimeoutError(ChannelError):
    """Remote API call did not complete within the request timeout."""

    def __init__(self, message: str, method: Optional[str] = None) -> None:
        super().__init__(message)
        self.method = method


class ChannelResponseError(ChannelError):
    """Remote API answered but the payload was malformed or reported failure."""

    pass


class SMTPDeliveryError(ChannelError):
    """Raised when the SMTP exchange fails."""

    pass
