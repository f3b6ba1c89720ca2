"""Result types for channel operations."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

NOT_CONFIGURED_ERROR = "Channel not configured"


@dataclass
class DispatchResult:
    """Outcome of a send, recipient validation or test send.

    Attributes:
        success: Whether the remote side accepted the request
        error: Error text when success is False
        not_configured: True when nothing was attempted because the channel
            is unknown, unconfigured or inactive
        recipient: Recipient the attempt was addressed to, if resolved
        details: Channel-specific payload (message id, chat info, bot info)
    """

    success: bool
    error: Optional[str] = None
    not_configured: bool = False
    recipient: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, recipient: Optional[str] = None, **details: Any) -> "DispatchResult":
        return cls(success=True, recipient=recipient, details=details)

    @classmethod
    def failure(cls, error: str, recipient: Optional[str] = None) -> "DispatchResult":
        return cls(success=False, error=error, recipient=recipient)

    @classmethod
    def channel_not_configured(cls, error: str = NOT_CONFIGURED_ERROR) -> "DispatchResult":
        return cls(success=False, error=error, not_configured=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
