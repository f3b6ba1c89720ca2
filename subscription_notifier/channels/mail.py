"""Email channel delivering plain-text messages over SMTP."""

from email.message import EmailMessage
from typing import Any, Dict, Optional

from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.models import EmailConfig
from subscription_notifier.utils.timestamps import format_timestamp, utc_now

from .base import BaseChannel
from .exceptions import ChannelConfigurationError
from .smtp_client import SMTPClient, build_sender_address, parse_recipients

DEFAULT_SUBJECT = "Subscription notification"


class EmailChannel(BaseChannel):
    """Channel sending rendered templates as plain-text email.

    The recipient is stored in the channel config as ``{"email": "..."}``
    and may hold several comma-separated addresses. Recipient validation is
    syntax-only; SMTP servers don't reliably answer reachability questions.
    """

    channel_type = "email"

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        smtp_client: Optional[SMTPClient] = None,
    ) -> None:
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.smtp_client = smtp_client or SMTPClient.from_environment(
            env_config, use_tls=self.email_config.use_tls
        )

    def is_configured(self) -> bool:
        return self.env_config.smtp_configured

    def recipient_from_config(self, config: Dict[str, Any]) -> Optional[str]:
        email = config.get("email") if config else None
        if not email or not str(email).strip():
            return None
        return str(email).strip()

    def _deliver(
        self, recipient: str, content: str, subject: Optional[str] = None
    ) -> Dict[str, Any]:
        if not self.is_configured():
            raise ChannelConfigurationError("SMTP server not configured")

        recipients = parse_recipients(recipient)

        message = EmailMessage()
        message["Subject"] = subject or DEFAULT_SUBJECT
        message["From"] = build_sender_address(
            self.env_config,
            self.env_config.smtp_sender_name or self.email_config.sender_name,
        )
        message["To"] = ", ".join(recipients)
        message.set_content(content)

        self.smtp_client.send(message)
        return {"recipients": recipients, "timestamp": format_timestamp(utc_now())}

    def _verify_recipient(self, recipient: str) -> Dict[str, Any]:
        return {"recipients": parse_recipients(recipient)}

    def _test_message(self) -> tuple[Optional[str], str]:
        return (
            "Subscription notifier test message",
            "This is a test message from the subscription notifier.\n\n"
            "If you received it, your email notifications are configured correctly.\n\n"
            f"Sent at: {format_timestamp(utc_now())}",
        )
