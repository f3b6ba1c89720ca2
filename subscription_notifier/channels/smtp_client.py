"""SMTP transport for the email channel.

One SMTPClient is bound to one server (host, port, credentials, TLS mode).
Each send opens a fresh connection, delivers a single message and closes it;
the daily check sends few enough mail that pooling buys nothing.
"""

import smtplib
import ssl
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, Iterator, List, Optional

from email_validator import EmailNotValidError, validate_email

from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.logging import get_logger

from .exceptions import ChannelConfigurationError, SMTPDeliveryError

logger = get_logger(__name__, component="smtp")

IMPLICIT_TLS_PORT = 465
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class SMTPServer:
    """Connection settings for one SMTP server."""

    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True

    @property
    def implicit_tls(self) -> bool:
        return self.port == IMPLICIT_TLS_PORT

    @property
    def authenticates(self) -> bool:
        return bool(self.username and self.password)


class SMTPClient:
    """Delivers EmailMessages to a single SMTP server.

    Port 465 connects with implicit TLS. Any other port connects in plain
    text and upgrades with STARTTLS when the server settings ask for TLS.
    Connection factories are injectable so tests never open sockets.
    """

    def __init__(
        self,
        server: SMTPServer,
        timeout: int = DEFAULT_TIMEOUT,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.server = server
        self.timeout = timeout
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    @classmethod
    def from_environment(cls, env_config: EnvironmentConfig, use_tls: bool = True, **kwargs) -> "SMTPClient":
        """Build a client for the server named by SMTP_HOST/SMTP_PORT/SMTP_USER/SMTP_PASS."""
        return cls(
            SMTPServer(
                host=env_config.smtp_host or "",
                port=env_config.smtp_port,
                username=env_config.smtp_user,
                password=env_config.smtp_pass,
                use_tls=use_tls,
            ),
            **kwargs,
        )

    def send(self, message: EmailMessage) -> None:
        """Deliver one message.

        Raises:
            SMTPDeliveryError: If the server cannot be reached or refuses the message
        """
        if not self.server.host:
            raise ChannelConfigurationError("SMTP server not configured")

        try:
            with self._connection() as smtp:
                smtp.send_message(message)
        except smtplib.SMTPException as e:
            logger.error(
                f"SMTP server rejected message: {e}",
                extra={"event": "smtp.send.rejected", "smtp_host": self.server.host},
            )
            raise SMTPDeliveryError(f"SMTP delivery failed: {e}") from e
        except OSError as e:
            logger.error(
                f"Could not reach SMTP server {self.server.host}:{self.server.port}: {e}",
                extra={"event": "smtp.connect.failed", "smtp_host": self.server.host},
            )
            raise SMTPDeliveryError(
                f"Could not reach SMTP server {self.server.host}:{self.server.port}: {e}"
            ) from e

        logger.debug(
            "Email handed to SMTP server",
            extra={"event": "smtp.send.succeeded", "recipients": message["To"]},
        )

    @contextmanager
    def _connection(self) -> Iterator[smtplib.SMTP]:
        """Open, secure and authenticate a connection; always close it afterwards."""
        server = self.server
        if server.implicit_tls:
            smtp = self.smtp_ssl_factory(
                server.host,
                server.port,
                context=ssl.create_default_context(),
                timeout=self.timeout,
            )
        else:
            smtp = self.smtp_factory(server.host, server.port, timeout=self.timeout)

        try:
            if server.use_tls and not server.implicit_tls:
                smtp.starttls(context=ssl.create_default_context())
            if server.authenticates:
                smtp.login(server.username, server.password)
            yield smtp
        finally:
            try:
                smtp.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.debug(f"Ignoring error while closing SMTP connection: {e}")


def parse_recipients(recipient_string: Optional[str]) -> List[str]:
    """Split a comma-separated address list and normalize each address.

    Raises:
        ChannelConfigurationError: If an address is malformed or the list is empty
    """
    recipients = []
    for candidate in (recipient_string or "").split(","):
        candidate = candidate.strip()
        if not candidate:
            continue
        try:
            recipients.append(validate_email(candidate, check_deliverability=False).normalized)
        except EmailNotValidError as e:
            raise ChannelConfigurationError(f"Invalid email address '{candidate}': {e}") from e

    if not recipients:
        raise ChannelConfigurationError("Email address is required")
    return recipients


def build_sender_address(env_config: EnvironmentConfig, sender_name: str) -> str:
    """'Name <address>' using SMTP_USER when it is an address, else noreply@SMTP_HOST."""
    if env_config.smtp_user and "@" in env_config.smtp_user:
        address = env_config.smtp_user
    else:
        address = f"noreply@{env_config.smtp_host}"
    return f"{sender_name} <{address}>"
