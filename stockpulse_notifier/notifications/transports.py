"""Email transports.

A transport accepts one rendered email and reports whether it was handed
off. SimulatedTransport logs the email instead of sending it; SMTPTransport
delivers through an SMTP server.
"""

import time
from abc import ABC, abstractmethod
from collections import deque
from email.message import EmailMessage
from typing import Callable, Deque, Optional

from stockpulse_notifier.config.environment import EnvironmentConfig
from stockpulse_notifier.logging import get_logger

from .models import SentEmail
from .smtp_client import SMTPClient, build_sender_address, normalize_address

logger = get_logger(__name__, component="notification")


class NotificationTransport(ABC):
    """Contract for email delivery back-ends."""

    name: str = "transport"

    @abstractmethod
    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> bool:
        """Deliver one email.

        Returns:
            True if the email was accepted, False otherwise. Implementations
            may also raise; callers treat an exception as a failed attempt.
        """


class SimulatedTransport(NotificationTransport):
    """Logs emails instead of sending them.

    Sleeps for a fixed delay to stand in for network latency. The most
    recent emails are kept in ``sent`` for inspection.
    """

    name = "simulated"

    def __init__(
        self,
        delay_ms: int = 100,
        sleep: Callable[[float], None] = time.sleep,
        history_size: int = 100,
    ):
        self.delay_ms = delay_ms
        self._sleep = sleep
        self.sent: Deque[SentEmail] = deque(maxlen=history_size)

    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> bool:
        if self.delay_ms:
            self._sleep(self.delay_ms / 1000.0)

        logger.info("=== EMAIL SIMULATION ===", extra={"event": "notification.simulated"})
        logger.info(f"TO: {to_address}")
        logger.info(f"SUBJECT: {subject}")
        logger.info(f"BODY: {body}")
        logger.info("========================")

        self.sent.append(
            SentEmail(to_address=to_address, subject=subject, body=body, html_body=html_body)
        )
        return True


class SMTPTransport(NotificationTransport):
    """Delivers emails through SMTP using settings from the environment."""

    name = "smtp"

    def __init__(
        self,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        timeout: float = 30,
        smtp_client: Optional[SMTPClient] = None,
    ):
        self.env_config = env_config
        self.use_tls = use_tls
        self.timeout = timeout
        self.smtp_client = smtp_client or SMTPClient()

    def build_message(
        self,
        to_address: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> EmailMessage:
        """Build a multipart message (plain text plus optional HTML alternative).

        Raises:
            ValueError: If the recipient address is not valid
        """
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = build_sender_address(self.env_config)
        message["To"] = normalize_address(to_address)

        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        return message

    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> bool:
        """Send via SMTP.

        Raises:
            ValueError: If the recipient address is not valid
            SMTPDeliveryError: If the server rejects the message or is unreachable
        """
        message = self.build_message(to_address, subject, body, html_body)
        self.smtp_client.send(message, self.env_config, self.use_tls, self.timeout)
        return True
