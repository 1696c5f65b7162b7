"""Exceptions and records for the notification components."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when the SMTP server rejects or cannot receive a message."""

    pass


@dataclass(frozen=True)
class SentEmail:
    """Record of an email accepted by a transport.

    Attributes:
        to_address: Recipient address as passed to the transport
        subject: Rendered subject line
        body: Plain text body
        html_body: HTML alternative, if one was rendered
    """

    to_address: str
    subject: str
    body: str
    html_body: Optional[str] = None
