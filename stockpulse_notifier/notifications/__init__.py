"""Email notifications for triggered wishlists.

- Notifier: rule description, rendering and delivery with optional retry
- Transports: SimulatedTransport (log only) and SMTPTransport
- TemplateRenderer: Jinja2-based subject/body rendering
- SMTPClient: smtplib wrapper with TLS/SSL support
"""

from .models import (
    NotificationError,
    NotificationTemplateError,
    SentEmail,
    SMTPDeliveryError,
)
from .payloads import build_notification_context
from .service import Notifier, build_transport
from .smtp_client import SMTPClient, build_sender_address, normalize_address
from .templates import TemplateRenderer
from .transports import NotificationTransport, SimulatedTransport, SMTPTransport

__all__ = [
    # Main service
    "Notifier",
    "build_transport",
    # Transports
    "NotificationTransport",
    "SimulatedTransport",
    "SMTPTransport",
    "SentEmail",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    # Components
    "TemplateRenderer",
    "SMTPClient",
    # Utilities
    "build_notification_context",
    "build_sender_address",
    "normalize_address",
]
