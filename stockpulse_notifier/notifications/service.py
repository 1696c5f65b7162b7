"""Notifier for wishlist alerts.

This module provides the Notifier class that turns a resolved
(user, stock, wishlist) triple into an email: rule description, template
rendering, and delivery through a transport with optional retry/backoff.
"""

import logging
import time
from typing import Callable, Optional

from stockpulse_notifier.config.environment import EnvironmentConfig
from stockpulse_notifier.config.exceptions import ConfigurationError
from stockpulse_notifier.config.models import EmailConfig, TransportType
from stockpulse_notifier.domain.models import RuleType, Stock, User, Wishlist
from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.logging.context import log_context

from .payloads import build_notification_context
from .templates import TemplateRenderer
from .transports import NotificationTransport, SimulatedTransport, SMTPTransport

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0
DEFAULT_RULE_DESCRIPTION = "meeting your criteria"


class Notifier:
    """Sends the alert email for a wishlist.

    Dispatch never raises: rendering errors, transport errors and transport
    refusals all come back as False. The notifier does not touch the
    wishlist; recording the notified flag is the pipeline's job.
    """

    def __init__(
        self,
        transport: Optional[NotificationTransport] = None,
        email_config: Optional[EmailConfig] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notifier.

        Args:
            transport: Delivery back-end (SimulatedTransport if None)
            email_config: Retry settings (defaults: no retry)
            template_renderer: Template renderer (creates default if None)
            sleep: Sleep function used between retries
            logger_instance: Logger instance (uses module logger if None)
        """
        self.email_config = email_config or EmailConfig()
        self.transport = transport or SimulatedTransport(
            delay_ms=self.email_config.simulated_delay_ms
        )
        self.template_renderer = template_renderer or TemplateRenderer()
        self._sleep = sleep
        self.logger = logger_instance or logger

    @staticmethod
    def is_valid_recipient(email: Optional[str]) -> bool:
        """Coarse address check: non-blank, has '@' and '.', longer than 5 chars."""
        if email is None or not email.strip():
            return False

        return "@" in email and "." in email and len(email) > 5

    @staticmethod
    def describe_rule(wishlist: Wishlist) -> str:
        """Describe the wishlist rule for the email body.

        percentage_increase -> "up by <value>", percentage_drop -> "down by
        <value>", anything else -> "meeting your criteria". Rule type matching
        ignores case.
        """
        rule_type = (wishlist.rule_type or "").lower()
        rule_value = wishlist.rule_value_in_percent

        if rule_type == RuleType.PERCENTAGE_INCREASE.value:
            return f"up by {rule_value}"
        if rule_type == RuleType.PERCENTAGE_DROP.value:
            return f"down by {rule_value}"
        return DEFAULT_RULE_DESCRIPTION

    def dispatch(self, user: User, stock: Stock, wishlist: Wishlist) -> bool:
        """Render and send the alert email.

        Args:
            user: Recipient (email already checked by the caller)
            stock: Watched stock
            wishlist: Wishlist that triggered the alert

        Returns:
            True if the transport accepted the email, False otherwise
        """
        with log_context(wishlist_id=wishlist.id, user_id=user.id, stock_id=stock.id):
            try:
                context = build_notification_context(
                    user, stock, wishlist, self.describe_rule(wishlist)
                )
                rendered = self.template_renderer.render(context)
            except Exception as e:
                self.logger.error(
                    f"Failed to prepare notification for {user.name} ({user.email}): {e}",
                    exc_info=True,
                    extra={"event": "notification.render.failure"},
                )
                return False

            self.logger.info(
                f"Preparing email notification to {user.name} ({user.email}): "
                f"{rendered['subject']}",
                extra={"event": "notification.prepared", "transport": self.transport.name},
            )

            max_attempts = self.email_config.max_retries + 1

            for attempt in range(1, max_attempts + 1):
                if attempt > 1:
                    delay = self.email_config.retry_initial_delay * (
                        self.email_config.retry_backoff_multiplier ** (attempt - 2)
                    )
                    delay = min(delay, MAX_RETRY_DELAY_SECONDS)
                    self.logger.warning(
                        f"Retrying delivery to {user.email} (attempt {attempt}/{max_attempts}) "
                        f"after {delay:.1f}s delay",
                        extra={"event": "notification.send.attempt", "attempt": attempt},
                    )
                    self._sleep(delay)

                try:
                    accepted = self.transport.send(
                        user.email,
                        rendered["subject"],
                        rendered["text_body"],
                        html_body=rendered["html_body"],
                    )
                    error = None if accepted else "transport refused the message"
                except Exception as e:
                    accepted = False
                    error = f"{type(e).__name__}: {e}"

                if accepted:
                    self.logger.info(
                        f"Email notification sent successfully to {user.email} "
                        f"(attempts: {attempt})",
                        extra={"event": "notification.send.success", "attempt": attempt},
                    )
                    return True

                retry_remaining = attempt < max_attempts
                log = self.logger.warning if retry_remaining else self.logger.error
                log(
                    f"Failed to send email notification to {user.name} ({user.email}) "
                    f"(attempt {attempt}/{max_attempts}): {error}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "retry_remaining": retry_remaining,
                    },
                )

            return False


def build_transport(
    email_config: EmailConfig, env_config: Optional[EnvironmentConfig] = None
) -> NotificationTransport:
    """Create the transport selected by ``email.transport``.

    Raises:
        ConfigurationError: If smtp is selected without SMTP settings
    """
    if email_config.transport == TransportType.SMTP.value:
        if env_config is None or not env_config.smtp_host or not env_config.smtp_port:
            raise ConfigurationError(
                "SMTP transport selected but SMTP settings are missing",
                errors=["SMTP_HOST and SMTP_PORT must be set when email.transport is 'smtp'"],
                suggestions=[
                    "Set SMTP_HOST and SMTP_PORT in your .env file",
                    "Or set email.transport to 'simulated' in config.yaml",
                ],
            )
        return SMTPTransport(
            env_config,
            use_tls=email_config.use_tls,
            timeout=email_config.send_timeout_seconds,
        )

    return SimulatedTransport(delay_ms=email_config.simulated_delay_ms)
