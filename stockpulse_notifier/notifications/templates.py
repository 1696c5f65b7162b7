"""Template rendering for email notifications using Jinja2.

This module wraps Jinja2 template rendering with caching and strict
undefined checking to catch template errors early.
"""

import logging
from typing import Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders the wishlist alert subject and bodies.

    Templates live in the stockpulse_notifier.notifications.email_templates
    package directory. Only the HTML body is autoescaped; subject and text
    body are plain text.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "wishlist_alert_subject.j2",
        text_template: str = "wishlist_alert_body.txt.j2",
        html_template: Optional[str] = "wishlist_alert_body.html.j2",
    ):
        """Initialize template renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within the notifications package
            subject_template: Filename of subject line template
            text_template: Filename of plain text body template
            html_template: Filename of HTML body template, or None to skip HTML
        """
        self.subject_template_name = subject_template
        self.text_template_name = text_template
        self.html_template_name = html_template

        self.env = Environment(
            loader=PackageLoader("stockpulse_notifier.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, context: Dict) -> Dict[str, Optional[str]]:
        """Render all email templates with the provided context.

        Args:
            context: Dictionary of template variables

        Returns:
            Dictionary containing:
            - subject: Rendered subject line (single line)
            - text_body: Rendered plain text body
            - html_body: Rendered HTML body, or None when no HTML template is set

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            # Jinja drops the template's trailing newline; the stock name is kept verbatim.
            subject = (
                self.env.get_template(self.subject_template_name)
                .render(context)
                .replace("\r", " ")
                .replace("\n", " ")
            )
            text_body = self.env.get_template(self.text_template_name).render(context).strip()

            html_body = None
            if self.html_template_name:
                html_body = self.env.get_template(self.html_template_name).render(context)

            logger.debug(f"Rendered templates for wishlist: {context.get('wishlist_id', 'unknown')}")

            return {
                "subject": subject,
                "text_body": text_body,
                "html_body": html_body,
            }

        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e
