"""Unit tests for the Notifier.

Tests:
- Recipient check boundaries
- Rule descriptions
- Dispatch through the transport (subject/body text)
- Failure handling (refusal, exceptions, template errors)
- Retry with backoff when enabled
- Transport selection
"""

from unittest.mock import Mock

import pytest

from stockpulse_notifier.config.environment import EnvironmentConfig
from stockpulse_notifier.config.exceptions import ConfigurationError
from stockpulse_notifier.config.models import EmailConfig
from stockpulse_notifier.domain.models import Stock, Wishlist
from stockpulse_notifier.notifications.models import NotificationTemplateError, SMTPDeliveryError
from stockpulse_notifier.notifications.service import Notifier, build_transport
from stockpulse_notifier.notifications.transports import SimulatedTransport, SMTPTransport


def make_wishlist(rule_type, value="5%"):
    return Wishlist(
        id="u1::s1",
        user_id="u1",
        stock_id="s1",
        rule_type=rule_type,
        rule_value_in_percent=value,
    )


class TestIsValidRecipient:
    @pytest.mark.parametrize(
        "email,expected",
        [
            ("a@b.co", True),
            ("asha@example.com", True),
            ("nodomain", False),
            ("", False),
            ("   ", False),
            (None, False),
            ("a@b", False),
            ("a@b.c", False),  # length 5
            ("ab.cde", False),  # no @
        ],
    )
    def test_boundaries(self, email, expected):
        assert Notifier.is_valid_recipient(email) is expected


class TestDescribeRule:
    @pytest.mark.parametrize(
        "rule_type,expected",
        [
            ("percentage_increase", "up by 5%"),
            ("PERCENTAGE_INCREASE", "up by 5%"),
            ("Percentage_Increase", "up by 5%"),
            ("percentage_drop", "down by 5%"),
            ("PERCENTAGE_DROP", "down by 5%"),
            ("target_price", "meeting your criteria"),
            ("", "meeting your criteria"),
            (None, "meeting your criteria"),
        ],
    )
    def test_descriptions(self, rule_type, expected):
        assert Notifier.describe_rule(make_wishlist(rule_type)) == expected

    def test_value_is_used_verbatim(self):
        assert Notifier.describe_rule(make_wishlist("percentage_drop", "12.5 %")) == "down by 12.5 %"


class TestDispatch:
    def test_successful_dispatch(self, notifier, transport, sample_user, sample_stock, sample_wishlist):
        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is True

        assert len(transport.sent) == 1
        email = transport.sent[0]
        assert email.to_address == "asha@example.com"
        assert email.subject == "Stock Alert - Acme Corp"
        assert email.body == (
            "Your wishlisted stock Acme Corp is up by 5%. Please buy the stock quickly, "
            "before price drops or rises. Thank you for choosing Stock Pulse."
        )
        assert "Acme Corp" in email.html_body

    @pytest.mark.parametrize(
        "name, subject",
        [
            ("Acme ", "Stock Alert - Acme "),
            ("  Acme", "Stock Alert -   Acme"),
            ("", "Stock Alert - "),
        ],
    )
    def test_subject_keeps_stock_name_verbatim(
        self, notifier, transport, sample_user, sample_wishlist, name, subject
    ):
        assert notifier.dispatch(sample_user, Stock(id="s1", name=name), sample_wishlist) is True

        assert transport.sent[0].subject == subject

    def test_transport_refusal_returns_false(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.return_value = False
        notifier = Notifier(transport=transport)

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is False
        transport.send.assert_called_once()

    def test_transport_exception_returns_false(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.side_effect = SMTPDeliveryError("connection refused")
        notifier = Notifier(transport=transport)

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is False

    def test_unexpected_exception_returns_false(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.side_effect = RuntimeError("boom")
        notifier = Notifier(transport=transport)

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is False

    def test_template_error_returns_false(self, transport, sample_user, sample_stock, sample_wishlist):
        renderer = Mock()
        renderer.render.side_effect = NotificationTemplateError("missing variable")
        notifier = Notifier(transport=transport, template_renderer=renderer)

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is False
        assert len(transport.sent) == 0

    def test_no_retry_by_default(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.return_value = False
        sleep = Mock()
        notifier = Notifier(transport=transport, sleep=sleep)

        notifier.dispatch(sample_user, sample_stock, sample_wishlist)

        assert transport.send.call_count == 1
        sleep.assert_not_called()

    def test_retry_with_backoff(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.side_effect = [SMTPDeliveryError("down"), False, True]
        sleep = Mock()
        notifier = Notifier(
            transport=transport,
            email_config=EmailConfig(
                max_retries=3, retry_initial_delay=1.0, retry_backoff_multiplier=2.0
            ),
            sleep=sleep,
        )

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is True
        assert transport.send.call_count == 3
        assert [call.args[0] for call in sleep.call_args_list] == [1.0, 2.0]

    def test_retries_exhausted(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.return_value = False
        notifier = Notifier(
            transport=transport,
            email_config=EmailConfig(max_retries=2, retry_initial_delay=0.0),
            sleep=Mock(),
        )

        assert notifier.dispatch(sample_user, sample_stock, sample_wishlist) is False
        assert transport.send.call_count == 3

    def test_retry_delay_is_capped(self, sample_user, sample_stock, sample_wishlist):
        transport = Mock()
        transport.name = "mock"
        transport.send.return_value = False
        sleep = Mock()
        notifier = Notifier(
            transport=transport,
            email_config=EmailConfig(
                max_retries=4, retry_initial_delay=60.0, retry_backoff_multiplier=5.0
            ),
            sleep=sleep,
        )

        notifier.dispatch(sample_user, sample_stock, sample_wishlist)
        assert max(call.args[0] for call in sleep.call_args_list) == 60.0

    def test_default_transport_is_simulated(self):
        notifier = Notifier()
        assert isinstance(notifier.transport, SimulatedTransport)
        assert notifier.transport.delay_ms == 100


class TestBuildTransport:
    def test_simulated(self):
        transport = build_transport(EmailConfig(simulated_delay_ms=5))
        assert isinstance(transport, SimulatedTransport)
        assert transport.delay_ms == 5

    def test_smtp(self):
        env = EnvironmentConfig(smtp_host="smtp.test.com", smtp_port=587)
        transport = build_transport(
            EmailConfig(transport="smtp", use_tls=False, send_timeout_seconds=10), env
        )
        assert isinstance(transport, SMTPTransport)
        assert transport.use_tls is False
        assert transport.timeout == 10

    def test_smtp_without_settings(self):
        with pytest.raises(ConfigurationError, match="SMTP"):
            build_transport(EmailConfig(transport="smtp"), EnvironmentConfig())
