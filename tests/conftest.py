"""Shared fixtures: in-memory database, seeded records and a quiet notifier."""

import logging
from datetime import datetime, timezone

import pytest

from stockpulse_notifier.config.models import EmailConfig
from stockpulse_notifier.domain.models import Stock, User, Wishlist
from stockpulse_notifier.logging.context import clear_log_context
from stockpulse_notifier.notifications.service import Notifier
from stockpulse_notifier.notifications.transports import SimulatedTransport
from stockpulse_notifier.persistence.database import close_database, init_database
from stockpulse_notifier.pipeline.runner import NotificationPipeline
from tests.helpers import FIXED_NOW, add_records


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def temp_database():
    """Create a temporary in-memory database for testing."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def sample_user():
    return User(id="u1", name="Asha Rao", email="asha@example.com")


@pytest.fixture
def sample_stock():
    return Stock(
        id="s1",
        symbol="ACME",
        name="Acme Corp",
        current_price=2512.4,
        exchange="NSE",
        sector="Industrials",
    )


@pytest.fixture
def sample_wishlist():
    return Wishlist(
        id="u1::s1",
        user_id="u1",
        stock_id="s1",
        rule_type="percentage_increase",
        rule_value_in_percent="5%",
        rate_value_targeted=2500.0,
        rule_value_at_set=2380.0,
        created_at=datetime(2025, 11, 1, 9, 0, 0, tzinfo=timezone.utc),
        updated_at=datetime(2025, 11, 1, 9, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def seeded_database(temp_database, sample_user, sample_stock, sample_wishlist):
    """In-memory database holding u1, s1 and wishlist u1::s1."""
    add_records(sample_user, sample_stock, sample_wishlist)
    yield


@pytest.fixture
def transport():
    """Simulated transport without the artificial delay."""
    return SimulatedTransport(delay_ms=0)


@pytest.fixture
def notifier(transport):
    return Notifier(transport=transport, email_config=EmailConfig(), sleep=lambda s: None)


@pytest.fixture
def pipeline(notifier):
    return NotificationPipeline(notifier, clock=lambda: FIXED_NOW)


@pytest.fixture
def restore_root_logger():
    """configure_logging replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
