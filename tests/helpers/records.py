"""Helpers for writing and reading records in the test database."""

from datetime import datetime, timezone

from stockpulse_notifier.domain.models import Stock, User, Wishlist
from stockpulse_notifier.persistence.database import get_session
from stockpulse_notifier.persistence.repositories import (
    StockRepository,
    UserRepository,
    WishlistRepository,
)

FIXED_NOW = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)


def add_records(*records):
    """Upsert users, stocks and wishlists in one session."""
    with get_session() as session:
        for record in records:
            if isinstance(record, User):
                UserRepository(session).upsert(record)
            elif isinstance(record, Stock):
                StockRepository(session).upsert(record)
            elif isinstance(record, Wishlist):
                WishlistRepository(session).upsert(record)
            else:
                raise TypeError(f"Unsupported record: {record!r}")


def load_wishlist(wishlist_id: str):
    """Read a wishlist back from the store in a fresh session."""
    with get_session() as session:
        return WishlistRepository(session).get_by_id(wishlist_id)
