"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the users, stocks and wishlists
collections and the conversions between ORM rows and domain models.

Wishlists reference users and stocks by id equality only; there are no
foreign-key constraints because the three collections are owned by
different writers.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, Float, Index, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from stockpulse_notifier.domain.models import Stock, User, Wishlist
from stockpulse_notifier.utils.timestamps import format_timestamp, parse_iso_datetime

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for the users table."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True, nullable=False)
    name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)
    phone = Column(String(64), nullable=True)
    password_hash = Column(Text, nullable=True)

    # Timestamps (stored as ISO 8601 strings)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_users_email", "email"),)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            password_hash=self.password_hash,
            created_at=_parse_datetime(self.created_at),
            updated_at=_parse_datetime(self.updated_at),
        )

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            password_hash=user.password_hash,
            created_at=_format_datetime(user.created_at),
            updated_at=_format_datetime(user.updated_at),
        )


class StockModel(Base):
    """ORM model for the stocks table."""

    __tablename__ = "stocks"

    id = Column(String(255), primary_key=True, nullable=False)
    symbol = Column(String(64), nullable=True)
    name = Column(String(255), nullable=False)
    current_price = Column(Float, nullable=True)
    exchange = Column(String(64), nullable=True)
    sector = Column(String(255), nullable=True)

    __table_args__ = (Index("idx_stocks_symbol", "symbol"),)

    def to_domain(self) -> Stock:
        return Stock(
            id=self.id,
            symbol=self.symbol,
            name=self.name,
            current_price=self.current_price,
            exchange=self.exchange,
            sector=self.sector,
        )

    @classmethod
    def from_domain(cls, stock: Stock) -> "StockModel":
        return cls(
            id=stock.id,
            symbol=stock.symbol,
            name=stock.name,
            current_price=stock.current_price,
            exchange=stock.exchange,
            sector=stock.sector,
        )


class WishlistModel(Base):
    """ORM model for the wishlists table.

    Keyed by the composite natural key "userId::stockId".
    """

    __tablename__ = "wishlists"

    id = Column(String(512), primary_key=True, nullable=False)
    user_id = Column(String(255), nullable=False)
    stock_id = Column(String(255), nullable=False)

    # Rule definition
    rule_type = Column(String(64), nullable=True)
    rule_value_in_percent = Column(String(32), nullable=True)
    rate_value_targeted = Column(Float, nullable=True)
    rule_value_at_set = Column(Float, nullable=True)

    # Timestamps (stored as ISO 8601 strings)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    # State flags
    active = Column(Boolean, nullable=False, default=True)
    notified = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_wishlists_user", "user_id"),
        Index("idx_wishlists_user_stock", "user_id", "stock_id"),
        Index("idx_wishlists_pending", "active", "notified"),
    )

    def to_domain(self) -> Wishlist:
        return Wishlist(
            id=self.id,
            user_id=self.user_id,
            stock_id=self.stock_id,
            rule_type=self.rule_type,
            rule_value_in_percent=self.rule_value_in_percent,
            rate_value_targeted=self.rate_value_targeted,
            rule_value_at_set=self.rule_value_at_set,
            created_at=_parse_datetime(self.created_at),
            updated_at=_parse_datetime(self.updated_at),
            active=bool(self.active),
            notified=bool(self.notified),
        )

    @classmethod
    def from_domain(cls, wishlist: Wishlist) -> "WishlistModel":
        return cls(
            id=wishlist.id,
            user_id=wishlist.user_id,
            stock_id=wishlist.stock_id,
            rule_type=wishlist.rule_type,
            rule_value_in_percent=wishlist.rule_value_in_percent,
            rate_value_targeted=wishlist.rate_value_targeted,
            rule_value_at_set=wishlist.rule_value_at_set,
            created_at=_format_datetime(wishlist.created_at),
            updated_at=_format_datetime(wishlist.updated_at),
            active=wishlist.active,
            notified=wishlist.notified,
        )


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601 UTC string with Z suffix for storage."""
    if dt is None:
        return None
    return format_timestamp(dt, include_microseconds=True)


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back to an aware UTC datetime."""
    return parse_iso_datetime(dt_str)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
