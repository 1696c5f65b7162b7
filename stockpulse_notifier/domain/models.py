"""Core domain models for users, stocks, and wishlists.

This module defines the records the notification pipeline reads and writes:
- User: account owning wishlists (read-only here)
- Stock: listed instrument (read-only here)
- Wishlist: a user's alert rule on one stock, keyed by "userId::stockId"
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from stockpulse_notifier.utils.timestamps import ensure_utc

WISHLIST_ID_SEPARATOR = "::"


class RuleType(str, Enum):
    """Known wishlist rule types. Stored values are free-form strings."""

    PERCENTAGE_INCREASE = "percentage_increase"
    PERCENTAGE_DROP = "percentage_drop"


def build_wishlist_id(user_id: str, stock_id: str) -> str:
    """Compose the wishlist natural key from its parts."""
    return f"{user_id}{WISHLIST_ID_SEPARATOR}{stock_id}"


class User(BaseModel):
    """Account record owned by the identity subsystem."""

    id: str = Field(..., min_length=1, description="Unique user code")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Notification address")
    phone: Optional[str] = Field(None, description="Phone number")
    password_hash: Optional[str] = Field(None, description="Opaque password hash")
    created_at: Optional[datetime] = Field(None, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last update time (UTC)")

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    model_config = {"json_schema_extra": {"example": {
        "id": "u1",
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "+91-9000000000",
        "password_hash": "$2b$12$...",
        "created_at": "2025-11-01T12:00:00Z",
        "updated_at": "2025-11-01T12:00:00Z",
    }}}


class Stock(BaseModel):
    """Listed stock."""

    id: str = Field(..., min_length=1, description="Unique stock code")
    symbol: Optional[str] = Field(None, description="Ticker symbol")
    name: str = Field(..., description="Company name shown in alerts")
    current_price: Optional[float] = Field(None, description="Last known price")
    exchange: Optional[str] = Field(None, description="Listing exchange")
    sector: Optional[str] = Field(None, description="Industry sector")

    model_config = {"json_schema_extra": {"example": {
        "id": "s1",
        "symbol": "ACME",
        "name": "Acme Corp",
        "current_price": 2500.0,
        "exchange": "NSE",
        "sector": "Industrials",
    }}}


class Wishlist(BaseModel):
    """A user's standing alert rule on one stock.

    The id is the composite natural key "userId::stockId" and must agree with
    user_id and stock_id. The notified flag flips to True once the alert has
    been dispatched; the pipeline is the only writer of that flag.
    """

    id: str = Field(..., description="Composite key userId::stockId")
    user_id: str = Field(..., min_length=1, description="Owning user id")
    stock_id: str = Field(..., min_length=1, description="Watched stock id")
    rule_type: Optional[str] = Field(None, description="percentage_increase, percentage_drop, ...")
    rule_value_in_percent: Optional[str] = Field(None, description="Display value such as '5%'")
    rate_value_targeted: Optional[float] = Field(None, description="Target price")
    rule_value_at_set: Optional[float] = Field(
        None, description="Stock price when the rule was set or last updated"
    )
    created_at: Optional[datetime] = Field(None, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last update time (UTC)")
    active: bool = Field(True, description="Whether prices are tracked for this rule")
    notified: bool = Field(False, description="Whether the alert has already fired")

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_composite_id(self):
        expected = build_wishlist_id(self.user_id, self.stock_id)
        if self.id != expected:
            raise ValueError(
                f"Wishlist id '{self.id}' does not match user_id/stock_id (expected '{expected}')"
            )
        return self

    model_config = {"json_schema_extra": {"example": {
        "id": "u1::s1",
        "user_id": "u1",
        "stock_id": "s1",
        "rule_type": "percentage_increase",
        "rule_value_in_percent": "5%",
        "rate_value_targeted": 2500.0,
        "rule_value_at_set": 2200.0,
        "created_at": "2025-11-01T12:00:00Z",
        "updated_at": "2025-11-01T12:00:00Z",
        "active": True,
        "notified": False,
    }}}


def mark_notified(wishlist: Wishlist, now: datetime) -> Wishlist:
    """Return the notified variant of a wishlist, leaving the input untouched.

    Args:
        wishlist: Wishlist as fetched from the store
        now: Timestamp of the successful dispatch

    Returns:
        Copy with notified=True and updated_at=now (UTC)
    """
    return wishlist.model_copy(update={"notified": True, "updated_at": ensure_utc(now)})
