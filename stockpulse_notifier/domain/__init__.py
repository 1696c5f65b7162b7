"""Domain models and failure taxonomy for the wishlist notifier."""

from .exceptions import (
    EntityNotFoundError,
    FailureReason,
    InvalidIdentifierError,
    InvalidRecipientError,
    MalformedMessageError,
    NotifyFailedError,
    WishlistProcessingError,
)
from .models import (
    WISHLIST_ID_SEPARATOR,
    RuleType,
    Stock,
    User,
    Wishlist,
    build_wishlist_id,
    mark_notified,
)

__all__ = [
    # Records
    "User",
    "Stock",
    "Wishlist",
    "RuleType",
    "WISHLIST_ID_SEPARATOR",
    "build_wishlist_id",
    "mark_notified",
    # Failures
    "FailureReason",
    "WishlistProcessingError",
    "MalformedMessageError",
    "InvalidIdentifierError",
    "EntityNotFoundError",
    "InvalidRecipientError",
    "NotifyFailedError",
]
