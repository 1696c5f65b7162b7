"""Point lookups of the records a message refers to."""

from sqlalchemy.orm import Session

from stockpulse_notifier.domain.exceptions import EntityNotFoundError
from stockpulse_notifier.domain.models import Stock, User, Wishlist
from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.persistence.repositories import (
    StockRepository,
    UserRepository,
    WishlistRepository,
)

logger = get_logger(__name__, component="resolver")


class EntityResolver:
    """
    Fetches users, stocks and wishlists by primary key.

    Absence is an error here (EntityNotFoundError), unlike the repositories
    which return None. Store errors propagate unchanged; there is no retry.
    """

    def __init__(self, session: Session):
        self.users = UserRepository(session)
        self.stocks = StockRepository(session)
        self.wishlists = WishlistRepository(session)

    def get_user(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise EntityNotFoundError("user", user_id)
        logger.debug(f"Found user: {user.name} ({user.email})")
        return user

    def get_stock(self, stock_id: str) -> Stock:
        stock = self.stocks.get_by_id(stock_id)
        if stock is None:
            raise EntityNotFoundError("stock", stock_id)
        logger.debug(f"Found stock: {stock.name}")
        return stock

    def get_wishlist(self, wishlist_id: str) -> Wishlist:
        wishlist = self.wishlists.get_by_id(wishlist_id)
        if wishlist is None:
            raise EntityNotFoundError("wishlist", wishlist_id)
        logger.debug(
            f"Found wishlist: {wishlist.id} with rule type: {wishlist.rule_type}"
        )
        return wishlist
