"""Data access layer (repositories) for persistence operations.

Repositories wrap a SQLAlchemy session and return domain models rather than
ORM rows. Point lookups return None when the record is absent; the caller
decides whether absence is an error.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockpulse_notifier.domain.models import Stock, User, Wishlist

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import StockModel, UserModel, WishlistModel, _format_datetime

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Retrieve a user by primary key.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user_id)
            return user_model.to_domain() if user_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve the first user registered with an email address."""
        try:
            stmt = select(UserModel).where(UserModel.email == email).limit(1)
            user_model = self.session.execute(stmt).scalar_one_or_none()
            return user_model.to_domain() if user_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email {email}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def upsert(self, user: User) -> User:
        """Insert a new user or overwrite the existing record."""
        try:
            merged = self.session.merge(UserModel.from_domain(user))
            self.session.flush()
            return merged.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e


class StockRepository:
    """Repository for stock lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, stock_id: str) -> Optional[Stock]:
        """Retrieve a stock by primary key.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stock_model = self.session.get(StockModel, stock_id)
            return stock_model.to_domain() if stock_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving stock {stock_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve stock: {e}") from e

    def get_by_symbol(self, symbol: str) -> Optional[Stock]:
        """Retrieve a stock by ticker symbol."""
        try:
            stmt = select(StockModel).where(StockModel.symbol == symbol).limit(1)
            stock_model = self.session.execute(stmt).scalar_one_or_none()
            return stock_model.to_domain() if stock_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving stock by symbol {symbol}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve stock: {e}") from e

    def upsert(self, stock: Stock) -> Stock:
        """Insert a new stock or overwrite the existing record."""
        try:
            merged = self.session.merge(StockModel.from_domain(stock))
            self.session.flush()
            return merged.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting stock {stock.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert stock due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting stock {stock.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert stock: {e}") from e


class WishlistRepository:
    """Repository for wishlist reads and the notified-flag write."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, wishlist_id: str) -> Optional[Wishlist]:
        """Retrieve a wishlist by its composite id ("userId::stockId").

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            wishlist_model = self.session.get(WishlistModel, wishlist_id)
            return wishlist_model.to_domain() if wishlist_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving wishlist {wishlist_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve wishlist: {e}") from e

    def get_by_user(self, user_id: str) -> List[Wishlist]:
        """Retrieve all wishlists owned by a user."""
        return self._query(
            select(WishlistModel)
            .where(WishlistModel.user_id == user_id)
            .order_by(WishlistModel.id),
            f"wishlists for user {user_id}",
        )

    def get_active_by_user(self, user_id: str) -> List[Wishlist]:
        """Retrieve a user's active wishlists."""
        return self._query(
            select(WishlistModel)
            .where(WishlistModel.user_id == user_id, WishlistModel.active.is_(True))
            .order_by(WishlistModel.id),
            f"active wishlists for user {user_id}",
        )

    def get_by_user_and_stock(self, user_id: str, stock_id: str) -> List[Wishlist]:
        """Retrieve wishlists matching both user_id and stock_id."""
        return self._query(
            select(WishlistModel)
            .where(WishlistModel.user_id == user_id, WishlistModel.stock_id == stock_id)
            .order_by(WishlistModel.id),
            f"wishlists for {user_id}/{stock_id}",
        )

    def get_active_unnotified(self) -> List[Wishlist]:
        """Retrieve active wishlists whose alert has not fired yet."""
        return self._query(
            select(WishlistModel)
            .where(WishlistModel.active.is_(True), WishlistModel.notified.is_(False))
            .order_by(WishlistModel.id),
            "active unnotified wishlists",
        )

    def upsert(self, wishlist: Wishlist) -> Wishlist:
        """Insert a new wishlist or overwrite the existing record."""
        try:
            merged = self.session.merge(WishlistModel.from_domain(wishlist))
            self.session.flush()
            return merged.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting wishlist {wishlist.id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert wishlist due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting wishlist {wishlist.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert wishlist: {e}") from e

    def mark_notified_if_pending(self, wishlist_id: str, updated_at: datetime) -> bool:
        """Set notified=True only if the wishlist is currently not notified.

        Single conditional UPDATE, so concurrent writers cannot both flip the flag.

        Args:
            wishlist_id: Composite wishlist id
            updated_at: New updated_at timestamp (UTC)

        Returns:
            True if this call flipped the flag, False if it was already set

        Raises:
            RecordNotFoundError: If the wishlist does not exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(WishlistModel)
                .where(WishlistModel.id == wishlist_id, WishlistModel.notified.is_(False))
                .values(notified=True, updated_at=_format_datetime(updated_at))
                .execution_options(synchronize_session="fetch")
            )
            result = self.session.execute(stmt)
            self.session.flush()

            if result.rowcount == 1:
                return True

            if self.session.get(WishlistModel, wishlist_id) is None:
                raise RecordNotFoundError(f"Wishlist with id {wishlist_id} not found")
            return False

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error marking wishlist {wishlist_id} notified: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark wishlist notified: {e}") from e

    def _query(self, stmt, description: str) -> List[Wishlist]:
        try:
            wishlist_models = self.session.execute(stmt).scalars().all()
            return [wishlist_model.to_domain() for wishlist_model in wishlist_models]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {description}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve {description}: {e}") from e
