"""Persistence layer for users, stocks and wishlists.

Public API:
    # Database initialization and session management
    - init_database(database_url: str, timeout_seconds: int = 30) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine
    - check_database() -> bool

    # Repository classes
    - UserRepository, StockRepository, WishlistRepository

    # Seeding
    - seed_from_yaml(path) -> SeedSummary

Example usage:
    >>> from stockpulse_notifier.persistence import init_database, get_session, WishlistRepository
    >>> init_database("sqlite:///./data/stockpulse.db")
    >>> with get_session() as session:
    ...     wishlist = WishlistRepository(session).get_by_id("u1::s1")
"""

from .database import check_database, close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import StockRepository, UserRepository, WishlistRepository
from .seed import SeedSummary, seed_from_yaml, seed_records

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "check_database",
    # Repositories
    "UserRepository",
    "StockRepository",
    "WishlistRepository",
    # Seeding
    "SeedSummary",
    "seed_from_yaml",
    "seed_records",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
