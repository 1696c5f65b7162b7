"""Load users, stocks and wishlists from a YAML fixture file.

Used by the ``seed`` CLI command and the sample script to populate a local
store. Expected layout::

    users:
      - {id: u1, name: Asha, email: asha@example.com}
    stocks:
      - {id: s1, symbol: ACME, name: Acme Corp}
    wishlists:
      - {user_id: u1, stock_id: s1, rule_type: percentage_increase, rule_value_in_percent: "5%"}

A wishlist without an ``id`` gets ``user_id::stock_id``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from stockpulse_notifier.domain.models import Stock, User, Wishlist, build_wishlist_id
from stockpulse_notifier.logging import get_logger

from .database import get_session
from .exceptions import PersistenceError
from .repositories import StockRepository, UserRepository, WishlistRepository

logger = get_logger(__name__, component="database")


@dataclass
class SeedSummary:
    """Counts of records written by a seed run."""

    users: int = 0
    stocks: int = 0
    wishlists: int = 0


def seed_from_yaml(path: Path) -> SeedSummary:
    """Upsert every record in the fixture file inside one transaction.

    Raises:
        PersistenceError: If the file is unreadable or a record is invalid
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise PersistenceError(f"Failed to read seed file {path}: {e}") from e

    if not isinstance(data, dict):
        raise PersistenceError(f"Seed file {path} must contain a mapping at the top level")

    return seed_records(data)


def seed_records(data: Dict[str, Any]) -> SeedSummary:
    """Upsert users, stocks and wishlists from plain dictionaries."""
    summary = SeedSummary()

    try:
        users = [User.model_validate(item) for item in data.get("users") or []]
        stocks = [Stock.model_validate(item) for item in data.get("stocks") or []]
        wishlists = []
        for item in data.get("wishlists") or []:
            item = dict(item)
            if "id" not in item and "user_id" in item and "stock_id" in item:
                item["id"] = build_wishlist_id(item["user_id"], item["stock_id"])
            wishlists.append(Wishlist.model_validate(item))
    except ValidationError as e:
        raise PersistenceError(f"Invalid seed record: {e}") from e

    with get_session() as session:
        user_repo = UserRepository(session)
        stock_repo = StockRepository(session)
        wishlist_repo = WishlistRepository(session)

        for user in users:
            user_repo.upsert(user)
            summary.users += 1
        for stock in stocks:
            stock_repo.upsert(stock)
            summary.stocks += 1
        for wishlist in wishlists:
            wishlist_repo.upsert(wishlist)
            summary.wishlists += 1

    logger.info(
        f"Seeded {summary.users} users, {summary.stocks} stocks, {summary.wishlists} wishlists",
        extra={
            "event": "database.seeded",
            "users": summary.users,
            "stocks": summary.stocks,
            "wishlists": summary.wishlists,
        },
    )
    return summary
