"""Template context for wishlist alert emails."""

from typing import Dict

from stockpulse_notifier.domain.models import Stock, User, Wishlist


def build_notification_context(
    user: User, stock: Stock, wishlist: Wishlist, rule_description: str
) -> Dict:
    """Build the template context for one wishlist alert.

    Every key the templates reference is always present (possibly None),
    since the renderer runs with StrictUndefined.

    Args:
        user: Recipient
        stock: Stock the wishlist watches
        wishlist: Wishlist that triggered the alert
        rule_description: Output of Notifier.describe_rule()

    Returns:
        Dictionary with keys:
        - stock_name, stock_symbol, current_price, exchange: Stock metadata
        - user_name, user_email: Recipient metadata
        - rule_description, rule_type, rule_value_in_percent: Rule text
        - wishlist_id: Composite wishlist key
    """
    return {
        "stock_name": stock.name,
        "stock_symbol": stock.symbol,
        "current_price": stock.current_price,
        "exchange": stock.exchange,
        "user_name": user.name,
        "user_email": user.email,
        "rule_description": rule_description,
        "rule_type": wishlist.rule_type,
        "rule_value_in_percent": wishlist.rule_value_in_percent,
        "wishlist_id": wishlist.id,
    }
