"""Test helper utilities for the wishlist notifier tests."""

from .records import FIXED_NOW, add_records, load_wishlist

__all__ = ["FIXED_NOW", "add_records", "load_wishlist"]
