"""Decoding and structural validation of queue messages.

Both functions are pure: no I/O, no logging side effects beyond debug output.
"""

import logging
from typing import Union

from pydantic import ValidationError

from stockpulse_notifier.domain.exceptions import InvalidIdentifierError, MalformedMessageError
from stockpulse_notifier.domain.models import WISHLIST_ID_SEPARATOR

from .models import MessageIdentifiers, WishlistMessage

logger = logging.getLogger(__name__)


def parse(raw: Union[str, bytes]) -> WishlistMessage:
    """Decode a raw JSON payload into a WishlistMessage.

    A payload without an ``id`` decodes to ``id=None``; validate() rejects it.

    Args:
        raw: JSON text, e.g. '{"id": "u1::s1"}'

    Returns:
        Decoded message

    Raises:
        MalformedMessageError: If the payload is not a JSON object with a string id
    """
    if not isinstance(raw, (str, bytes, bytearray)):
        raise MalformedMessageError(
            f"Invalid message format: expected JSON text, got {type(raw).__name__}"
        )

    try:
        return WishlistMessage.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid message format: {raw!r}", cause=e) from e


def validate(message: WishlistMessage) -> MessageIdentifiers:
    """Check the message id and split it into user and stock ids.

    The id is split on the first separator only, so a stock id may itself
    contain "::". Halves are returned as they appear in the id so that
    ``user_id + "::" + stock_id == wishlist_id`` always holds; whitespace is
    only considered when checking for empty halves.

    Args:
        message: Decoded message

    Returns:
        MessageIdentifiers(user_id, stock_id, wishlist_id)

    Raises:
        InvalidIdentifierError: If the id is missing, blank, lacks "::" or has an empty half
    """
    if message is None:
        raise InvalidIdentifierError("Message is null")

    wishlist_id = message.id

    if wishlist_id is None or not wishlist_id.strip():
        raise InvalidIdentifierError("Message ID is null or empty")

    if WISHLIST_ID_SEPARATOR not in wishlist_id:
        raise InvalidIdentifierError(
            "Invalid message ID format. Expected format: 'userId::stockId', "
            f"got: {wishlist_id}"
        )

    user_id, stock_id = wishlist_id.split(WISHLIST_ID_SEPARATOR, 1)

    if not user_id.strip():
        raise InvalidIdentifierError(f"User ID is null or empty in message: {wishlist_id}")

    if not stock_id.strip():
        raise InvalidIdentifierError(f"Stock ID is null or empty in message: {wishlist_id}")

    logger.debug(
        f"Message validated - wishlist: {wishlist_id}, user: {user_id}, stock: {stock_id}"
    )
    return MessageIdentifiers(user_id=user_id, stock_id=stock_id, wishlist_id=wishlist_id)


def decode(raw: Union[str, bytes]) -> MessageIdentifiers:
    """parse() followed by validate()."""
    return validate(parse(raw))


def encode(message: WishlistMessage) -> str:
    """Serialize a message back to its wire form."""
    return message.model_dump_json()
