"""Processing failure taxonomy.

Every way a wishlist message can fail to produce a notification maps to one
FailureReason. The codec and resolver raise the matching exception; the
pipeline converts it into a ProcessingFailure on its result.
"""

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    """Discriminator for processing failures."""

    MALFORMED_MESSAGE = "malformed_message"
    INVALID_IDENTIFIER = "invalid_identifier"
    NOT_FOUND = "not_found"
    INVALID_RECIPIENT = "invalid_recipient"
    NOTIFY_FAILED = "notify_failed"
    UNEXPECTED = "unexpected"


class WishlistProcessingError(Exception):
    """Base exception for failures while processing a wishlist message."""

    reason: FailureReason = FailureReason.UNEXPECTED

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class MalformedMessageError(WishlistProcessingError):
    """Payload could not be decoded into a message."""

    reason = FailureReason.MALFORMED_MESSAGE


class InvalidIdentifierError(WishlistProcessingError):
    """Decoded message id is empty, lacks the separator, or has an empty half."""

    reason = FailureReason.INVALID_IDENTIFIER


class EntityNotFoundError(WishlistProcessingError):
    """A user, stock or wishlist referenced by the message does not exist."""

    reason = FailureReason.NOT_FOUND

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found with ID: {entity_id}")


class InvalidRecipientError(WishlistProcessingError):
    """The user's email address fails the recipient check."""

    reason = FailureReason.INVALID_RECIPIENT


class NotifyFailedError(WishlistProcessingError):
    """Transport reported failure, or the notified flag could not be stored."""

    reason = FailureReason.NOTIFY_FAILED
