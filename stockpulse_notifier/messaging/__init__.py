"""Queue intake: message format, codec and sources.

QueueConsumer and DeadLetterWriter depend on the pipeline and are imported
from stockpulse_notifier.messaging.consumer and .dead_letter directly.
"""

from . import codec
from .models import MessageIdentifiers, WishlistMessage
from .sources import InMemoryMessageSource, JsonLinesMessageSource, MessageSource

__all__ = [
    "codec",
    "WishlistMessage",
    "MessageIdentifiers",
    "MessageSource",
    "InMemoryMessageSource",
    "JsonLinesMessageSource",
]
