"""Queue message structures."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


class WishlistMessage(BaseModel):
    """Message on the QStacks queue.

    Format: {"id": "<userId>::<stockId>"}; the id doubles as the wishlist's
    storage key. Unknown fields are ignored.
    """

    id: Optional[str] = Field(None, description="Wishlist id, 'userId::stockId'")

    model_config = {"json_schema_extra": {"example": {"id": "u1::s1"}}}


@dataclass(frozen=True)
class MessageIdentifiers:
    """Identifiers derived from a validated message."""

    user_id: str
    stock_id: str
    wishlist_id: str
