"""Dead-letter spool for messages that did not produce a notification."""

import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.pipeline.models import PipelineResult
from stockpulse_notifier.utils.timestamps import utc_now

logger = get_logger(__name__, component="queue")


class DeadLetterRecord(BaseModel):
    """One line of the dead-letter file."""

    payload: str = Field(..., description="Raw payload as received")
    state: str = Field(..., description="Pipeline state the message ended in")
    reason: Optional[str] = Field(None, description="Failure reason")
    error: Optional[str] = Field(None, description="Failure message")
    wishlist_id: Optional[str] = Field(None, description="Wishlist id, if parsed")
    failed_at: datetime = Field(..., description="When the record was written (UTC)")


class DeadLetterWriter:
    """Appends failed messages to a JSON-lines file for manual review."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def write(self, payload: Union[str, bytes], result: PipelineResult) -> DeadLetterRecord:
        if isinstance(payload, (bytes, bytearray)):
            payload = bytes(payload).decode("utf-8", errors="replace")

        record = DeadLetterRecord(
            payload=payload,
            state=result.state.value,
            reason=result.reason.value if result.reason else None,
            error=result.failure.message if result.failure else None,
            wishlist_id=result.wishlist_id,
            failed_at=utc_now(),
        )

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(record.model_dump_json() + "\n")

        logger.warning(
            f"Message written to dead-letter file {self.path}",
            extra={"event": "queue.dead_lettered", "reason": record.reason},
        )
        return record
