"""Queue consumer for wishlist notification messages.

Queue name: QStacks. Message format: {"id": "ABC::PQR"} where ABC is the
user id and PQR the stock id. The consumer is the boundary between a
message source and the NotificationPipeline: it feeds payloads in, logs
failures, and optionally dead-letters them. Every payload is acknowledged
whatever the outcome, so nothing is redelivered by the consumer.
"""

from dataclasses import dataclass
from typing import Optional, Union

from stockpulse_notifier.domain.exceptions import FailureReason
from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.pipeline.models import PipelineResult, PipelineState
from stockpulse_notifier.pipeline.runner import NotificationPipeline

from . import codec
from .dead_letter import DeadLetterWriter
from .models import WishlistMessage
from .sources import MessageSource

logger = get_logger(__name__, component="queue")


@dataclass
class ConsumerStats:
    """Counters for messages handled by a consumer."""

    processed: int = 0
    notified: int = 0
    skipped: int = 0
    rejected: int = 0
    failed: int = 0
    dead_lettered: int = 0

    def record(self, result: PipelineResult) -> None:
        self.processed += 1
        if result.state == PipelineState.NOTIFIED:
            self.notified += 1
        elif result.state == PipelineState.SKIPPED:
            self.skipped += 1
        elif result.state == PipelineState.REJECTED:
            self.rejected += 1
        else:
            self.failed += 1

    def merge(self, other: "ConsumerStats") -> None:
        self.processed += other.processed
        self.notified += other.notified
        self.skipped += other.skipped
        self.rejected += other.rejected
        self.failed += other.failed
        self.dead_lettered += other.dead_lettered


class QueueConsumer:
    """
    Entry points for processing wishlist messages.

    - consume(raw): a payload as it comes off the queue
    - process_message(message): an already decoded message
    - process_identifier(wishlist_id): a bare "userId::stockId"
    - drain(source): consume everything waiting in a source
    """

    def __init__(
        self,
        pipeline: NotificationPipeline,
        dead_letter: Optional[DeadLetterWriter] = None,
    ):
        self.pipeline = pipeline
        self.dead_letter = dead_letter
        self.stats = ConsumerStats()

    def consume(self, raw: Union[str, bytes]) -> PipelineResult:
        logger.info(f"Received QStacks message: {raw}", extra={"event": "queue.message.received"})
        result = self.pipeline.process_raw(raw)
        self._handle_result(raw, result)
        return result

    def process_message(self, message: WishlistMessage) -> PipelineResult:
        logger.info(
            f"Processing wishlist notification directly for ID: {message.id}",
            extra={"event": "queue.message.direct"},
        )
        result = self.pipeline.process(message)
        self._handle_result(codec.encode(message), result)
        return result

    def process_identifier(self, wishlist_id: str) -> PipelineResult:
        return self.process_message(WishlistMessage(id=wishlist_id))

    def drain(self, source: MessageSource, max_messages: Optional[int] = None) -> ConsumerStats:
        """Consume messages until the source is empty or max_messages is reached.

        Returns:
            Stats for this drain only (self.stats keeps the running totals)
        """
        before = ConsumerStats(**vars(self.stats))
        count = 0

        while max_messages is None or count < max_messages:
            raw = source.receive()
            if raw is None:
                break

            try:
                self.consume(raw)
            finally:
                source.acknowledge(raw)
            count += 1

        drained = ConsumerStats(
            **{name: getattr(self.stats, name) - value for name, value in vars(before).items()}
        )

        if count:
            logger.info(
                f"Drained {drained.processed} messages: {drained.notified} notified, "
                f"{drained.skipped} skipped, {drained.rejected} rejected, {drained.failed} failed",
                extra={
                    "event": "queue.drain.completed",
                    "processed": drained.processed,
                    "notified": drained.notified,
                    "skipped": drained.skipped,
                    "rejected": drained.rejected,
                    "failed": drained.failed,
                    "dead_lettered": drained.dead_lettered,
                },
            )
        return drained

    def _handle_result(self, raw: Union[str, bytes], result: PipelineResult) -> None:
        self.stats.record(result)

        if result.succeeded or result.state == PipelineState.SKIPPED:
            return

        if result.reason == FailureReason.UNEXPECTED:
            logger.error(
                f"Unexpected error occurred, might need retry: {raw}",
                extra={"event": "queue.message.failed", "reason": result.reason.value},
            )
        else:
            logger.warning(
                f"Business error occurred, message might need manual intervention: {raw}",
                extra={
                    "event": "queue.message.failed",
                    "reason": result.reason.value if result.reason else None,
                },
            )

        if self.dead_letter is None:
            return

        try:
            self.dead_letter.write(raw, result)
            self.stats.dead_lettered += 1
        except OSError as e:
            logger.error(
                f"Failed to write dead-letter record: {e}",
                exc_info=True,
                extra={"event": "queue.dead_letter.failed"},
            )
