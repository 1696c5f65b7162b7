"""Data models for pipeline execution tracking and reporting."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from stockpulse_notifier.domain.exceptions import FailureReason, WishlistProcessingError


class PipelineState(str, Enum):
    """States a message moves through while being processed."""

    RECEIVED = "received"
    PARSED = "parsed"
    RESOLVED = "resolved"
    NOTIFYING = "notifying"
    NOTIFIED = "notified"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    NOTIFY_FAILED = "notify_failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[PipelineState] = frozenset(
    {
        PipelineState.NOTIFIED,
        PipelineState.SKIPPED,
        PipelineState.REJECTED,
        PipelineState.NOTIFY_FAILED,
    }
)

ALLOWED_TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.RECEIVED: frozenset({PipelineState.PARSED, PipelineState.REJECTED}),
    PipelineState.PARSED: frozenset({PipelineState.RESOLVED, PipelineState.REJECTED}),
    PipelineState.RESOLVED: frozenset(
        {PipelineState.NOTIFYING, PipelineState.SKIPPED, PipelineState.REJECTED}
    ),
    PipelineState.NOTIFYING: frozenset({PipelineState.NOTIFIED, PipelineState.NOTIFY_FAILED}),
}


@dataclass
class ProcessingFailure:
    """
    Why a message did not end in NOTIFIED or SKIPPED.

    Attributes:
        reason: Failure discriminator
        message: Human-readable description
        entity: "user", "stock" or "wishlist" for NOT_FOUND failures
        entity_id: Id that was looked up for NOT_FOUND failures
        cause: Underlying exception, if any
    """

    reason: FailureReason
    message: str
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ProcessingFailure":
        """Build a failure from a raised exception.

        Taxonomy exceptions keep their own reason; anything else is UNEXPECTED
        with the exception kept as cause.
        """
        if isinstance(exc, WishlistProcessingError):
            return cls(
                reason=exc.reason,
                message=exc.message,
                entity=getattr(exc, "entity", None),
                entity_id=getattr(exc, "entity_id", None),
                cause=exc.cause,
            )

        return cls(
            reason=FailureReason.UNEXPECTED,
            message=f"Unexpected error: {type(exc).__name__}: {exc}",
            cause=exc,
        )


@dataclass
class PipelineResult:
    """
    Outcome of processing one message.

    Attributes:
        state: Final state (a terminal state, or the state an unexpected error aborted in)
        wishlist_id: Wishlist id when the message got far enough to carry one
        failure: Failure details, None on NOTIFIED and SKIPPED
        dispatched: Whether the transport accepted the email
        duration_seconds: Wall time spent on the message
    """

    state: PipelineState
    wishlist_id: Optional[str] = None
    failure: Optional[ProcessingFailure] = None
    dispatched: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """True only when the notification was sent and recorded."""
        return self.state == PipelineState.NOTIFIED

    @property
    def reason(self) -> Optional[FailureReason]:
        return self.failure.reason if self.failure else None
