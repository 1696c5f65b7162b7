"""Pipeline orchestration for wishlist notification messages."""

import time
from datetime import datetime
from typing import Callable, ContextManager, Optional, Union
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockpulse_notifier.config.models import PipelineConfig
from stockpulse_notifier.domain.exceptions import (
    FailureReason,
    InvalidRecipientError,
    NotifyFailedError,
    WishlistProcessingError,
)
from stockpulse_notifier.domain.models import Stock, User, Wishlist, mark_notified
from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.logging.context import log_context
from stockpulse_notifier.messaging import codec
from stockpulse_notifier.messaging.models import MessageIdentifiers, WishlistMessage
from stockpulse_notifier.notifications.service import Notifier
from stockpulse_notifier.persistence.database import get_session
from stockpulse_notifier.persistence.exceptions import PersistenceError
from stockpulse_notifier.persistence.repositories import WishlistRepository
from stockpulse_notifier.utils.locks import KeyedLock, LockTimeoutError
from stockpulse_notifier.utils.timestamps import utc_now

from .models import ALLOWED_TRANSITIONS, PipelineResult, PipelineState, ProcessingFailure
from .resolver import EntityResolver

logger = get_logger(__name__, component="pipeline")


class _Run:
    """State tracker for one message."""

    def __init__(self):
        self.state = PipelineState.RECEIVED
        self.wishlist_id: Optional[str] = None
        self.dispatched = False
        self.started = time.monotonic()

    def advance(self, new_state: PipelineState) -> None:
        if new_state not in ALLOWED_TRANSITIONS.get(self.state, frozenset()):
            raise ValueError(f"Illegal pipeline transition {self.state.value} -> {new_state.value}")

        logger.debug(
            f"Pipeline state {self.state.value} -> {new_state.value}",
            extra={
                "event": "pipeline.state.changed",
                "from_state": self.state.value,
                "to_state": new_state.value,
            },
        )
        self.state = new_state

    def result(self, failure: Optional[ProcessingFailure] = None) -> PipelineResult:
        return PipelineResult(
            state=self.state,
            wishlist_id=self.wishlist_id,
            failure=failure,
            dispatched=self.dispatched,
            duration_seconds=time.monotonic() - self.started,
        )


class NotificationPipeline:
    """
    Turns one wishlist message into at most one notification.

    Sequence: parse and validate the id, resolve user (and check the
    recipient), stock and wishlist, dispatch, then record notified=True.
    Business failures come back as a PipelineResult carrying a
    ProcessingFailure; process() and process_raw() do not raise for them.

    Steps from resolution to the final write run under a per-wishlist lock,
    so two deliveries of the same message are serialized. With
    skip_already_notified, the second one ends in SKIPPED.
    """

    def __init__(
        self,
        notifier: Notifier,
        pipeline_config: Optional[PipelineConfig] = None,
        lock: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = utc_now,
        session_factory: Callable[[], ContextManager[Session]] = get_session,
        resolver_factory: Callable[[Session], EntityResolver] = EntityResolver,
    ):
        """
        Initialize the pipeline.

        Args:
            notifier: Notifier used for dispatch
            pipeline_config: Skip and lock settings (defaults if None)
            lock: Keyed lock registry shared by all callers in the process
            clock: Source of the updated_at timestamp
            session_factory: Context manager yielding a database session
            resolver_factory: Builds an EntityResolver for a session
        """
        self.notifier = notifier
        self.config = pipeline_config or PipelineConfig()
        self.lock = lock or KeyedLock()
        self.clock = clock
        self.session_factory = session_factory
        self.resolver_factory = resolver_factory

    def process_raw(self, raw: Union[str, bytes]) -> PipelineResult:
        """Process a raw JSON payload from the queue."""
        run = _Run()

        with log_context(message_id=uuid4().hex):
            try:
                ids = codec.decode(raw)
            except WishlistProcessingError as e:
                return self._reject(run, e)

            return self._run(run, ids)

    def process(self, message: WishlistMessage) -> PipelineResult:
        """Process an already decoded message."""
        run = _Run()

        with log_context(message_id=uuid4().hex):
            try:
                ids = codec.validate(message)
            except WishlistProcessingError as e:
                return self._reject(run, e)

            return self._run(run, ids)

    def _run(self, run: _Run, ids: MessageIdentifiers) -> PipelineResult:
        run.wishlist_id = ids.wishlist_id
        run.advance(PipelineState.PARSED)

        with log_context(
            wishlist_id=ids.wishlist_id, user_id=ids.user_id, stock_id=ids.stock_id
        ):
            logger.info(
                f"Processing wishlist notification for ID: {ids.wishlist_id}",
                extra={"event": "pipeline.message.started"},
            )

            try:
                with self.lock.hold(ids.wishlist_id, timeout=self.config.lock_timeout_seconds):
                    result = self._process_locked(run, ids)
            except LockTimeoutError as e:
                run.advance(PipelineState.REJECTED)
                failure = ProcessingFailure(
                    reason=FailureReason.UNEXPECTED,
                    message=f"Lock timeout: {e}",
                    cause=e,
                )
                self._log_failure(run, failure)
                return run.result(failure)
            except Exception as e:
                failure = ProcessingFailure.from_exception(e)
                self._log_failure(run, failure)
                return run.result(failure)

            if result.succeeded:
                logger.info(
                    f"Successfully processed wishlist notification for ID: {ids.wishlist_id}",
                    extra={
                        "event": "pipeline.message.completed",
                        "duration_ms": int(result.duration_seconds * 1000),
                    },
                )
            return result

    def _process_locked(self, run: _Run, ids: MessageIdentifiers) -> PipelineResult:
        try:
            user, stock, wishlist = self._resolve(ids)
        except WishlistProcessingError as e:
            return self._reject(run, e)

        run.advance(PipelineState.RESOLVED)

        if wishlist.notified and self.config.skip_already_notified:
            run.advance(PipelineState.SKIPPED)
            logger.info(
                f"Wishlist {wishlist.id} already notified, skipping dispatch",
                extra={"event": "pipeline.message.skipped", "reason": "already_notified"},
            )
            return run.result()

        run.advance(PipelineState.NOTIFYING)

        try:
            run.dispatched = bool(self.notifier.dispatch(user, stock, wishlist))
            dispatch_error = None
        except Exception as e:
            dispatch_error = e

        if not run.dispatched:
            error = NotifyFailedError(
                f"Failed to send notification to user: {user.email}", cause=dispatch_error
            )
            return self._fail_notify(run, ProcessingFailure.from_exception(error))

        try:
            self._record_notified(wishlist)
        except (PersistenceError, SQLAlchemyError) as e:
            error = NotifyFailedError(
                f"Notification sent but wishlist {wishlist.id} could not be marked notified: {e}",
                cause=e,
            )
            return self._fail_notify(run, ProcessingFailure.from_exception(error))

        run.advance(PipelineState.NOTIFIED)
        logger.info(
            f"Wishlist {wishlist.id} marked as notified",
            extra={"event": "pipeline.wishlist.notified"},
        )
        return run.result()

    def _resolve(self, ids: MessageIdentifiers):
        with self.session_factory() as session:
            resolver = self.resolver_factory(session)

            user: User = resolver.get_user(ids.user_id)
            if not self.notifier.is_valid_recipient(user.email):
                raise InvalidRecipientError(f"Invalid email address for user: {ids.user_id}")

            stock: Stock = resolver.get_stock(ids.stock_id)
            wishlist: Wishlist = resolver.get_wishlist(ids.wishlist_id)

        return user, stock, wishlist

    def _record_notified(self, wishlist: Wishlist) -> None:
        now = self.clock()

        with self.session_factory() as session:
            repo = WishlistRepository(session)

            if not self.config.skip_already_notified:
                repo.upsert(mark_notified(wishlist, now))
                return

            if not repo.mark_notified_if_pending(wishlist.id, now):
                logger.warning(
                    f"Wishlist {wishlist.id} was already marked notified by another writer",
                    extra={"event": "pipeline.wishlist.already_marked"},
                )

    def _reject(self, run: _Run, error: WishlistProcessingError) -> PipelineResult:
        run.advance(PipelineState.REJECTED)
        failure = ProcessingFailure.from_exception(error)
        self._log_failure(run, failure)
        return run.result(failure)

    def _fail_notify(self, run: _Run, failure: ProcessingFailure) -> PipelineResult:
        run.advance(PipelineState.NOTIFY_FAILED)
        self._log_failure(run, failure)
        return run.result(failure)

    def _log_failure(self, run: _Run, failure: ProcessingFailure) -> None:
        logger.error(
            f"Wishlist processing failed in state {run.state.value}: {failure.message}",
            exc_info=failure.cause if failure.reason == FailureReason.UNEXPECTED else None,
            extra={
                "event": "pipeline.message.failed",
                "state": run.state.value,
                "reason": failure.reason.value,
                "entity": failure.entity,
                "entity_id": failure.entity_id,
                "dispatched": run.dispatched,
            },
        )
