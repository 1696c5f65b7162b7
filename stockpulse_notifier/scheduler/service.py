"""Scheduler service for periodic queue polling."""

import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.messaging.consumer import ConsumerStats, QueueConsumer
from stockpulse_notifier.messaging.sources import MessageSource

logger = get_logger(__name__, component="scheduler")

POLL_JOB_ID = "queue-poll"


class SchedulerService:
    """
    Wraps APScheduler to drain the message source at configured intervals.

    Uses BackgroundScheduler to run polls in a separate thread while
    allowing the main thread to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        consumer: QueueConsumer,
        source: MessageSource,
        interval_seconds: int,
        batch_size: int = 100,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            consumer: Consumer that processes drained messages
            source: Message source to poll
            interval_seconds: Interval between polls in seconds
            batch_size: Maximum messages consumed per poll
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.consumer = consumer
        self.source = source
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping polls
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def poll(self) -> Optional[ConsumerStats]:
        """
        Drain up to batch_size messages.

        Errors are logged and swallowed so one bad poll does not stop the
        schedule; the next tick tries again.
        """
        try:
            return self.consumer.drain(self.source, max_messages=self.batch_size)
        except Exception as e:
            logger.error(
                f"Queue poll failed: {e}",
                exc_info=True,
                extra={"event": "scheduler.poll.failed", "error_type": type(e).__name__},
            )
            return None

    def start(self) -> None:
        """
        Start the scheduler and register the poll job.

        The first poll runs immediately after startup.
        """
        trigger = IntervalTrigger(
            seconds=self.interval_seconds,
            timezone=timezone.utc,
        )

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.poll,
            trigger=trigger,
            id=POLL_JOB_ID,
            name="QStacks queue poll",
            replace_existing=True,
            next_run_time=next_run,
        )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "batch_size": self.batch_size,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: If True, wait for a running poll to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> Optional[ConsumerStats]:
        """Run one poll synchronously in the current thread."""
        logger.info("Triggering immediate queue poll", extra={"event": "scheduler.trigger_now"})
        return self.poll()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(POLL_JOB_ID)
        return job.next_run_time if job else None
