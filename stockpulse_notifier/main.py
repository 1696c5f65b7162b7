"""Main entry point for the Stock Pulse wishlist notifier."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from stockpulse_notifier.config.environment import EnvironmentConfig
from stockpulse_notifier.config.exceptions import ConfigurationError
from stockpulse_notifier.config.loader import load_config
from stockpulse_notifier.config.models import AppConfig, QueueConfig, QueueSourceType
from stockpulse_notifier.logging import get_logger
from stockpulse_notifier.logging.config import configure_logging
from stockpulse_notifier.logging.context import log_context
from stockpulse_notifier.messaging.consumer import QueueConsumer
from stockpulse_notifier.messaging.dead_letter import DeadLetterWriter
from stockpulse_notifier.messaging.sources import (
    InMemoryMessageSource,
    JsonLinesMessageSource,
    MessageSource,
)
from stockpulse_notifier.notifications.service import Notifier, build_transport
from stockpulse_notifier.persistence.database import (
    check_database,
    close_database,
    get_session,
    init_database,
)
from stockpulse_notifier.persistence.exceptions import PersistenceError
from stockpulse_notifier.persistence.repositories import WishlistRepository
from stockpulse_notifier.persistence.seed import seed_from_yaml
from stockpulse_notifier.pipeline.models import PipelineResult, PipelineState
from stockpulse_notifier.pipeline.runner import NotificationPipeline
from stockpulse_notifier.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")

HEALTH_MESSAGE = "Wishlist Notification Service is running"


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > environment > config file > INFO.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_source(queue_config: QueueConfig) -> MessageSource:
    """Create the message source selected by ``queue.source``."""
    if queue_config.source == QueueSourceType.MEMORY.value:
        return InMemoryMessageSource()
    return JsonLinesMessageSource(queue_config.path)


def build_consumer(app_config: AppConfig, env_config: EnvironmentConfig) -> QueueConsumer:
    """Wire notifier, pipeline and consumer from configuration."""
    notifier = Notifier(
        transport=build_transport(app_config.email, env_config),
        email_config=app_config.email,
    )
    pipeline = NotificationPipeline(notifier, pipeline_config=app_config.pipeline)

    dead_letter = None
    if app_config.dead_letter.enabled:
        dead_letter = DeadLetterWriter(app_config.dead_letter.path)

    return QueueConsumer(pipeline, dead_letter=dead_letter)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockpulse-notifier",
        description="Stock Pulse wishlist notifier - sends alerts for triggered wishlist rules",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Process a single message and exit")
    target = process.add_mutually_exclusive_group(required=True)
    target.add_argument("--json", dest="payload", help='Raw queue payload, e.g. \'{"id": "u1::s1"}\'')
    target.add_argument("--wishlist-id", help="Wishlist id in the form userId::stockId")

    drain = subparsers.add_parser("drain", help="Consume every waiting message and exit")
    drain.add_argument(
        "--max", dest="max_messages", type=int, default=None, help="Stop after N messages"
    )

    subparsers.add_parser("run", help="Poll the queue on the configured interval")
    subparsers.add_parser("pending", help="List active wishlists not yet notified")
    subparsers.add_parser("health", help="Check configuration and database connectivity")

    seed = subparsers.add_parser("seed", help="Load users, stocks and wishlists from YAML")
    seed.add_argument("path", type=Path, help="Seed file")

    return parser


def _report(result: PipelineResult) -> int:
    if result.succeeded:
        print(f"Wishlist notification processed successfully for ID: {result.wishlist_id}")
        return 0
    if result.state == PipelineState.SKIPPED:
        print(f"Wishlist {result.wishlist_id} already notified; nothing sent")
        return 0

    reason = result.reason.value if result.reason else "unknown"
    message = result.failure.message if result.failure else ""
    print(
        f"Error processing wishlist notification ({result.state.value}, {reason}): {message}",
        file=sys.stderr,
    )
    return 1


def _run_daemon(
    consumer: QueueConsumer, source: MessageSource, app_config: AppConfig, start_time: float
) -> int:
    shutdown_event = threading.Event()

    scheduler_service = SchedulerService(
        consumer=consumer,
        source=source,
        interval_seconds=app_config.queue.poll_interval_seconds,
        batch_size=app_config.queue.batch_size,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )

    # Let an in-flight poll finish before the database is closed.
    scheduler_service.shutdown(wait=True)

    stats = consumer.stats
    logger.info(
        "Stock Pulse notifier stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
            "processed": stats.processed,
            "notified": stats.notified,
            "failed": stats.failed + stats.rejected,
        },
    )
    return 0


def main(argv=None) -> int:
    """
    Main entry point for the Stock Pulse wishlist notifier.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    start_time = time.time()
    args = _build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Stock Pulse notifier starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
            },
        )

        init_database(
            env_config.database_url, timeout_seconds=app_config.advanced.database_timeout_seconds
        )

        try:
            return _dispatch_command(args, app_config, env_config, start_time)
        finally:
            close_database()

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except PersistenceError as e:
        print(f"Database Error: {e}", file=sys.stderr)
        logger.error(
            f"Database error: {e}",
            extra={"event": "database.error", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            exc_info=True,
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        return 1


def _dispatch_command(
    args: argparse.Namespace,
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    start_time: float,
) -> int:
    if args.command == "health":
        if not check_database():
            print("Database check failed", file=sys.stderr)
            return 1
        print(HEALTH_MESSAGE)
        return 0

    if args.command == "seed":
        summary = seed_from_yaml(args.path)
        print(
            f"Seeded {summary.users} users, {summary.stocks} stocks, "
            f"{summary.wishlists} wishlists"
        )
        return 0

    if args.command == "pending":
        with get_session() as session:
            wishlists = WishlistRepository(session).get_active_unnotified()
        for wishlist in wishlists:
            print(f"{wishlist.id}\t{wishlist.rule_type or '-'}\t{wishlist.rule_value_in_percent or '-'}")
        print(f"{len(wishlists)} pending wishlists", file=sys.stderr)
        return 0

    consumer = build_consumer(app_config, env_config)

    if args.command == "process":
        with log_context(run_id="manual"):
            if args.payload is not None:
                result = consumer.consume(args.payload)
            else:
                result = consumer.process_identifier(args.wishlist_id)
        return _report(result)

    source = build_source(app_config.queue)

    if args.command == "drain":
        stats = consumer.drain(source, max_messages=args.max_messages)
        print(
            f"Processed {stats.processed} messages: {stats.notified} notified, "
            f"{stats.skipped} skipped, {stats.rejected} rejected, {stats.failed} failed"
        )
        return 0 if stats.rejected + stats.failed == 0 else 1

    return _run_daemon(consumer, source, app_config, start_time)


if __name__ == "__main__":
    sys.exit(main())
