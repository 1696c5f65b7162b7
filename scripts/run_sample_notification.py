#!/usr/bin/env python3
"""Sample notification harness for end-to-end validation.

Seeds an in-memory database from a fixture file, feeds a handful of queue
payloads through the consumer with the simulated transport, and prints a
per-message table plus the consumer totals. No SMTP server or spool file
is needed.

Usage:
    python scripts/run_sample_notification.py

    # Custom seed file and payloads
    python scripts/run_sample_notification.py --seed docs/sample_seed.yaml \
        --message '{"id": "u1::s1"}' --message '{"id": "u9::s1"}'
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stockpulse_notifier.config.models import EmailConfig
from stockpulse_notifier.logging.config import configure_logging
from stockpulse_notifier.messaging.consumer import QueueConsumer
from stockpulse_notifier.messaging.sources import InMemoryMessageSource
from stockpulse_notifier.notifications.service import Notifier
from stockpulse_notifier.notifications.transports import SimulatedTransport
from stockpulse_notifier.persistence.database import close_database, init_database
from stockpulse_notifier.persistence.seed import seed_from_yaml
from stockpulse_notifier.pipeline.runner import NotificationPipeline

DEFAULT_MESSAGES = [
    '{"id": "u1::s1"}',
    '{"id": "u2::s2"}',
    '{"id": "u1::s1"}',
    '{"id": "u3::s1"}',
    '{"id": "u9::s1"}',
    '{"id": "no-separator"}',
    "not json",
]


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run sample wishlist notifications")
    parser.add_argument(
        "--seed",
        type=Path,
        default=Path(__file__).parent.parent / "docs" / "sample_seed.yaml",
        help="Seed file with users, stocks and wishlists",
    )
    parser.add_argument(
        "--message",
        action="append",
        dest="messages",
        help="Queue payload to process (repeatable)",
    )
    args = parser.parse_args()

    configure_logging(level="WARNING", format_type="key-value", environment="sample")
    init_database("sqlite:///:memory:")

    try:
        summary = seed_from_yaml(args.seed)
        print_header("Seed")
        print(f"{summary.users} users, {summary.stocks} stocks, {summary.wishlists} wishlists")

        transport = SimulatedTransport(delay_ms=0)
        notifier = Notifier(transport=transport, email_config=EmailConfig())
        consumer = QueueConsumer(NotificationPipeline(notifier))

        source = InMemoryMessageSource(args.messages or DEFAULT_MESSAGES)
        results = []
        while True:
            raw = source.receive()
            if raw is None:
                break
            results.append((raw, consumer.consume(raw)))
            source.acknowledge(raw)

        print_header("Messages")
        width = max(len(raw) for raw, _ in results)
        for raw, result in results:
            reason = result.reason.value if result.reason else ""
            print(f"{raw:<{width}}  {result.state.value:<14} {reason}")

        print_header("Emails")
        for email in transport.sent:
            print(f"To: {email.to_address}\nSubject: {email.subject}\n{email.body}\n")

        stats = consumer.stats
        print_header("Totals")
        print(
            f"processed={stats.processed} notified={stats.notified} skipped={stats.skipped} "
            f"rejected={stats.rejected} failed={stats.failed}"
        )
        return 0
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
