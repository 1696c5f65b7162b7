"""End-to-end tests: seed file, spool file, consumer, pipeline and store.

Uses a file-backed SQLite database and the simulated transport, so the only
mocked piece is the SMTP server (never contacted here).
"""

import threading
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest

from stockpulse_notifier.config.environment import EnvironmentConfig
from stockpulse_notifier.config.models import EmailConfig, PipelineConfig
from stockpulse_notifier.messaging.consumer import QueueConsumer
from stockpulse_notifier.messaging.dead_letter import DeadLetterRecord, DeadLetterWriter
from stockpulse_notifier.messaging.sources import JsonLinesMessageSource
from stockpulse_notifier.notifications.service import Notifier
from stockpulse_notifier.notifications.smtp_client import SMTPClient
from stockpulse_notifier.notifications.transports import SimulatedTransport, SMTPTransport
from stockpulse_notifier.persistence.database import close_database, init_database
from stockpulse_notifier.persistence.seed import seed_from_yaml
from stockpulse_notifier.pipeline.models import PipelineState
from stockpulse_notifier.pipeline.runner import NotificationPipeline

from tests.helpers import FIXED_NOW, load_wishlist

SAMPLE_SEED = Path(__file__).resolve().parents[2] / "docs" / "sample_seed.yaml"


@pytest.fixture
def file_database(tmp_path):
    init_database(f"sqlite:///{tmp_path / 'stockpulse.db'}")
    seed_from_yaml(SAMPLE_SEED)
    yield
    close_database()


@pytest.fixture
def spool(tmp_path):
    return JsonLinesMessageSource(tmp_path / "qstacks.jsonl")


def build(transport, pipeline_config=None, dead_letter=None):
    notifier = Notifier(transport=transport, email_config=EmailConfig(), sleep=lambda s: None)
    pipeline = NotificationPipeline(
        notifier, pipeline_config=pipeline_config, clock=lambda: FIXED_NOW
    )
    return QueueConsumer(pipeline, dead_letter=dead_letter)


def test_drain_mixed_queue(file_database, spool, tmp_path):
    transport = SimulatedTransport(delay_ms=0)
    dead_letter = DeadLetterWriter(tmp_path / "dead.jsonl")
    consumer = build(transport, dead_letter=dead_letter)

    for payload in [
        '{"id": "u1::s1"}',
        '{"id": "u2::s2"}',
        '{"id": "u3::s1"}',
        '{"id": "u1::s404"}',
        "{not json",
        '{"id": "u1::s1"}',
    ]:
        spool.append(payload)

    stats = consumer.drain(spool)

    assert spool.pending() == 0
    assert (stats.processed, stats.notified, stats.skipped) == (6, 2, 1)
    assert (stats.rejected, stats.failed, stats.dead_lettered) == (3, 0, 3)

    assert [email.to_address for email in transport.sent] == [
        "asha@example.com",
        "ben@example.com",
    ]
    assert "is up by 5%" in transport.sent[0].body
    assert "is down by 10%" in transport.sent[1].body

    assert load_wishlist("u1::s1").notified is True
    assert load_wishlist("u1::s1").updated_at == FIXED_NOW
    assert load_wishlist("u2::s2").notified is True
    assert load_wishlist("u3::s1").notified is False

    records = [
        DeadLetterRecord.model_validate_json(line)
        for line in (tmp_path / "dead.jsonl").read_text().splitlines()
    ]
    assert [record.reason for record in records] == [
        "invalid_recipient",
        "not_found",
        "malformed_message",
    ]


def test_renotify_mode_sends_again(file_database, spool):
    transport = SimulatedTransport(delay_ms=0)
    consumer = build(transport, pipeline_config=PipelineConfig(skip_already_notified=False))

    spool.append('{"id": "u1::s1"}')
    spool.append('{"id": "u1::s1"}')
    stats = consumer.drain(spool)

    assert stats.notified == 2
    assert len(transport.sent) == 2


def test_unacknowledged_message_is_redelivered(file_database, spool):
    transport = SimulatedTransport(delay_ms=0)
    consumer = build(transport)
    spool.append('{"id": "u1::s1"}')

    # Process without acknowledging, as if the process died mid-message.
    consumer.consume(spool.receive())
    stats = consumer.drain(spool)

    assert stats.skipped == 1
    assert len(transport.sent) == 1


def test_concurrent_consumers_notify_once(file_database):
    transport = SimulatedTransport(delay_ms=20)
    consumer = build(transport)
    results = []

    def worker():
        results.append(consumer.consume('{"id": "u1::s1"}'))

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    states = [result.state for result in results]
    assert states.count(PipelineState.NOTIFIED) == 1
    assert states.count(PipelineState.SKIPPED) == 4
    assert len(transport.sent) == 1


def test_smtp_failure_leaves_wishlist_pending(file_database, spool):
    smtp = MagicMock()
    smtp.send_message.side_effect = OSError("connection reset")
    transport = SMTPTransport(
        EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=587),
        smtp_client=SMTPClient(smtp_factory=Mock(return_value=smtp)),
    )
    consumer = build(transport)

    spool.append('{"id": "u1::s1"}')
    stats = consumer.drain(spool)

    assert stats.failed == 1
    assert load_wishlist("u1::s1").notified is False
    smtp.quit.assert_called_once()
