"""Message sources feeding the consumer.

A source hands out raw payloads one at a time. receive() returns None when
nothing is waiting; acknowledge() tells the source the payload has been
handled and must not be delivered again.
"""

import os
import threading
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, List, Optional, Union

from stockpulse_notifier.logging import get_logger

logger = get_logger(__name__, component="queue")


class MessageSource(ABC):
    """Contract for queue intake."""

    @abstractmethod
    def receive(self) -> Optional[str]:
        """Return the next raw payload, or None if the source is empty."""

    @abstractmethod
    def acknowledge(self, raw: str) -> None:
        """Mark a received payload as handled."""

    @abstractmethod
    def pending(self) -> int:
        """Number of payloads not yet acknowledged."""


class InMemoryMessageSource(MessageSource):
    """FIFO source backed by a deque. Useful for tests and manual runs."""

    def __init__(self, payloads: Optional[Iterable[str]] = None):
        self._queue: Deque[str] = deque(payloads or [])
        self._lock = threading.Lock()
        self.acknowledged: List[str] = []

    def put(self, raw: str) -> None:
        with self._lock:
            self._queue.append(raw)

    def receive(self) -> Optional[str]:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def acknowledge(self, raw: str) -> None:
        with self._lock:
            self.acknowledged.append(raw)

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)


class JsonLinesMessageSource(MessageSource):
    """
    Spool file with one JSON payload per line.

    receive() returns the first non-blank line without removing it;
    acknowledge() removes it. A payload that is received but never
    acknowledged (e.g. the process dies mid-message) is delivered again on
    the next receive(). Rewrites go through a temp file and os.replace().
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, raw: str) -> None:
        """Enqueue a payload at the end of the spool."""
        if "\n" in raw.strip():
            raise ValueError("Payload must be a single line of JSON")

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(raw.strip() + "\n")

    def receive(self) -> Optional[str]:
        with self._lock:
            for line in self._read_lines():
                return line
        return None

    def acknowledge(self, raw: str) -> None:
        with self._lock:
            lines = self._read_lines()
            try:
                lines.remove(raw.strip())
            except ValueError:
                logger.warning(
                    f"Acknowledged payload not found in {self.path}: {raw!r}",
                    extra={"event": "queue.ack.missing"},
                )
                return
            self._write_lines(lines)

    def pending(self) -> int:
        with self._lock:
            return len(self._read_lines())

    def _read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def _write_lines(self, lines: List[str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            f.writelines(line + "\n" for line in lines)
        os.replace(tmp_path, self.path)
