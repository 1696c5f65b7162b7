"""Per-key mutual exclusion for in-process message handling."""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Optional


class LockTimeoutError(Exception):
    """Raised when a keyed lock cannot be acquired within the timeout."""

    def __init__(self, key: str, timeout: Optional[float]):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock on '{key}'")


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLock:
    """Registry of locks keyed by string.

    Two callers holding the same key are serialized; different keys proceed
    concurrently. Entries are dropped once no caller references them, so the
    registry does not grow with the number of distinct keys seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str, timeout: Optional[float] = None) -> Generator[None, None, None]:
        """Hold the lock for key for the duration of the with-block.

        Args:
            key: Lock key (e.g. a wishlist id)
            timeout: Seconds to wait; None waits forever

        Raises:
            LockTimeoutError: If the lock is not acquired in time
        """
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.holders += 1

        acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                raise LockTimeoutError(key, timeout)
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(key, None)

    def is_locked(self, key: str) -> bool:
        """Return True if some caller currently holds key."""
        with self._guard:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
