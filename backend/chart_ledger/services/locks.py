"""Keyed mutual exclusion for ledger writes.

One lock per key (``entry:<id>`` or ``patient:<id>``), created on demand and
dropped when no caller holds or waits on it.
"""
import logging
import threading
from contextlib import contextmanager

from chart_ledger.errors import StorageError

logger = logging.getLogger(__name__)


class KeyedLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, users]

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            slot = self._locks.setdefault(key, [threading.Lock(), 0])
            slot[1] += 1
            return slot[0]

    def _release(self, key: str) -> None:
        with self._guard:
            slot = self._locks[key]
            slot[1] -= 1
            if slot[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: str, timeout: float):
        """Hold the lock for ``key``; raise StorageError if not acquired within ``timeout``."""
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning("Timed out after %.1fs waiting for %s", timeout, key)
                raise StorageError(f"Timed out waiting for concurrent write on {key}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._release(key)

    def active_keys(self) -> list[str]:
        with self._guard:
            return list(self._locks)


ledger_locks = KeyedLockRegistry()
