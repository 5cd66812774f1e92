import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(TimeoutError):
    pass


class KeyLockRegistry:
    """
    One mutual-exclusion handle per user key.

    Handles are created on first use and kept for the lifetime of the
    registry; operations on different keys never share a handle.
    """

    def __init__(self):
        self._locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, key: int) -> threading.Lock:
        lock = self._locks.get(key)
        if lock is not None:
            return lock
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
                logger.debug("created lock for key=%s", key)
            return lock

    @contextmanager
    def hold(self, key: int, timeout: Optional[float] = None) -> Iterator[None]:
        lock = self.lock_for(key)
        if timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=timeout)
        if not acquired:
            raise LockTimeoutError(f"Timed out after {timeout}s waiting for lock on user {key}")
        try:
            yield
        finally:
            lock.release()

    def __contains__(self, key: int) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
