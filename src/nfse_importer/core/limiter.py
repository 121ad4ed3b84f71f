"""
FIFO counting semaphore bounding simultaneous page extractions.
"""
import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Optional

from loguru import logger


class ConcurrencyLimiter:
    """
    Counting semaphore that grants queued callers in arrival order.

    ``threading.Semaphore`` makes no ordering promise, so waiters park on
    their own Event and ``release`` hands the freed slot directly to the
    oldest one.
    """

    def __init__(self, capacity: int = 4):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._available = capacity
        self._waiters: Deque[threading.Event] = deque()
        self._lock = threading.Lock()

    @property
    def in_use(self) -> int:
        with self._lock:
            return self.capacity - self._available

    @property
    def waiting(self) -> int:
        with self._lock:
            return len(self._waiters)

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Take one slot, waiting in line if none is free"""
        with self._lock:
            if self._available > 0 and not self._waiters:
                self._available -= 1
                return True
            waiter = threading.Event()
            self._waiters.append(waiter)

        if waiter.wait(timeout):
            return True

        with self._lock:
            if waiter.is_set():
                # Granted between the timeout and taking the lock
                return True
            self._waiters.remove(waiter)
        logger.debug("Limiter acquire timed out")
        return False

    def release(self):
        """Return one slot; wakes exactly one waiter if any"""
        with self._lock:
            if self._waiters:
                # Slot passes straight to the next caller, count unchanged
                self._waiters.popleft().set()
                return
            if self._available >= self.capacity:
                raise RuntimeError("release() called more times than acquire()")
            self._available += 1

    @contextmanager
    def slot(self):
        self.acquire()
        try:
            yield
        finally:
            self.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
