"""
Tests for the FIFO concurrency limiter.
"""
import threading
import time
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nfse_importer.core import ConcurrencyLimiter


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.001)


class TestConcurrencyLimiter(unittest.TestCase):

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            ConcurrencyLimiter(0)

    def test_never_exceeds_capacity(self):
        """At most ``capacity`` holders at any instant"""
        limiter = ConcurrencyLimiter(2)
        counter_lock = threading.Lock()
        state = {"active": 0, "max": 0}

        def work():
            with limiter.slot():
                with counter_lock:
                    state["active"] += 1
                    state["max"] = max(state["max"], state["active"])
                time.sleep(0.01)
                with counter_lock:
                    state["active"] -= 1

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        self.assertLessEqual(state["max"], 2)
        self.assertEqual(limiter.in_use, 0)

    def test_waiters_granted_in_arrival_order(self):
        limiter = ConcurrencyLimiter(1)
        limiter.acquire()
        order = []

        def waiter(index):
            limiter.acquire()
            order.append(index)
            limiter.release()

        threads = []
        for i in range(4):
            t = threading.Thread(target=waiter, args=(i,))
            t.start()
            threads.append(t)
            wait_until(lambda: limiter.waiting == i + 1)

        limiter.release()
        for t in threads:
            t.join(5)

        self.assertEqual(order, [0, 1, 2, 3])
        self.assertEqual(limiter.in_use, 0)

    def test_acquire_timeout(self):
        """A timed-out waiter leaves the queue and takes no slot"""
        limiter = ConcurrencyLimiter(1)
        self.assertTrue(limiter.acquire())
        self.assertFalse(limiter.acquire(timeout=0.05))
        self.assertEqual(limiter.waiting, 0)

        limiter.release()
        self.assertEqual(limiter.in_use, 0)
        self.assertTrue(limiter.acquire(timeout=0))

    def test_release_without_acquire(self):
        limiter = ConcurrencyLimiter(1)
        with self.assertRaises(RuntimeError):
            limiter.release()

    def test_context_manager_releases_on_error(self):
        limiter = ConcurrencyLimiter(1)
        with self.assertRaises(ValueError):
            with limiter:
                self.assertEqual(limiter.in_use, 1)
                raise ValueError("boom")
        self.assertEqual(limiter.in_use, 0)


if __name__ == '__main__':
    unittest.main()
