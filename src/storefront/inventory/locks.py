"""Per-product locks serializing stock check-and-write sequences.

Product ids are locked in sorted order so that two requests touching the
same products can never deadlock on each other.
"""

import threading
from contextlib import contextmanager


class StockLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, product_id: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(product_id, threading.RLock())

    @contextmanager
    def hold(self, product_ids):
        ordered = sorted({str(product_id) for product_id in product_ids})
        acquired = []
        try:
            for product_id in ordered:
                lock = self._lock_for(product_id)
                lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()


stock_locks = StockLocks()
