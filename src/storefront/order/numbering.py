"""Order number generation.

Numbers look like ``CZ`` + the last six digits of a millisecond timestamp +
a three-digit sequence, e.g. ``CZ482913007``. The generator is monotonic
within a process: when more than a thousand numbers are requested in the
same millisecond it borrows from the next one instead of repeating.
"""

import threading
import time

PREFIX = "CZ"
_SEQUENCE_SIZE = 1000


class OrderNumberGenerator:
    def __init__(self, clock=None):
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next(self) -> str:
        with self._lock:
            now_ms = self._clock()
            if now_ms > self._last_ms:
                self._last_ms = now_ms
                self._sequence = 0
            else:
                self._sequence += 1
                if self._sequence >= _SEQUENCE_SIZE:
                    self._last_ms += 1
                    self._sequence = 0
            return f"{PREFIX}{self._last_ms % 1_000_000:06d}{self._sequence:03d}"


order_numbers = OrderNumberGenerator()


def next_order_number() -> str:
    return order_numbers.next()
