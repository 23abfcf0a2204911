"""In-process counter store.

Same semantics as RedisCounterStore behind a single lock. Only valid for a
single-instance deployment (and tests); multiple workers must share Redis.
"""

import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Sequence

from domain.admission.ports import CounterStorePort, WindowLimit


class InMemoryCounterStore(CounterStorePort):
    """Sliding-window counters in a dict of deques."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: Dict[str, Deque[float]] = defaultdict(deque)

    def _trim(self, key: str, now: float, window_seconds: int) -> Deque[float]:
        events = self._events[key]
        cutoff = now - window_seconds
        while events and events[0] <= cutoff:
            events.popleft()
        return events

    def acquire(self, limits: Sequence[WindowLimit], now: Optional[float] = None) -> Optional[WindowLimit]:
        now = now if now is not None else time.time()
        with self._lock:
            for limit in limits:
                if len(self._trim(limit.key, now, limit.window_seconds)) >= limit.limit:
                    return limit
            for limit in limits:
                self._events[limit.key].append(now)
        return None

    def count(self, key: str, window_seconds: int, now: Optional[float] = None) -> int:
        """Current count for a key (test and ops helper)."""
        now = now if now is not None else time.time()
        with self._lock:
            return len(self._trim(key, now, window_seconds))

    def reset(self) -> None:
        with self._lock:
            self._events.clear()

    def ping(self) -> bool:
        return True
