"""Counter Store Port - shared, atomic rate-limit counters.

The admission controller evaluates several limiters per submission. The
store must evaluate all of them and, only when none is exhausted, count
the attempt against every one of them, as a single atomic operation.
Two concurrent callers may never both observe the last free slot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class WindowLimit:
    """One limiter evaluated for one submission.

    Attributes:
        name: Limiter name (pair, sender, fallback, network)
        key: Counter key (dimension already hashed)
        limit: Maximum admitted attempts within the window
        window_seconds: Rolling window length
    """
    name: str
    key: str
    limit: int
    window_seconds: int


class CounterStoreUnavailable(Exception):
    """Counter store could not be reached or returned an error."""
    pass


class CounterStorePort(ABC):
    """Atomic multi-window check-and-increment."""

    @abstractmethod
    def acquire(self, limits: Sequence[WindowLimit], now: Optional[float] = None) -> Optional[WindowLimit]:
        """Count one attempt against every limit if none is exhausted.

        Args:
            limits: Limiters to evaluate, in reporting order
            now: Epoch seconds (defaults to current time)

        Returns:
            None when the attempt was admitted and counted everywhere;
            otherwise the first exhausted WindowLimit (nothing counted).

        Raises:
            CounterStoreUnavailable: Store unreachable (callers fail closed)
        """
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the store is reachable."""
        pass
