"""Counter store adapters for admission control"""

from .redis_store import RedisCounterStore
from .memory_store import InMemoryCounterStore

__all__ = ["RedisCounterStore", "InMemoryCounterStore"]
