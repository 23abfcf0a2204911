"""Redis counter store for admission control.

Sliding-window counters kept in sorted sets (one member per admitted
attempt, scored by timestamp). A single Lua script trims, checks and
increments every limiter of a submission, so Redis executes the whole
decision atomically: two concurrent requests can never both take the
last free slot, and a denied attempt increments nothing.
"""

import logging
import time
import uuid
from typing import Optional, Sequence

from redis import Redis
from redis.exceptions import RedisError

from domain.admission.ports import CounterStorePort, CounterStoreUnavailable, WindowLimit

logger = logging.getLogger(__name__)

KEY_PREFIX = "relay:admission"

# KEYS[i]   limiter key
# ARGV[1]   now (ms), ARGV[2] member id
# ARGV[1+2i] window (ms) of KEYS[i], ARGV[2+2i] limit of KEYS[i]
# Returns 0 when admitted, otherwise the 1-based index of the exhausted key.
ACQUIRE_SCRIPT = """
local now = tonumber(ARGV[1])
local member = ARGV[2]
for i, key in ipairs(KEYS) do
  local window = tonumber(ARGV[1 + i * 2])
  local limit = tonumber(ARGV[2 + i * 2])
  redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
  if redis.call('ZCARD', key) >= limit then
    return i
  end
end
for i, key in ipairs(KEYS) do
  local window = tonumber(ARGV[1 + i * 2])
  redis.call('ZADD', key, now, member)
  redis.call('PEXPIRE', key, window)
end
return 0
"""


class RedisCounterStore(CounterStorePort):
    """Counter store backed by Redis sorted sets."""

    def __init__(self, client: Redis):
        self.redis = client
        self._script = client.register_script(ACQUIRE_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        return cls(Redis.from_url(url, decode_responses=True, socket_timeout=2.0))

    def acquire(self, limits: Sequence[WindowLimit], now: Optional[float] = None) -> Optional[WindowLimit]:
        if not limits:
            return None

        now_ms = int((now if now is not None else time.time()) * 1000)
        keys = [f"{KEY_PREFIX}:{limit.key}" for limit in limits]
        args: list = [now_ms, uuid.uuid4().hex]
        for limit in limits:
            args.extend([limit.window_seconds * 1000, limit.limit])

        try:
            result = int(self._script(keys=keys, args=args))
        except RedisError as e:
            logger.error(f"Counter store unavailable: {type(e).__name__}")
            raise CounterStoreUnavailable(str(e)) from e

        if result == 0:
            return None
        return limits[result - 1]

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisError:
            return False
