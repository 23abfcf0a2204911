"""Unit tests for the admission counter stores."""

import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from domain.admission.ports import CounterStoreUnavailable, WindowLimit
from infrastructure.counters.memory_store import InMemoryCounterStore
from infrastructure.counters.redis_store import KEY_PREFIX, RedisCounterStore

PAIR = WindowLimit(name="pair", key="pair:fp:rh", limit=3, window_seconds=86_400)
SENDER = WindowLimit(name="sender", key="sender:fp", limit=10, window_seconds=3_600)


class TestInMemoryCounterStore:

    def test_admits_up_to_limit(self, counter_store):
        for _ in range(3):
            assert counter_store.acquire([PAIR, SENDER], now=1000.0) is None

        assert counter_store.acquire([PAIR, SENDER], now=1000.0) == PAIR

    def test_denial_increments_nothing(self, counter_store):
        for _ in range(3):
            counter_store.acquire([PAIR, SENDER], now=1000.0)

        for _ in range(5):
            assert counter_store.acquire([PAIR, SENDER], now=1000.0) == PAIR

        assert counter_store.count(PAIR.key, PAIR.window_seconds, now=1000.0) == 3
        assert counter_store.count(SENDER.key, SENDER.window_seconds, now=1000.0) == 3

    def test_first_exhausted_limit_is_reported(self, counter_store):
        tight = WindowLimit(name="sender", key="sender:fp", limit=1, window_seconds=3_600)
        counter_store.acquire([PAIR, tight], now=1000.0)
        assert counter_store.acquire([PAIR, tight], now=1000.0) == tight

    def test_window_rolls(self, counter_store):
        for _ in range(3):
            counter_store.acquire([PAIR], now=1000.0)

        assert counter_store.acquire([PAIR], now=1000.0 + PAIR.window_seconds - 1) == PAIR
        assert counter_store.acquire([PAIR], now=1000.0 + PAIR.window_seconds) is None

    def test_concurrent_acquire_never_exceeds_limit(self, counter_store):
        limit = WindowLimit(name="sender", key="sender:race", limit=10, window_seconds=3_600)
        barrier = threading.Barrier(11)
        results = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            outcome = counter_store.acquire([limit], now=1000.0)
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt) for _ in range(11)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(None) == 10
        assert results.count(limit) == 1

    def test_reset_and_ping(self, counter_store):
        counter_store.acquire([PAIR], now=1000.0)
        counter_store.reset()
        assert counter_store.count(PAIR.key, PAIR.window_seconds, now=1000.0) == 0
        assert counter_store.ping() is True


class TestRedisCounterStore:

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.register_script.return_value = MagicMock(return_value=0)
        return client

    def test_admitted_returns_none(self, redis_client):
        store = RedisCounterStore(redis_client)
        assert store.acquire([PAIR, SENDER], now=1000.0) is None

    def test_script_receives_prefixed_keys_and_windows(self, redis_client):
        store = RedisCounterStore(redis_client)
        store.acquire([PAIR, SENDER], now=1000.0)

        kwargs = redis_client.register_script.return_value.call_args.kwargs
        assert kwargs["keys"] == [f"{KEY_PREFIX}:{PAIR.key}", f"{KEY_PREFIX}:{SENDER.key}"]
        args = kwargs["args"]
        assert args[0] == 1_000_000
        assert args[2:] == [86_400_000, 3, 3_600_000, 10]

    def test_index_maps_to_exhausted_limit(self, redis_client):
        redis_client.register_script.return_value.return_value = 2
        store = RedisCounterStore(redis_client)
        assert store.acquire([PAIR, SENDER], now=1000.0) == SENDER

    def test_redis_error_raises_unavailable(self, redis_client):
        redis_client.register_script.return_value.side_effect = RedisConnectionError("down")
        store = RedisCounterStore(redis_client)

        with pytest.raises(CounterStoreUnavailable):
            store.acquire([PAIR], now=1000.0)

    def test_empty_limits_skip_redis(self, redis_client):
        store = RedisCounterStore(redis_client)
        assert store.acquire([]) is None
        redis_client.register_script.return_value.assert_not_called()

    def test_ping_false_on_error(self, redis_client):
        redis_client.ping.side_effect = RedisConnectionError("down")
        assert RedisCounterStore(redis_client).ping() is False
