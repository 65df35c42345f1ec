"""
Unit tests for the configuration-keyed engine cache.
"""

from cadence.memory.fsrs import FSRSParameters
from cadence.priority.cache import EngineCache, config_hash
from cadence.priority.engine import PriorityConfig


class FakeTimer:
    """Manually advanced clock for TTL tests."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestEngineCache:
    """Tests for EngineCache."""

    def test_same_config_returns_same_engine(self):
        """Equal configs should share one engine."""
        cache = EngineCache(maxsize=4, ttl=60)
        first = cache.priority_engine(PriorityConfig())
        second = cache.priority_engine(PriorityConfig())
        assert first is second
        assert (cache.hits, cache.misses) == (1, 1)

    def test_different_config_builds_new_engine(self):
        """A different config should build its own engine."""
        cache = EngineCache(maxsize=4, ttl=60)
        default = cache.priority_engine(PriorityConfig())
        floored = cache.priority_engine(PriorityConfig(cost_floor=0.3))
        assert default is not floored
        assert floored.config.cost_floor == 0.3
        assert len(cache) == 2

    def test_scheduler_keyed_by_parameters(self):
        """Schedulers should be keyed by their FSRS parameters."""
        cache = EngineCache(maxsize=4, ttl=60)
        a = cache.scheduler(FSRSParameters())
        b = cache.scheduler(FSRSParameters())
        c = cache.scheduler(FSRSParameters(request_retention=0.85))
        assert a is b
        assert a is not c

    def test_entries_expire(self):
        """Entries older than the TTL should be rebuilt."""
        timer = FakeTimer()
        cache = EngineCache(maxsize=4, ttl=10, timer=timer)
        first = cache.priority_engine(PriorityConfig())
        timer.now = 11.0
        second = cache.priority_engine(PriorityConfig())
        assert first is not second
        assert cache.misses == 2

    def test_size_bound(self):
        """The cache should never hold more than maxsize entries."""
        cache = EngineCache(maxsize=2, ttl=60)
        for floor in (0.1, 0.2, 0.3):
            cache.priority_engine(PriorityConfig(cost_floor=floor))
        assert len(cache) == 2

    def test_clear(self):
        """clear() should empty the cache."""
        cache = EngineCache(maxsize=2, ttl=60)
        cache.scheduler(FSRSParameters())
        cache.clear()
        assert len(cache) == 0

    def test_kinds_do_not_collide(self):
        """Keys should differ by kind and be stable for equal input."""
        assert config_hash("fsrs", (1, 2)) != config_hash("priority", (1, 2))
        assert config_hash("fsrs", (1, 2)) == config_hash("fsrs", (1, 2))
