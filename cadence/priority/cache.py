"""
Engine cache.

Building a scheduler or priority engine is cheap but not free, and callers
scoring many learners with the same configuration want to reuse them. The
cache is an explicit object handed to whoever needs it; entries are keyed by
a hash of the configuration and expire by age (TTL) and by count (LRU).
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

from cachetools import TTLCache
from loguru import logger

from cadence.memory.fsrs import FSRSParameters, FSRSScheduler
from cadence.priority.engine import PriorityConfig, PriorityEngine

T = TypeVar("T")


def config_hash(kind: str, key: Any) -> str:
    """Stable key for a configuration tuple."""
    digest = hashlib.md5(repr(key).encode()).hexdigest()
    return f"{kind}:{digest}"


class EngineCache:
    """
    Size- and time-bounded cache of engines keyed by configuration.

    Usage:
        cache = EngineCache(maxsize=32, ttl=3600)
        engine = cache.priority_engine(settings.get_priority_config())
    """

    def __init__(
        self,
        maxsize: int | None = None,
        ttl: float | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        if maxsize is None or ttl is None:
            from config import get_settings

            settings = get_settings()
            maxsize = settings.engine_cache_size if maxsize is None else maxsize
            ttl = settings.engine_cache_ttl_seconds if ttl is None else ttl
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_or_create(self, kind: str, key: Any, factory: Callable[[], T]) -> T:
        cache_key = config_hash(kind, key)
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                self.hits += 1
                return cached
            self.misses += 1
            value = factory()
            self._cache[cache_key] = value
        logger.debug(f"Engine cache miss for {cache_key}")
        return value

    def scheduler(self, params: FSRSParameters) -> FSRSScheduler:
        return self.get_or_create("fsrs", params, lambda: FSRSScheduler(params))

    def priority_engine(self, config: PriorityConfig) -> PriorityEngine:
        return self.get_or_create(
            "priority", config.cache_key(), lambda: PriorityEngine(config)
        )

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
