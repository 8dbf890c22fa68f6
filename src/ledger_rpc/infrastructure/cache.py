"""Expiring in-memory cache for ledger responses.

Usage example:
    from ledger_rpc.infrastructure.cache import TtlCache, cache_key

    cache = TtlCache()
    key = cache_key("mapping", "testnet", "token.aleo", "balances", "aleo1...")
    cache.set(key, None, ttl_seconds=10)  # confirmed absence is cached too
    lookup = cache.get(key)  # CacheLookup(hit=True, value=None)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import override

from ..protocols import CacheKey, Clock, ResponseCache


@dataclass(frozen=True)
class CacheTtls:
    """Time-to-live per operation kind, in seconds."""

    height: float = 5.0
    program: float = 60.0
    mapping: float = 10.0
    mapping_absent: float = 10.0


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read; `hit` separates a cached None from a miss."""

    hit: bool
    value: object = None


_MISS = CacheLookup(hit=False)


@dataclass
class CacheEntry:
    value: object
    expires_at: float


def cache_key(kind: str, network: str, *parts: str) -> CacheKey:
    """Build a key from every input that affects the cached result."""
    return (kind, network, *parts)


class TtlCache(ResponseCache):
    """Per-client cache; entries are valid while `clock() < expires_at`."""

    def __init__(self, *, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}

    @override
    def get(self, key: CacheKey) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            return _MISS
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return _MISS
        return CacheLookup(hit=True, value=entry.value)

    @override
    def set(self, key: CacheKey, value: object, ttl_seconds: float) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    @override
    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
