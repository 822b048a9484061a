"""
Per-issuer JWKS cache with TTL and LRU bounds.

Background for newcomers:
    Identity providers sign tokens with private keys and publish the public
    halves at a JWKS endpoint. Keys rotate: a token may arrive signed with a
    key id (``kid``) we have not seen yet. ``get_key`` reports that as a miss
    and the validator calls ``refresh`` once before giving up on the token.

    Each endpoint's key set is replaced as a whole on refresh and evicted as a
    whole under capacity pressure, so readers never see a half-rotated set.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from jwt import PyJWK

from .jwks_fetcher import JWKSFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedKeySet:
    endpoint: str
    keys: Mapping[str, PyJWK]
    fetched_at: float


class JWKSCache:
    """
    In-memory cache of key sets keyed by JWKS endpoint.

    Entries older than ``ttl_seconds`` are misses. At most ``max_issuers``
    endpoints are kept; the least recently used one is dropped first.
    Refreshes of one endpoint are serialized, coalesced, and spaced at least
    ``min_refresh_interval`` seconds apart; refreshes of different endpoints
    run independently.
    """

    def __init__(
        self,
        fetcher: JWKSFetcher,
        ttl_seconds: float = 3600,
        max_issuers: int = 10,
        min_refresh_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._max_issuers = max_issuers
        self._min_refresh_interval = min_refresh_interval
        self._clock = clock
        self._entries: OrderedDict[str, CachedKeySet] = OrderedDict()
        self._refresh_locks: dict[str, asyncio.Lock] = {}
        # Guards _entries and _refresh_locks; never held across an await.
        self._index_lock = threading.Lock()

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._entries)

    def __contains__(self, endpoint: object) -> bool:
        with self._index_lock:
            return endpoint in self._entries

    def get_key(self, endpoint: str, kid: str) -> PyJWK | None:
        """Return the cached key, or None if absent or the key set is stale."""
        now = self._clock()
        with self._index_lock:
            entry = self._entries.get(endpoint)
            if entry is None:
                return None
            if now - entry.fetched_at >= self._ttl:
                logger.debug("JWKS cache entry stale endpoint=%s", endpoint)
                return None
            self._entries.move_to_end(endpoint)
            return entry.keys.get(kid)

    async def refresh(self, endpoint: str) -> None:
        """
        Fetch the endpoint's key set and swap it in.

        If another caller committed a key set after this call was made, that
        result is reused instead of fetching again. Within
        ``min_refresh_interval`` of the last fetch nothing is fetched either, so
        tokens with made-up key ids cannot drive upstream traffic. Fetch errors
        propagate and leave the current entry untouched; so does cancellation.
        """
        requested_at = self._clock()
        async with self._lock_for(endpoint):
            with self._index_lock:
                entry = self._entries.get(endpoint)
            if entry is not None and entry.fetched_at > requested_at:
                logger.debug("JWKS refresh coalesced endpoint=%s", endpoint)
                return
            if entry is not None and self._clock() - entry.fetched_at < self._min_refresh_interval:
                logger.info("JWKS refresh throttled endpoint=%s", endpoint)
                return

            keys = await self._fetcher.fetch(endpoint)
            fresh = CachedKeySet(endpoint, MappingProxyType(dict(keys)), self._clock())
            self._commit(fresh)
        logger.debug("JWKS cache refreshed endpoint=%s keys=%d", endpoint, len(fresh.keys))

    def clear(self) -> None:
        with self._index_lock:
            self._entries.clear()
            for endpoint in list(self._refresh_locks):
                self._drop_refresh_lock(endpoint)
        logger.info("JWKS cache cleared")

    def _commit(self, entry: CachedKeySet) -> None:
        with self._index_lock:
            self._entries[entry.endpoint] = entry
            self._entries.move_to_end(entry.endpoint)
            while len(self._entries) > self._max_issuers:
                evicted, _ = self._entries.popitem(last=False)
                self._drop_refresh_lock(evicted)
                logger.info("JWKS cache evicted endpoint=%s", evicted)

    def _drop_refresh_lock(self, endpoint: str) -> None:
        # Caller holds _index_lock. A lock in use stays until a later eviction.
        lock = self._refresh_locks.get(endpoint)
        if lock is not None and not lock.locked():
            del self._refresh_locks[endpoint]

    def _lock_for(self, endpoint: str) -> asyncio.Lock:
        with self._index_lock:
            lock = self._refresh_locks.get(endpoint)
            if lock is None:
                lock = self._refresh_locks[endpoint] = asyncio.Lock()
            return lock
