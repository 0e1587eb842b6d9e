"""Cross-request caching of raw search results, Redis first with an in-memory fallback."""
from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

import redis

from .config import settings
from .es_client import SearchClient, SearchResult

logger = logging.getLogger(__name__)

KEY_PREFIX = "catalog-search:"


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[SearchResult]: ...

    def set(self, key: str, result: SearchResult, ttl: int) -> None: ...


@dataclass
class RedisResultCache:
    client: redis.Redis
    namespace: str = KEY_PREFIX

    def get(self, key: str) -> Optional[SearchResult]:
        try:
            data = self.client.get(self.namespace + key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed for %s: %s", key, exc)
            return None
        if not data:
            return None
        try:
            return SearchResult(**json.loads(data))
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding unreadable cache entry %s", key)
            return None

    def set(self, key: str, result: SearchResult, ttl: int) -> None:
        try:
            self.client.setex(self.namespace + key, ttl, json.dumps(result.to_dict()))
        except redis.RedisError as exc:
            logger.warning("Redis set failed for %s: %s", key, exc)


class InMemoryResultCache:
    """Process-local cache bounded to ``max_entries``, oldest entries evicted first."""

    def __init__(self, max_entries: int = 512) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[float, SearchResult]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[SearchResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if expires_at < time.monotonic():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return result

    def set(self, key: str, result: SearchResult, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, result)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)


_cache: ResultCache | None = None


def get_cache() -> ResultCache:
    global _cache
    if _cache is not None:
        return _cache
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Caching search results in Redis at %s:%s", settings.redis_host, settings.redis_port)
        _cache = RedisResultCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, caching search results in memory")
        _cache = InMemoryResultCache()
    return _cache


def hash_query(index_names: Sequence[str], query: Dict[str, Any]) -> str:
    payload = json.dumps([list(index_names), query], sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class CachingSearchClient:
    """Serve repeated identical queries from the cache.

    Only successful results are stored; a failing search is never cached.
    """

    def __init__(self, client: SearchClient, cache: ResultCache, ttl: int) -> None:
        self.client = client
        self.cache = cache
        self.ttl = ttl

    def search(self, index_names: Sequence[str], query: Dict[str, Any]) -> SearchResult:
        key = hash_query(index_names, query)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("search cache_hit=1 indices=%s", ",".join(index_names))
            return cached
        result = self.client.search(index_names, query)
        self.cache.set(key, result, self.ttl)
        logger.debug("cache_store key=%s ttl=%s", key, self.ttl)
        return result
