"""
Category Cache

Cache-aside store of upstream articles per category with single-flight
loading. Concurrent misses on the same key wait on that key's gate and
share the one upstream call; different keys never wait on each other.

Successful fetches live for days, failed fetches are cached as an empty
list for a few minutes so a failing provider is retried, but not hammered.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from ...exceptions import ExternalServiceError
from ...utils.datetime_utils import utcnow
from ..schemas.articles import Article
from .upstream_client import UpstreamNewsClient

logger = structlog.get_logger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class CacheEntry:
    key: str
    value: Tuple[Article, ...] = ()
    expires_at: Optional[datetime] = None
    state: CacheState = CacheState.EMPTY

    def is_fresh(self, now: datetime) -> bool:
        """Ready and failed entries are served until they expire; anything else is a miss."""
        if self.state not in (CacheState.READY, CacheState.FAILED):
            return False
        return self.expires_at is not None and now < self.expires_at


def normalize_category(category: str) -> str:
    """Category key: trimmed and lower-cased, so 'Tech ' and 'tech' share an entry."""
    return (category or "").strip().lower()


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    upstream_calls: int = 0
    upstream_failures: int = 0


class CategoryCache:
    """Process-wide category cache; build one per application and inject it."""

    def __init__(
        self,
        client: UpstreamNewsClient,
        ttl: timedelta = timedelta(days=5),
        failure_ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.ttl = ttl
        self.failure_ttl = failure_ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._gates: Dict[str, asyncio.Lock] = {}
        self._gate_users: Dict[str, int] = {}
        self.stats = CacheStats()

    def build_key(self, category: str, language: str = "en", country: str = "us") -> str:
        # The search window is a client constant, never caller supplied
        window = self.client.search_window_days
        return f"news_{normalize_category(category)}_{window}d_{language.strip().lower()}_{country.strip().lower()}"

    def _acquire_gate(self, key: str) -> asyncio.Lock:
        gate = self._gates.get(key)
        if gate is None:
            gate = self._gates[key] = asyncio.Lock()
        self._gate_users[key] = self._gate_users.get(key, 0) + 1
        return gate

    def _release_gate(self, key: str):
        # The last holder or waiter drops the gate; a later miss makes a new one
        remaining = self._gate_users.get(key, 0) - 1
        if remaining > 0:
            self._gate_users[key] = remaining
            return
        self._gate_users.pop(key, None)
        self._gates.pop(key, None)

    def _prune_expired(self, now: datetime):
        expired = [
            key for key, entry in self._entries.items()
            if entry.state != CacheState.LOADING and not entry.is_fresh(now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("category_cache_pruned", count=len(expired))

    def peek(self, category: str, language: str = "en", country: str = "us") -> Optional[CacheEntry]:
        """Snapshot copy of the current entry for a category, if any."""
        entry = self._entries.get(self.build_key(category, language, country))
        if entry is None:
            return None
        return CacheEntry(key=entry.key, value=entry.value, expires_at=entry.expires_at, state=entry.state)

    async def get(self, category: str, language: str = "en", country: str = "us") -> List[Article]:
        """
        Articles for a category, from cache or from a single upstream fetch.

        Never raises for upstream failures: the caller gets an empty list and
        the failure is negative-cached for `failure_ttl`.

        Args:
            category: Topic name as requested by the caller
            language: Article language
            country: Primary country of the search

        Returns:
            Copy of the cached article list
        """
        key = self.build_key(category, language, country)

        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self.clock()):
            self.stats.hits += 1
            return list(entry.value)

        gate = self._acquire_gate(key)
        try:
            async with gate:
                return await self._fill(key, category, language, country)
        finally:
            self._release_gate(key)

    async def _fill(self, key: str, category: str, language: str, country: str) -> List[Article]:
        now = self.clock()
        # Another caller may have filled the entry while we waited
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(now):
            self.stats.hits += 1
            return list(entry.value)

        self.stats.misses += 1
        self._prune_expired(now)
        self._entries[key] = CacheEntry(key=key, state=CacheState.LOADING)
        loaded = None
        try:
            loaded = await self._load(key, category, language, country)
        finally:
            # An unexpected error must not leave the key stuck in LOADING
            if loaded is None:
                self._entries.pop(key, None)

        self._entries[key] = loaded
        return list(loaded.value)

    async def _load(self, key: str, category: str, language: str, country: str) -> CacheEntry:
        self.stats.upstream_calls += 1
        try:
            articles = await self.client.fetch_articles([category.strip()], language=language, country=country)
        except ExternalServiceError as e:
            self.stats.upstream_failures += 1
            logger.error("category_fetch_failed", category=category, cache_key=key, error=str(e))
            return CacheEntry(
                key=key,
                value=(),
                expires_at=self.clock() + self.failure_ttl,
                state=CacheState.FAILED,
            )

        logger.info("category_cached", category=category, cache_key=key, count=len(articles))
        return CacheEntry(
            key=key,
            value=tuple(articles),
            expires_at=self.clock() + self.ttl,
            state=CacheState.READY,
        )

    def invalidate(self, category: str, language: str = "en", country: str = "us") -> bool:
        return self._entries.pop(self.build_key(category, language, country), None) is not None

    def get_cache_stats(self) -> Dict[str, Any]:
        total_requests = self.stats.hits + self.stats.misses
        return {
            "entries": len(self._entries),
            "gates": len(self._gates),
            "cache_hits": self.stats.hits,
            "cache_misses": self.stats.misses,
            "cache_hit_rate": round(self.stats.hits / total_requests * 100, 2) if total_requests else 0.0,
            "upstream_calls": self.stats.upstream_calls,
            "upstream_failures": self.stats.upstream_failures,
        }
