"""
Content-addressed embedding cache.

Embeddings are keyed by a SHA-256 hash of the normalized text, so
case and whitespace variants of the same text share one entry. The cache
is an LRU bounded by max_size, and entries expire after ttl_seconds.

Lookups return an explicit result: CacheHit, CacheMiss or CacheError.
Callers treat CacheError exactly like a miss; it is logged and counted
separately so backend problems are visible.
"""

import hashlib
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, Field

from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

# Approximate price per cached embedding avoided (text-embedding-3-small)
COST_PER_EMBEDDING = 0.000002


def normalize_text(text: str) -> str:
    """Normalize text for cache keying: collapse whitespace and lowercase."""
    return " ".join(text.split()).lower()


def compute_cache_key(text: str) -> str:
    """
    Compute the cache key for text.

    Raises:
        UnicodeEncodeError: If text contains unencodable characters (lone surrogates)
    """
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


class EmbeddingCacheEntry(BaseModel):
    """Cached embedding with access tracking."""

    key: str
    embedding: list[float]
    hit_count: int = 0
    created_at: float = Field(..., description="Clock time when the entry was stored")


class CacheHit(BaseModel):
    kind: Literal["hit"] = "hit"
    key: str
    embedding: list[float]


class CacheMiss(BaseModel):
    kind: Literal["miss"] = "miss"
    key: str


class CacheError(BaseModel):
    kind: Literal["error"] = "error"
    error: str


CacheLookup = CacheHit | CacheMiss | CacheError


class CacheStats(BaseModel):
    """Snapshot of cache counters."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0
    provider_calls: int = 0
    embeddings_generated: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses + self.errors

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests * 100

    @property
    def cost_saved(self) -> float:
        return self.hits * COST_PER_EMBEDDING


class EmbeddingCache:
    """
    In-memory LRU cache of embeddings.

    Not thread-safe; intended for use from a single event loop.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries before LRU eviction
            ttl_seconds: Entry lifetime
            clock: Monotonic time source (injectable for tests)
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, EmbeddingCacheEntry] = OrderedDict()
        self._stats = CacheStats(max_size=max_size)

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: EmbeddingCacheEntry) -> bool:
        return self._clock() - entry.created_at > self.ttl_seconds

    def lookup(self, text: str) -> CacheLookup:
        """
        Look up the embedding for text.

        Returns:
            CacheHit with the embedding, CacheMiss with the computed key,
            or CacheError if the key could not be computed
        """
        try:
            key = compute_cache_key(text)
        except (UnicodeEncodeError, AttributeError) as e:
            self._stats.errors += 1
            logger.bind(error=str(e), error_type=type(e).__name__).warning(
                f"Embedding cache lookup failed: {e}"
            )
            return CacheError(error=str(e))

        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return CacheMiss(key=key)

        if self._is_expired(entry):
            del self._entries[key]
            self._stats.evictions += 1
            self._stats.misses += 1
            return CacheMiss(key=key)

        entry.hit_count += 1
        self._entries.move_to_end(key)
        self._stats.hits += 1
        return CacheHit(key=key, embedding=entry.embedding)

    def store(self, text: str, embedding: list[float]) -> None:
        """
        Store an embedding for text, evicting the least recently used entry when full.
        """
        try:
            key = compute_cache_key(text)
        except (UnicodeEncodeError, AttributeError) as e:
            self._stats.errors += 1
            logger.bind(error=str(e)).warning(f"Embedding cache store failed: {e}")
            return

        self.store_key(key, embedding)

    def store_key(self, key: str, embedding: list[float]) -> None:
        """Store an embedding under a precomputed key."""
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = EmbeddingCacheEntry(
            key=key, embedding=embedding, created_at=self._clock()
        )

        while len(self._entries) > self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            logger.debug(f"Evicted embedding cache entry {evicted_key[:12]}")

    def get_entry(self, text: str) -> EmbeddingCacheEntry | None:
        """Peek at an entry without touching LRU order or counters."""
        try:
            return self._entries.get(compute_cache_key(text))
        except UnicodeEncodeError:
            return None

    def record_generation(self, count: int) -> None:
        """Record one provider call that generated ``count`` embeddings."""
        self._stats.provider_calls += 1
        self._stats.embeddings_generated += count

    def evict_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        self._stats.evictions += len(expired)
        return len(expired)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._entries.clear()
        self._stats = CacheStats(max_size=self.max_size)

    def stats(self) -> CacheStats:
        """Get a snapshot of cache statistics."""
        return self._stats.model_copy(update={"size": len(self._entries)})

    def summary(self) -> str:
        """Human-readable one-line summary of cache performance."""
        stats = self.stats()
        return (
            f"Embedding cache: {stats.size}/{stats.max_size} entries, "
            f"{stats.hit_rate:.1f}% hit rate ({stats.hits} hits, {stats.misses} misses), "
            f"{stats.provider_calls} provider calls, ~${stats.cost_saved:.4f} saved"
        )
