"""
Embedding service: cached, batched and retrying access to an embedding provider.

Inputs are truncated to the provider's token limit before they are sent.
The cache key is computed from the original text, so identical inputs
always share a cache entry.
"""

import asyncio
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from contextindex.core.embeddings.base import Embedder
from contextindex.core.embeddings.cache import CacheHit, CacheMiss, CacheStats, EmbeddingCache
from contextindex.core.tokenizer.chunker import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    chunk_text,
)
from contextindex.core.tokenizer.tokenizer import Tokenizer
from contextindex.models.chunk import TextChunk
from contextindex.utils.exceptions import EmptyInputError, ProviderError
from contextindex.utils.inflight import InFlightRegistry
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class EmbeddedChunk(BaseModel):
    """A text chunk with its embedding."""

    chunk: TextChunk
    embedding: list[float]


class _PendingText:
    """A cache miss waiting for the provider, shared by duplicate inputs."""

    __slots__ = ("key", "text", "cacheable", "indexes")

    def __init__(self, key: str, text: str, cacheable: bool):
        self.key = key
        self.text = text
        self.cacheable = cacheable
        self.indexes: list[int] = []


class EmbeddingService:
    """
    Embedding generation with caching and batching.

    Usage:
        service = EmbeddingService(embedder, cache=EmbeddingCache())
        vector = await service.embed("I live in Seattle")
        vectors = await service.embed_with_retry(texts, max_attempts=3)
    """

    def __init__(
        self,
        embedder: Embedder,
        cache: EmbeddingCache | None = None,
        tokenizer: Tokenizer | None = None,
        max_input_tokens: int = 8000,
        batch_size: int = 20,
        dimension: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize embedding service.

        Args:
            embedder: Embedding provider
            cache: Optional embedding cache (no caching if None)
            tokenizer: Tokenizer used to truncate inputs to the provider limit
            max_input_tokens: Provider input limit in tokens
            batch_size: Maximum texts per provider batch call
            dimension: Expected vector length; provider responses are checked against it
            sleep: Async sleep used between retries (injectable for tests)
        """
        self.embedder = embedder
        self.cache = cache
        self.tokenizer = tokenizer or Tokenizer()
        self.max_input_tokens = max_input_tokens
        self.batch_size = batch_size
        self.dimension = dimension
        self._sleep = sleep
        self._inflight: InFlightRegistry[list[float]] = InFlightRegistry("embedding")

    def _prepare(self, text: str) -> str:
        return self.tokenizer.truncate(text.strip(), self.max_input_tokens)

    def _check_vector(self, vector: list[float]) -> list[float]:
        if not vector:
            raise ProviderError("Provider returned an empty embedding")
        if self.dimension and len(vector) != self.dimension:
            raise ProviderError(
                f"Provider returned {len(vector)}-dimensional embedding, expected {self.dimension}",
                {"expected": self.dimension, "received": len(vector)},
            )
        return list(vector)

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text, using the cache when possible.

        Concurrent misses for the same text share one provider call.

        Raises:
            EmptyInputError: If text is blank
            ProviderError: If the provider fails
        """
        if not text or not text.strip():
            raise EmptyInputError("Text to embed cannot be empty")

        lookup = self.cache.lookup(text) if self.cache else None
        if isinstance(lookup, CacheHit):
            return lookup.embedding

        key = lookup.key if isinstance(lookup, CacheMiss) else None
        return await self._inflight.run_once(
            key or f"raw:{text}", lambda: self._generate_one(text, key)
        )

    async def _generate_one(self, text: str, key: str | None) -> list[float]:
        try:
            vector = self._check_vector(await self.embedder.embed(self._prepare(text)))
        except (ProviderError, EmptyInputError):
            raise
        except Exception as e:
            logger.bind(error=str(e), error_type=type(e).__name__).error(
                f"Embedding provider error: {e}"
            )
            raise ProviderError(f"Embedding provider error: {e}") from e

        if self.cache:
            self.cache.record_generation(1)
            if key is not None:
                self.cache.store_key(key, vector)
        return vector

    def _collect_misses(
        self, texts: list[str], results: list[list[float] | None], skip_blank: bool
    ) -> list[_PendingText]:
        """Fill cache hits into results and group misses by cache key."""
        pending: dict[str, _PendingText] = {}

        for i, text in enumerate(texts):
            if not text or not text.strip():
                if skip_blank:
                    continue
                raise EmptyInputError("Text to embed cannot be empty", {"index": i})

            lookup = self.cache.lookup(text) if self.cache else None
            if isinstance(lookup, CacheHit):
                results[i] = lookup.embedding
                continue

            if isinstance(lookup, CacheMiss):
                key, cacheable = lookup.key, True
            else:
                # Uncacheable text, deduplicate on the raw string
                key, cacheable = f"raw:{text}", False

            item = pending.get(key)
            if item is None:
                item = pending[key] = _PendingText(key, text, cacheable)
            item.indexes.append(i)

        return list(pending.values())

    async def _generate(self, batch: list[_PendingText]) -> list[list[float]]:
        """One provider call for a batch of misses."""
        try:
            vectors = await self.embedder.batch_embed(
                [self._prepare(item.text) for item in batch], batch_size=len(batch)
            )
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Embedding provider error: {e}") from e

        if len(vectors) != len(batch):
            raise ProviderError(
                "Provider returned a different number of embeddings than requested",
                {"expected": len(batch), "received": len(vectors)},
            )
        vectors = [self._check_vector(v) for v in vectors]

        if self.cache:
            self.cache.record_generation(len(batch))
        return vectors

    def _fill(
        self,
        batch: list[_PendingText],
        vectors: list[list[float]],
        results: list[list[float] | None],
    ) -> None:
        for item, vector in zip(batch, vectors):
            if self.cache and item.cacheable:
                self.cache.store_key(item.key, vector)
            for i in item.indexes:
                results[i] = vector

    def _batches(self, pending: list[_PendingText]) -> list[list[_PendingText]]:
        size = max(1, self.batch_size)
        return [pending[i : i + size] for i in range(0, len(pending), size)]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed many texts, sending only cache misses to the provider.

        Duplicate texts (after normalization) are sent once. Misses are sent in
        sub-batches of batch_size.

        Raises:
            EmptyInputError: If any text is blank
            ProviderError: If any provider call fails
        """
        results: list[list[float] | None] = [None] * len(texts)
        pending = self._collect_misses(texts, results, skip_blank=False)

        for batch in self._batches(pending):
            self._fill(batch, await self._generate(batch), results)

        return results

    async def embed_with_retry(
        self,
        texts: list[str],
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
    ) -> list[list[float] | None]:
        """
        Embed many texts, retrying failed provider batches.

        The wait before attempt n+1 is base_delay_ms * n. Texts whose batch
        still fails after max_attempts, and blank texts, yield None. Never
        raises for provider failures.

        Returns:
            One entry per input text, None where no embedding is available
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        results: list[list[float] | None] = [None] * len(texts)
        pending = self._collect_misses(texts, results, skip_blank=True)

        for batch in self._batches(pending):
            vectors = await self._retry_operation(
                lambda batch=batch: self._generate(batch), max_attempts, base_delay_ms
            )
            if vectors is not None:
                self._fill(batch, vectors, results)

        failed = sum(1 for r in results if r is None)
        if failed:
            logger.bind(failed=failed, total=len(texts)).warning(
                f"{failed}/{len(texts)} texts have no embedding"
            )
        return results

    async def _retry_operation(
        self,
        operation: Callable[[], Awaitable[list[list[float]]]],
        max_attempts: int,
        base_delay_ms: int,
    ) -> list[list[float]] | None:
        """
        Run a provider operation with linear backoff.

        Returns:
            Result of the operation, or None if every attempt failed
        """
        for attempt in range(1, max_attempts + 1):
            try:
                return await operation()
            except ProviderError as e:
                if attempt < max_attempts:
                    delay = base_delay_ms * attempt / 1000
                    logger.bind(attempt=attempt, error_type=type(e).__name__).warning(
                        f"Embedding failed (attempt {attempt}/{max_attempts}): {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await self._sleep(delay)
                else:
                    logger.bind(error=str(e), error_type=type(e).__name__).error(
                        f"Embedding failed after {max_attempts} attempts"
                    )
        return None

    async def embed_message(self, content: str, role: str) -> list[float]:
        """Embed a message with its role as context."""
        return await self.embed(f"{role}: {content}")

    @staticmethod
    def knowledge_text(title: str, content: str, category: str, tags: list[str] | None = None) -> str:
        """Build the contextual text embedded for a knowledge entry."""
        lines = [f"Title: {title}", f"Category: {category}"]
        if tags:
            lines.append(f"Tags: {', '.join(tags)}")
        return "\n".join(lines) + f"\n\n{content}"

    async def embed_knowledge_entry(
        self, title: str, content: str, category: str, tags: list[str] | None = None
    ) -> list[float]:
        """Embed a knowledge entry with its title, category and tags as context."""
        return await self.embed(self.knowledge_text(title, content, category, tags))

    async def chunk_and_embed(
        self,
        text: str,
        size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> list[EmbeddedChunk]:
        """
        Chunk text and embed every chunk in batches.

        Raises:
            EmptyInputError: If text is blank
            ProviderError: If the provider fails
        """
        if not text or not text.strip():
            raise EmptyInputError("Text to embed cannot be empty")

        chunks = [c for c in chunk_text(text, size, overlap) if c.content.strip()]
        vectors = await self.embed_batch([c.content for c in chunks])
        return [EmbeddedChunk(chunk=c, embedding=v) for c, v in zip(chunks, vectors)]

    async def embed_file(
        self,
        filename: str,
        content: str,
        file_type: str = "text/plain",
        size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> list[EmbeddedChunk]:
        """
        Embed file content with its name and type as a header.

        Short files produce one chunk; long files are chunked first and each
        chunk carries the header.
        """
        if not content or not content.strip():
            raise EmptyInputError("File content cannot be empty", {"filename": filename})

        header = f"File: {filename} ({file_type})\n\n"
        chunks = [c for c in chunk_text(content, size, overlap) if c.content.strip()]
        vectors = await self.embed_batch([header + c.content for c in chunks])
        return [EmbeddedChunk(chunk=c, embedding=v) for c, v in zip(chunks, vectors)]

    async def warmup(self, texts: list[str]) -> int:
        """
        Pre-populate the cache for frequently used texts.

        Returns:
            Number of texts that now have an embedding
        """
        texts = [t for t in texts if t and t.strip()]
        if not texts:
            return 0
        vectors = await self.embed_with_retry(texts, max_attempts=1)
        warmed = sum(1 for v in vectors if v is not None)
        logger.info(f"Warmed embedding cache with {warmed}/{len(texts)} texts")
        return warmed

    def cache_stats(self) -> CacheStats | None:
        return self.cache.stats() if self.cache else None

    async def close(self) -> None:
        await self.embedder.close()
