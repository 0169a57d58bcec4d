"""
Embedding layer.

Supported providers:
- OpenAI (official SDK)
- Ollama (native SDK)

EmbeddingService adds caching, batching and retries on top of a provider.
"""

from contextindex.core.embeddings.base import Embedder
from contextindex.core.embeddings.cache import (
    CacheError,
    CacheHit,
    CacheLookup,
    CacheMiss,
    CacheStats,
    EmbeddingCache,
    EmbeddingCacheEntry,
)
from contextindex.core.embeddings.ollama import OllamaEmbedder
from contextindex.core.embeddings.openai import OpenAIEmbedder
from contextindex.core.embeddings.service import EmbeddedChunk, EmbeddingService
from contextindex.core.embeddings.similarity import cosine_similarity

__all__ = [
    "Embedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
    "EmbeddingCache",
    "EmbeddingCacheEntry",
    "CacheHit",
    "CacheMiss",
    "CacheError",
    "CacheLookup",
    "CacheStats",
    "EmbeddingService",
    "EmbeddedChunk",
    "cosine_similarity",
]
