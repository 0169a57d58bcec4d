"""
Context engine - wires the components together.

Brings together:
- Embedding service (provider, cache, tokenizer)
- Vector store
- Indexing coordinator and background worker
- Conversation summary store
- Retrieval engine
- Content sources and unified search
"""

from typing import Any

from contextindex.config import Config
from contextindex.core.auth.base import TokenProvider
from contextindex.core.embeddings.base import Embedder
from contextindex.core.embeddings.cache import EmbeddingCache
from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.factory import EmbedderFactory, TokenProviderFactory, VectorStoreFactory
from contextindex.core.sources import DriveSource, GmailSource, SourceAdapter, VectorStoreSource
from contextindex.core.summaries import SQLiteSummaryStore, SummaryStore
from contextindex.core.tokenizer import Tokenizer
from contextindex.core.vector_store.base import VectorStore
from contextindex.models.conversation import ConversationSummary
from contextindex.models.search import ContentType
from contextindex.services.indexing_coordinator import IndexingCoordinator
from contextindex.services.indexing_worker import IndexingWorker
from contextindex.services.retrieval import RetrievalEngine
from contextindex.services.unified_search import UnifiedSearchAggregator
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class ContextEngine:
    """
    Owns every long-lived component and their lifecycle.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        config: Config,
        token_provider: TokenProvider | None = None,
        sources: list[SourceAdapter] | None = None,
        summary_store: SummaryStore | None = None,
    ):
        """
        Initialize context engine.

        Args:
            embedder: Embedding provider
            vector_store: Content store
            config: Configuration object
            token_provider: Access tokens for Gmail and Drive (skipped if None)
            sources: Search sources (local, knowledge_base, gmail, drive if None)
            summary_store: Rolling conversation summaries (not kept if None)
        """
        self.config = config
        self.embedder = embedder
        self.vector_store = vector_store
        self.token_provider = token_provider
        self.summary_store = summary_store

        cache = (
            EmbeddingCache(max_size=config.cache.max_size, ttl_seconds=config.cache.ttl_seconds)
            if config.cache.enabled
            else None
        )
        self.embedding_service = EmbeddingService(
            embedder,
            cache=cache,
            tokenizer=Tokenizer(config.tokenizer),
            max_input_tokens=config.embedder.max_input_tokens,
            batch_size=config.embedder.batch_size,
            dimension=config.embedder.dimension,
        )

        self.coordinator = IndexingCoordinator(
            self.embedding_service,
            vector_store,
            config=config.indexing,
            chunking=config.chunking,
            summary_store=summary_store,
            summary=config.summary,
        )
        self.worker = IndexingWorker(
            self.coordinator,
            workers=config.indexing.max_concurrency,
            queue_size=config.indexing.queue_size,
        )
        self.retrieval = RetrievalEngine(self.embedding_service, vector_store, config.retrieval)

        if sources is None:
            sources = [
                VectorStoreSource(
                    self.embedding_service,
                    vector_store,
                    name="local",
                    match_threshold=config.search.semantic_threshold,
                ),
                VectorStoreSource(
                    self.embedding_service,
                    vector_store,
                    name="knowledge_base",
                    content_types=[ContentType.KNOWLEDGE],
                    match_threshold=config.search.semantic_threshold,
                ),
                GmailSource(),
                DriveSource(),
            ]
        self.sources = sources
        self.search = UnifiedSearchAggregator(
            sources, token_provider, default_sources=config.search.default_sources
        )

    @classmethod
    async def from_config(cls, config: Config) -> "ContextEngine":
        """Build an engine from configuration using the factories."""
        embedder = EmbedderFactory.create(config.embedder)
        vector_size = await EmbedderFactory.get_dimension(embedder, config.embedder)
        logger.info(f"Embedding dimension: {vector_size}")

        vector_store = VectorStoreFactory.create(config.qdrant, vector_size)

        token_provider = None
        if config.token_store.client_id and config.token_store.client_secret:
            token_provider = TokenProviderFactory.create(config.token_store)
        else:
            logger.warning("OAuth client not configured, Gmail and Drive search disabled")

        summary_store = None
        if config.summary.enabled:
            summary_store = SQLiteSummaryStore(config.summary.db_path)

        return cls(
            embedder,
            vector_store,
            config,
            token_provider=token_provider,
            summary_store=summary_store,
        )

    async def initialize(self) -> None:
        """Initialize stores and start the indexing worker."""
        logger.info("Initializing context engine")

        await self.vector_store.initialize()
        logger.info("Vector store initialized")

        if self.token_provider is not None:
            await self.token_provider.initialize()
            logger.info("Token store initialized")

        if self.summary_store is not None:
            await self.summary_store.initialize()
            logger.info("Summary store initialized")

        self.worker.start()
        logger.info("Context engine ready")

    async def get_conversation_summary(self, conversation_id: str) -> ConversationSummary | None:
        if self.summary_store is None:
            return None
        return await self.summary_store.get_summary(conversation_id)

    async def get_statistics(self, user_id: str | None = None) -> dict[str, Any]:
        counts = {
            content_type.value: await self.vector_store.count_content(user_id, content_type)
            for content_type in ContentType
        }
        stats = self.embedding_service.cache_stats()
        return {
            "content": counts,
            "indexing": {
                "processed": self.worker.processed,
                "failed": self.worker.failed,
                "pending": self.worker.pending,
            },
            "cache": stats.model_dump() if stats else None,
        }

    async def close(self) -> None:
        """Stop the worker and close all connections."""
        logger.info("Shutting down context engine")

        await self.worker.stop()

        for source in self.sources:
            await source.close()
        if self.token_provider is not None:
            await self.token_provider.close()
        if self.summary_store is not None:
            await self.summary_store.close()

        await self.vector_store.close()
        await self.embedding_service.close()

        logger.info("Context engine shutdown complete")
