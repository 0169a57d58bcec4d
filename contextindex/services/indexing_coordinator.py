"""
Indexing coordinator.

Turns a message into persisted, embedded entities:

1. Embed the message (role-prefixed) and store its MessageReference
2. Extract memory chunks and knowledge items (concurrently)
3. Embed each extracted set in one retrying batch
4. Append the embedded entities to the store
5. Fold the message into its conversation's rolling summary (when a
   summary store is configured)
6. Report counts and per-step errors in an IndexingResult

Concurrent requests for the same message share one run through an
InFlightRegistry, so a message is indexed at most once at a time.
"""

import asyncio
import time
from datetime import datetime

from contextindex.config import ChunkingConfig, IndexingConfig, SummaryConfig
from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.summaries.base import SummaryStore
from contextindex.core.vector_store.base import VectorStore
from contextindex.models.conversation import ConversationSummary
from contextindex.models.file import FileChunk
from contextindex.models.indexing import FileIndexingResult, IndexingResult
from contextindex.models.knowledge import KnowledgeEntry
from contextindex.models.memory import MemoryChunk
from contextindex.models.message import Message, MessageReference
from contextindex.services.conversation_summary import roll_summary
from contextindex.services.extractors import KnowledgeExtractor, MemoryExtractor
from contextindex.utils.exceptions import (
    AuthError,
    EmptyInputError,
    ExtractionError,
    PersistenceError,
    ProviderError,
)
from contextindex.utils.id_generator import (
    generate_file_chunk_id,
    generate_knowledge_id,
    generate_memory_chunk_id,
    generate_reference_id,
)
from contextindex.utils.inflight import InFlightRegistry
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

# Failures captured into IndexingResult.errors instead of being raised
STEP_ERRORS = (ProviderError, PersistenceError, ExtractionError, AuthError)


class IndexingCoordinator:
    """
    Orchestrates embedding, extraction and persistence for messages and files.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        memory_extractor: MemoryExtractor | None = None,
        knowledge_extractor: KnowledgeExtractor | None = None,
        config: IndexingConfig | None = None,
        chunking: ChunkingConfig | None = None,
        registry: InFlightRegistry | None = None,
        summary_store: SummaryStore | None = None,
        summary: SummaryConfig | None = None,
    ):
        """
        Initialize coordinator.

        Args:
            embedding_service: Cached embedding service
            vector_store: Append-only content store
            memory_extractor: Memory extractor (default detectors if None)
            knowledge_extractor: Knowledge extractor (default detectors if None)
            config: Indexing configuration (concurrency, retries)
            chunking: Chunk size and overlap for files
            registry: In-flight registry shared by coalesced callers
            summary_store: Rolling conversation summaries (step skipped if None)
            summary: Summary length bounds
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.memory_extractor = memory_extractor or MemoryExtractor()
        self.knowledge_extractor = knowledge_extractor or KnowledgeExtractor()
        self.config = config or IndexingConfig()
        self.chunking = chunking or ChunkingConfig()
        self.registry = registry or InFlightRegistry("indexing")
        self.summary_store = summary_store
        self.summary = summary or SummaryConfig()
        # Summary updates are read-modify-write
        self._summary_lock = asyncio.Lock()

    async def _embed_all(self, texts: list[str]) -> list[list[float] | None]:
        return await self.embedding_service.embed_with_retry(
            texts,
            max_attempts=self.config.retry_attempts,
            base_delay_ms=self.config.retry_base_delay_ms,
        )

    async def index_message(self, message: Message) -> IndexingResult:
        """
        Index a message, joining any run already in flight for the same message ID.

        Raises:
            EmptyInputError: If the message content is blank
        """
        if not message.content or not message.content.strip():
            raise EmptyInputError("Message content cannot be empty", {"message_id": message.id})

        return await self.registry.run_once(
            f"message:{message.id}", lambda: self._index_message(message)
        )

    async def _index_message(self, message: Message) -> IndexingResult:
        start_time = time.perf_counter()
        result = IndexingResult(message_id=message.id)

        logger.bind(message_id=message.id, conversation_id=message.conversation_id).debug(
            f"Indexing message {message.id}"
        )

        reference_task = self._store_reference(message, result)
        memory_task = self._index_memory_chunks(message, result)
        knowledge_task = self._index_knowledge(message, result)
        summary_task = self._update_summary(message, result)

        outcomes = await asyncio.gather(
            reference_task, memory_task, knowledge_task, summary_task, return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, STEP_ERRORS):
                raise outcome

        result.processing_time_ms = (time.perf_counter() - start_time) * 1000

        if result.errors:
            logger.bind(message_id=message.id, errors=result.errors).warning(
                f"Indexed message {message.id} with {len(result.errors)} errors"
            )
        else:
            logger.bind(message_id=message.id).info(
                f"Indexed message {message.id}: {result.memory_chunks_extracted} memories, "
                f"{result.knowledge_items_created} knowledge items "
                f"in {result.processing_time_ms:.0f}ms"
            )
        return result

    async def _store_reference(self, message: Message, result: IndexingResult) -> None:
        [embedding] = await self._embed_all([f"{message.role.value}: {message.content}"])
        if embedding is None:
            result.errors.append("Reference storage failed: message embedding unavailable")
            return

        reference = MessageReference(
            id=generate_reference_id(message.id),
            message_id=message.id,
            conversation_id=message.conversation_id,
            user_id=message.user_id,
            role=message.role,
            content=message.content,
            project_id=message.project_id,
            embedding=embedding,
            created_at=message.created_at,
        )
        try:
            await self.vector_store.store_message_reference(reference)
            result.references_created = 1
        except STEP_ERRORS as e:
            result.errors.append(f"Reference storage failed: {e}")

    async def _index_memory_chunks(self, message: Message, result: IndexingResult) -> None:
        outcome = self.memory_extractor.extract(message.content, message.role)
        result.errors.extend(f"Memory extraction: {error}" for error in outcome.errors)
        if not outcome.items:
            return

        embeddings = await self._embed_all([item.content for item in outcome.items])
        chunks = [
            MemoryChunk(
                id=generate_memory_chunk_id(),
                content=item.content,
                type=item.type,
                importance=item.importance,
                source_message_id=message.id,
                conversation_id=message.conversation_id,
                user_id=message.user_id,
                project_id=message.project_id,
                embedding=embedding,
                metadata=item.metadata,
            )
            for item, embedding in zip(outcome.items, embeddings)
            if embedding is not None
        ]

        skipped = len(outcome.items) - len(chunks)
        if skipped:
            result.errors.append(f"Memory extraction: {skipped} chunks skipped, embedding unavailable")
        if not chunks:
            return

        try:
            result.memory_chunks_extracted = await self.vector_store.insert_memory_chunks(chunks)
        except STEP_ERRORS as e:
            result.errors.append(f"Memory extraction failed: {e}")

    async def _index_knowledge(self, message: Message, result: IndexingResult) -> None:
        outcome = self.knowledge_extractor.extract(message.content, message.role)
        result.errors.extend(f"Knowledge extraction: {error}" for error in outcome.errors)
        if not outcome.items:
            return

        embeddings = await self._embed_all([item.content for item in outcome.items])
        entries = [
            KnowledgeEntry(
                id=generate_knowledge_id(),
                title=item.title,
                content=item.content,
                category=item.category,
                tags=frozenset(item.tags),
                importance=item.importance,
                embedding=embedding,
                source_id=message.id,
                user_id=message.user_id,
                project_id=message.project_id,
                metadata={
                    "conversation_id": message.conversation_id,
                    "message_role": message.role.value,
                    "auto_extracted": True,
                },
            )
            for item, embedding in zip(outcome.items, embeddings)
            if embedding is not None
        ]

        skipped = len(outcome.items) - len(entries)
        if skipped:
            result.errors.append(f"Knowledge extraction: {skipped} items skipped, embedding unavailable")
        if not entries:
            return

        try:
            result.knowledge_items_created = await self.vector_store.insert_knowledge_entries(
                entries
            )
        except STEP_ERRORS as e:
            result.errors.append(f"Knowledge extraction failed: {e}")

    async def _update_summary(self, message: Message, result: IndexingResult) -> None:
        if self.summary_store is None:
            return

        async with self._summary_lock:
            try:
                current = await self.summary_store.get_summary(message.conversation_id)
                current = current or ConversationSummary(
                    conversation_id=message.conversation_id, user_id=message.user_id
                )
                updated = current.model_copy(
                    update={
                        "summary": roll_summary(
                            current.summary,
                            message.content,
                            message.role,
                            max_chars=self.summary.max_chars,
                            keep_chars=self.summary.keep_chars,
                        ),
                        "message_count": current.message_count + 1,
                        "last_updated": datetime.now(),
                    }
                )
                await self.summary_store.save_summary(updated)
                result.summary_updated = True
            except STEP_ERRORS as e:
                result.errors.append(f"Summary update failed: {e}")

    async def batch_index_messages(self, messages: list[Message]) -> list[IndexingResult]:
        """
        Index many messages with bounded concurrency.

        Returns:
            One result per message, in input order. A message that cannot be
            indexed at all (blank content) gets a result with the error recorded.
        """
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))

        async def _run(message: Message) -> IndexingResult:
            async with semaphore:
                try:
                    return await self.index_message(message)
                except EmptyInputError as e:
                    return IndexingResult(message_id=message.id, errors=[e.message])

        results = await asyncio.gather(*[_run(m) for m in messages])

        logger.bind(
            messages=len(messages),
            memory_chunks=sum(r.memory_chunks_extracted for r in results),
            knowledge_items=sum(r.knowledge_items_created for r in results),
        ).info(f"Batch indexed {len(messages)} messages")
        return list(results)

    async def index_file(
        self,
        file_id: str,
        user_id: str,
        filename: str,
        content: str,
        file_type: str = "text/plain",
        project_id: str | None = None,
    ) -> FileIndexingResult:
        """
        Chunk, embed and store a file's text.

        Concurrent calls for the same file ID share one run.

        Raises:
            EmptyInputError: If the file content is blank
        """
        if not content or not content.strip():
            raise EmptyInputError("File content cannot be empty", {"file_id": file_id})

        return await self.registry.run_once(
            f"file:{file_id}",
            lambda: self._index_file(file_id, user_id, filename, content, file_type, project_id),
        )

    async def _index_file(
        self,
        file_id: str,
        user_id: str,
        filename: str,
        content: str,
        file_type: str,
        project_id: str | None,
    ) -> FileIndexingResult:
        start_time = time.perf_counter()
        result = FileIndexingResult(file_id=file_id)

        try:
            embedded = await self.embedding_service.embed_file(
                filename,
                content,
                file_type,
                size=self.chunking.chunk_size,
                overlap=self.chunking.chunk_overlap,
            )
            chunks = [
                FileChunk(
                    id=generate_file_chunk_id(file_id, item.chunk.index),
                    file_id=file_id,
                    user_id=user_id,
                    project_id=project_id,
                    filename=filename,
                    file_type=file_type,
                    content=item.chunk.content,
                    chunk_index=item.chunk.index,
                    start_char=item.chunk.start_char,
                    end_char=item.chunk.end_char,
                    embedding=item.embedding,
                )
                for item in embedded
            ]
            result.chunks_indexed = await self.vector_store.insert_file_chunks(chunks)
        except STEP_ERRORS as e:
            logger.bind(file_id=file_id, filename=filename, error=str(e)).error(
                f"Failed to index file {file_id}: {e}"
            )
            result.errors.append(f"File indexing failed: {e}")

        result.processing_time_ms = (time.perf_counter() - start_time) * 1000
        return result
