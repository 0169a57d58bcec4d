"""
Tests for IndexingCoordinator.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.vector_store.qdrant import QdrantStore
from contextindex.models.message import Message, MessageRole
from contextindex.models.search import ContentType
from contextindex.services.indexing_coordinator import IndexingCoordinator
from contextindex.utils.exceptions import EmptyInputError
from tests.fakes import (
    DIMENSION,
    FakeEmbedder,
    InMemorySummaryStore,
    InMemoryVectorStore,
    no_sleep,
)


def make_message(id_: str, content: str, role: MessageRole = MessageRole.USER) -> Message:
    return Message(
        id=id_, conversation_id="conv-1", user_id="user-1", role=role, content=content
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestIndexMessage:
    """Test single-message indexing."""

    async def test_index_user_message(self, coordinator, vector_store, user_message):
        """Test a user message stores a reference, a memory and a knowledge item."""
        result = await coordinator.index_message(user_message)

        assert result.errors == []
        assert result.succeeded
        assert result.references_created == 1
        assert result.memory_chunks_extracted == 1
        assert result.knowledge_items_created == 1
        assert result.processing_time_ms >= 0

        [reference] = vector_store.rows_of(ContentType.MESSAGE)
        assert reference["id"] == "msgref_msg-1"
        assert reference["project_id"] == "proj-1"
        [memory] = vector_store.rows_of(ContentType.MEMORY)
        assert memory["id"].startswith("mem_")
        assert memory["source_id"] == "msg-1"
        [knowledge] = vector_store.rows_of(ContentType.KNOWLEDGE)
        assert knowledge["id"].startswith("kb_")

    async def test_reference_embeds_role_prefix(self, coordinator, fake_embedder, user_message):
        """Test the reference embedding is computed from the role-prefixed text."""
        await coordinator.index_message(user_message)
        assert f"user: {user_message.content}" in fake_embedder.texts_embedded

    async def test_blank_message_rejected(self, coordinator):
        """Test blank content raises EmptyInputError."""
        with pytest.raises(EmptyInputError):
            await coordinator.index_message(make_message("m", "   "))

    async def test_message_without_extractions(self, coordinator):
        """Test a plain message only stores its reference."""
        result = await coordinator.index_message(make_message("m", "ok thanks"))

        assert result.errors == []
        assert result.references_created == 1
        assert result.memory_chunks_extracted == 0
        assert result.knowledge_items_created == 0

    async def test_concurrent_calls_coalesce(self, coordinator, vector_store, user_message):
        """Test concurrent calls for one message share a single run."""
        first, second = await asyncio.gather(
            coordinator.index_message(user_message), coordinator.index_message(user_message)
        )

        assert first is second
        assert vector_store.writes["store_message_reference"] == 1
        assert vector_store.writes["insert_memory_chunks"] == 1
        await asyncio.sleep(0)
        assert len(coordinator.registry) == 0

    async def test_sequential_calls_rerun(self, coordinator, vector_store, user_message):
        """Test a new call after completion starts a fresh run."""
        await coordinator.index_message(user_message)
        await asyncio.sleep(0)
        await coordinator.index_message(user_message)

        assert vector_store.writes["store_message_reference"] == 2
        # Reference ID is deterministic, so it is overwritten
        assert len(vector_store.rows_of(ContentType.MESSAGE)) == 1

    async def test_store_failure_recorded(self, embedding_service, user_message):
        """Test a failing memory write is recorded while other steps succeed."""
        store = InMemoryVectorStore(fail_on={"insert_memory_chunks"})
        coordinator = IndexingCoordinator(embedding_service, store)

        result = await coordinator.index_message(user_message)

        assert result.memory_chunks_extracted == 0
        assert result.knowledge_items_created == 1
        assert result.references_created == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Memory extraction failed")

    async def test_reference_failure_recorded(self, embedding_service, user_message):
        """Test a failing reference write is recorded."""
        store = InMemoryVectorStore(fail_on={"store_message_reference"})
        coordinator = IndexingCoordinator(embedding_service, store)

        result = await coordinator.index_message(user_message)

        assert result.references_created == 0
        assert any(e.startswith("Reference storage failed") for e in result.errors)

    async def test_embedding_outage_recorded(self, approximate_tokenizer, user_message):
        """Test a provider outage yields errors instead of raising."""
        service = EmbeddingService(
            FakeEmbedder(always_fail=True),
            tokenizer=approximate_tokenizer,
            dimension=DIMENSION,
            sleep=no_sleep,
        )
        store = InMemoryVectorStore()
        coordinator = IndexingCoordinator(service, store)

        result = await coordinator.index_message(user_message)

        assert result.references_created == 0
        assert result.memory_chunks_extracted == 0
        assert "Reference storage failed: message embedding unavailable" in result.errors
        assert any("skipped, embedding unavailable" in e for e in result.errors)
        assert store.rows == {}

    async def test_unexpected_error_propagates(self, embedding_service, user_message):
        """Test errors outside the step error types are raised."""
        store = InMemoryVectorStore()
        store.store_message_reference = AsyncMock(side_effect=RuntimeError("boom"))
        coordinator = IndexingCoordinator(embedding_service, store)

        with pytest.raises(RuntimeError, match="boom"):
            await coordinator.index_message(user_message)

    async def test_statement_with_deadline(self, coordinator, vector_store):
        """Test a location, employer and deadline statement indexes cleanly."""
        message = make_message(
            "msg-seattle", "I live in Seattle and work at Microsoft. Deadline March 15"
        )

        result = await coordinator.index_message(message)

        assert result.errors == []
        assert result.memory_chunks_extracted >= 1
        assert result.references_created == 1
        assert len(vector_store.rows_of(ContentType.MEMORY)) == result.memory_chunks_extracted

    async def test_backend_error_body_recorded(self, embedding_service, user_message):
        """Test Qdrant write errors that carry JSON are recorded per step."""
        mock_client = AsyncMock()
        mock_client.upsert.side_effect = RuntimeError(
            'Unexpected Response: b\'{"status":{"error":"Wrong input"}}\''
        )
        store = QdrantStore(collection_name="test_content", vector_size=DIMENSION)
        coordinator = IndexingCoordinator(embedding_service, store)

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            result = await coordinator.index_message(user_message)

        assert result.references_created == 0
        assert result.memory_chunks_extracted == 0
        assert any(
            e.startswith("Reference storage failed") and "Wrong input" in e for e in result.errors
        )
        assert any(e.startswith("Memory extraction failed") for e in result.errors)


@pytest.mark.unit
@pytest.mark.asyncio
class TestBatchIndex:
    """Test batch indexing."""

    async def test_results_in_order(self, coordinator):
        """Test one result per message in input order."""
        messages = [make_message(f"m{i}", f"I need to finish task {i}") for i in range(5)]

        results = await coordinator.batch_index_messages(messages)

        assert [r.message_id for r in results] == [m.id for m in messages]
        assert all(r.memory_chunks_extracted == 1 for r in results)

    async def test_blank_message_recorded(self, coordinator):
        """Test a blank message yields an error result without failing the batch."""
        results = await coordinator.batch_index_messages(
            [make_message("a", "hello there"), make_message("b", "")]
        )

        assert results[0].errors == []
        assert results[1].errors == ["Message content cannot be empty"]

    async def test_empty_batch(self, coordinator):
        """Test an empty batch returns no results."""
        assert await coordinator.batch_index_messages([]) == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestIndexFile:
    """Test file indexing."""

    async def test_index_file_chunks(self, coordinator, vector_store):
        """Test a long file is stored as overlapping chunks."""
        result = await coordinator.index_file(
            "file-1", "user-1", "notes.txt", "abcdefghij" * 250, project_id="proj-1"
        )

        assert result.errors == []
        assert result.chunks_indexed == 3
        ids = sorted(row["id"] for row in vector_store.rows_of(ContentType.FILE))
        assert ids == ["file-1_chunk_0", "file-1_chunk_1", "file-1_chunk_2"]

    async def test_blank_file_rejected(self, coordinator):
        """Test blank file content raises EmptyInputError."""
        with pytest.raises(EmptyInputError):
            await coordinator.index_file("file-1", "user-1", "empty.txt", "  ")

    async def test_store_failure_recorded(self, embedding_service):
        """Test a failing chunk write is recorded in the result."""
        store = InMemoryVectorStore(fail_on={"insert_file_chunks"})
        coordinator = IndexingCoordinator(embedding_service, store)

        result = await coordinator.index_file("file-1", "user-1", "a.txt", "content")

        assert result.chunks_indexed == 0
        assert result.errors[0].startswith("File indexing failed")


@pytest.mark.unit
@pytest.mark.asyncio
class TestConversationSummary:
    """Test the rolling summary step."""

    async def test_user_message_updates_summary(self, embedding_service, vector_store):
        """Test a user statement lands in the conversation summary."""
        summaries = InMemorySummaryStore()
        coordinator = IndexingCoordinator(embedding_service, vector_store, summary_store=summaries)

        result = await coordinator.index_message(
            make_message("msg-1", "I live in Seattle and work at Microsoft. Deadline March 15")
        )

        assert result.summary_updated is True
        summary = summaries.summaries["conv-1"]
        assert summary.summary == "- User: I live in Seattle and work at Microsoft"
        assert summary.message_count == 1
        assert summary.user_id == "user-1"
        assert summary.last_updated is not None

    async def test_assistant_message_only_counts(self, embedding_service, vector_store):
        """Test assistant messages bump the count without adding text."""
        summaries = InMemorySummaryStore()
        coordinator = IndexingCoordinator(embedding_service, vector_store, summary_store=summaries)

        await coordinator.index_message(make_message("msg-1", "I need a faster build."))
        await coordinator.index_message(
            make_message("msg-2", "I want to help with that.", role=MessageRole.ASSISTANT)
        )

        summary = summaries.summaries["conv-1"]
        assert summary.summary == "- User: I need a faster build"
        assert summary.message_count == 2

    async def test_concurrent_messages_all_counted(self, embedding_service, vector_store):
        """Test overlapping messages in one conversation do not lose updates."""
        summaries = InMemorySummaryStore()
        coordinator = IndexingCoordinator(embedding_service, vector_store, summary_store=summaries)

        await asyncio.gather(
            coordinator.index_message(make_message("msg-1", "I like tea.")),
            coordinator.index_message(make_message("msg-2", "I like coffee.")),
        )

        summary = summaries.summaries["conv-1"]
        assert summary.message_count == 2
        assert "I like tea" in summary.summary
        assert "I like coffee" in summary.summary

    async def test_store_failure_recorded(self, embedding_service, vector_store, user_message):
        """Test a failing summary store is recorded while other steps succeed."""
        coordinator = IndexingCoordinator(
            embedding_service, vector_store, summary_store=InMemorySummaryStore(fail=True)
        )

        result = await coordinator.index_message(user_message)

        assert result.summary_updated is False
        assert result.references_created == 1
        assert result.errors == ['Summary update failed: summary store unavailable: {"code": 503}']

    async def test_no_store_skips_step(self, coordinator, user_message):
        """Test the step is skipped when no summary store is configured."""
        result = await coordinator.index_message(user_message)

        assert result.summary_updated is False
        assert result.errors == []
