"""
Tests for Qdrant vector store implementation.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from contextindex.core.vector_store.qdrant import QdrantStore
from contextindex.models.message import MessageReference, MessageRole
from contextindex.models.search import ContentType
from contextindex.utils.exceptions import ValidationError, VectorStoreError


def _client_without_collections() -> AsyncMock:
    mock_client = AsyncMock()
    mock_collections = MagicMock()
    mock_collections.collections = []
    mock_client.get_collections.return_value = mock_collections
    return mock_client


@pytest.mark.unit
@pytest.mark.asyncio
class TestQdrantStore:
    """Test Qdrant vector store implementation."""

    async def test_initialization(self, qdrant_store):
        """Test store initialization."""
        assert qdrant_store.host == "localhost"
        assert qdrant_store.port == 6333
        assert qdrant_store.collection_name == "test_content"
        assert qdrant_store.vector_size == 4
        assert qdrant_store.client is None

    async def test_to_uuid_with_valid_uuid(self, qdrant_store):
        """Test UUID conversion with valid UUID."""
        uuid_str = "550e8400-e29b-41d4-a716-446655440000"
        assert qdrant_store._to_uuid(uuid_str) == uuid_str

    async def test_to_uuid_with_string_id(self, qdrant_store):
        """Test UUID conversion with string ID is stable."""
        result = qdrant_store._to_uuid("mem_1")
        assert len(result) == 36
        assert result == qdrant_store._to_uuid("mem_1")

    async def test_connect_failure(self, qdrant_store):
        """Test connection failure handling."""
        with patch("contextindex.core.vector_store.qdrant.AsyncQdrantClient") as mock_client:
            mock_client.side_effect = Exception("Connection failed")
            with pytest.raises(VectorStoreError, match="Failed to connect"):
                await qdrant_store.connect()

    async def test_initialize_new_collection(self, qdrant_store):
        """Test initialization creates the collection and payload indexes."""
        mock_client = _client_without_collections()

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            await qdrant_store.initialize()

        mock_client.create_collection.assert_called_once()
        indexed = {
            call.kwargs["field_name"] for call in mock_client.create_payload_index.call_args_list
        }
        assert indexed == {"user_id", "project_id", "content_type", "created_at"}

    async def test_initialize_existing_collection(self, qdrant_store):
        """Test initialization skips an existing collection."""
        mock_client = AsyncMock()
        existing = MagicMock()
        existing.name = "test_content"
        mock_client.get_collections.return_value = MagicMock(collections=[existing])

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            await qdrant_store.initialize()

        mock_client.create_collection.assert_not_called()

    async def test_insert_memory_chunks(self, qdrant_store, sample_chunk):
        """Test memory chunks are upserted with their payload."""
        mock_client = AsyncMock()

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            count = await qdrant_store.insert_memory_chunks([sample_chunk])

        assert count == 1
        [point] = mock_client.upsert.call_args.kwargs["points"]
        assert point.payload["original_id"] == "mem_1"
        assert point.payload["content_type"] == "memory"
        assert point.payload["source_id"] == "msg-1"
        assert point.payload["metadata"]["chunk_type"] == "fact"

    async def test_insert_empty_list(self, qdrant_store):
        """Test empty inserts never reach Qdrant."""
        with patch("contextindex.core.vector_store.qdrant.AsyncQdrantClient") as mock_client:
            assert await qdrant_store.insert_file_chunks([]) == 0
            mock_client.assert_not_called()

    async def test_dimension_mismatch(self, qdrant_store):
        """Test a vector of the wrong length is rejected."""
        reference = MessageReference(
            id="msgref_msg-1",
            message_id="msg-1",
            conversation_id="conv-1",
            user_id="user-1",
            role=MessageRole.USER,
            content="hello",
            embedding=[0.1, 0.2],
        )
        with pytest.raises(ValidationError):
            await qdrant_store.store_message_reference(reference)

    async def test_upsert_failure(self, qdrant_store, sample_chunk):
        """Test write failures are wrapped as VectorStoreError."""
        mock_client = AsyncMock()
        mock_client.upsert.side_effect = Exception("disk full")

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            with pytest.raises(VectorStoreError, match="memory chunks"):
                await qdrant_store.insert_memory_chunks([sample_chunk])

    async def test_search_all_content(self, qdrant_store):
        """Test search maps points back to content matches."""
        point = MagicMock()
        point.id = "3f1c0000-0000-0000-0000-000000000000"
        point.score = 0.91
        point.payload = {
            "original_id": "kb_1",
            "content_type": "knowledge",
            "title": "Deploy",
            "content": "deploy checklist",
            "source_id": "msg-1",
            "project_id": "proj-1",
            "created_at": datetime(2024, 1, 15).isoformat(),
            "metadata": {"category": "technical"},
        }
        mock_client = AsyncMock()
        mock_client.query_points.return_value = MagicMock(points=[point])

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            [match] = await qdrant_store.search_all_content(
                [0.1, 0.2, 0.3, 0.4],
                user_id="user-1",
                match_threshold=0.5,
                match_count=3,
                content_types=[ContentType.KNOWLEDGE],
            )

        assert match.id == "kb_1"
        assert match.content_type == ContentType.KNOWLEDGE
        assert match.similarity == 0.91
        assert match.created_at == datetime(2024, 1, 15)
        kwargs = mock_client.query_points.call_args.kwargs
        assert kwargs["limit"] == 3
        assert kwargs["score_threshold"] == 0.5
        keys = [condition.key for condition in kwargs["query_filter"].must]
        assert keys == ["user_id", "content_type"]

    async def test_search_requires_user(self, qdrant_store):
        """Test searching without a user is rejected."""
        with pytest.raises(ValidationError):
            await qdrant_store.search_all_content([0.1, 0.2, 0.3, 0.4], user_id="")

    async def test_search_failure(self, qdrant_store):
        """Test search failures are wrapped as VectorStoreError."""
        mock_client = AsyncMock()
        mock_client.query_points.side_effect = Exception("timeout")

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            with pytest.raises(VectorStoreError):
                await qdrant_store.search_all_content([0.1, 0.2, 0.3, 0.4], user_id="user-1")

    async def test_search_failure_with_json_body(self, qdrant_store):
        """Test a server error carrying a JSON body still surfaces as VectorStoreError."""
        mock_client = AsyncMock()
        mock_client.query_points.side_effect = RuntimeError(
            'Unexpected Response: b\'{"status":{"error":"Wrong input"}}\''
        )

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            with pytest.raises(VectorStoreError, match="Wrong input"):
                await qdrant_store.search_all_content([0.1, 0.2, 0.3, 0.4], user_id="user-1")

    async def test_upsert_failure_with_json_body(self, qdrant_store, sample_chunk):
        """Test a write error carrying a JSON body still surfaces as VectorStoreError."""
        mock_client = AsyncMock()
        mock_client.upsert.side_effect = RuntimeError('{"status":{"error":"Out of disk"}}')

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            with pytest.raises(VectorStoreError, match="Out of disk"):
                await qdrant_store.insert_memory_chunks([sample_chunk])

    async def test_count_content(self, qdrant_store):
        """Test counting content by type."""
        mock_client = AsyncMock()
        mock_client.count.return_value = MagicMock(count=7)

        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            count = await qdrant_store.count_content("user-1", ContentType.MEMORY)

        assert count == 7

    async def test_close(self, qdrant_store):
        """Test closing the client."""
        mock_client = AsyncMock()
        with patch(
            "contextindex.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client
        ):
            await qdrant_store.connect()
            await qdrant_store.close()

        mock_client.close.assert_called_once()
        assert qdrant_store.client is None

    async def test_grpc_configuration(self):
        """Test gRPC settings are passed to the client."""
        store = QdrantStore(use_grpc=True, port=6334)
        with patch("contextindex.core.vector_store.qdrant.AsyncQdrantClient") as mock_client:
            await store.connect()
        assert mock_client.call_args.kwargs["prefer_grpc"] is True
        assert mock_client.call_args.kwargs["port"] == 6334
