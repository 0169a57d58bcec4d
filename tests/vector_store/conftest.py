"""
Shared test fixtures for vector store tests.
"""

from datetime import datetime

import pytest

from contextindex.core.vector_store.qdrant import QdrantStore
from contextindex.models.memory import MemoryChunk, MemoryChunkType


@pytest.fixture
def qdrant_store():
    """Create Qdrant store for testing."""
    return QdrantStore(
        host="localhost",
        port=6333,
        collection_name="test_content",
        vector_size=4,
    )


@pytest.fixture
def sample_chunk():
    """Create sample memory chunk for testing."""
    return MemoryChunk(
        id="mem_1",
        content="User lives in Seattle",
        type=MemoryChunkType.FACT,
        importance=0.7,
        source_message_id="msg-1",
        conversation_id="conv-1",
        user_id="user-1",
        project_id="proj-1",
        embedding=[0.1, 0.2, 0.3, 0.4],
        created_at=datetime(2024, 1, 15, 10, 30),
    )
