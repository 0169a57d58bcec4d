"""
Shared fixtures.
"""

from datetime import datetime

import pytest

from contextindex.config import TokenizerConfig
from contextindex.core.embeddings.cache import EmbeddingCache
from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.tokenizer import Tokenizer
from contextindex.models.message import Message, MessageRole
from tests.fakes import DIMENSION, FakeEmbedder, InMemoryVectorStore, no_sleep


@pytest.fixture
def fake_embedder():
    """Deterministic embedder."""
    return FakeEmbedder()


@pytest.fixture
def vector_store():
    """Empty in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def embedding_cache():
    """Embedding cache with default bounds."""
    return EmbeddingCache(max_size=1000)


@pytest.fixture
def approximate_tokenizer():
    """Tokenizer that needs no encoding files."""
    return Tokenizer(TokenizerConfig(provider="approximate"))


@pytest.fixture
def embedding_service(fake_embedder, embedding_cache, approximate_tokenizer):
    """Embedding service over the fake embedder with caching and instant retries."""
    return EmbeddingService(
        fake_embedder,
        cache=embedding_cache,
        tokenizer=approximate_tokenizer,
        dimension=DIMENSION,
        sleep=no_sleep,
    )


@pytest.fixture
def user_message():
    """User message that triggers several extractors."""
    return Message(
        id="msg-1",
        conversation_id="conv-1",
        user_id="user-1",
        role=MessageRole.USER,
        content="I live in Seattle and I prefer Python for backend work.",
        project_id="proj-1",
        created_at=datetime(2024, 1, 15, 12, 0, 0),
    )
