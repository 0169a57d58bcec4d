"""
Tests for the REST API.

The engine is built from in-memory fakes and installed on the module,
so the lifespan (and its real providers) never runs.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

import app as app_module
from contextindex.config import (
    Config,
    EmbedderConfig,
    IndexingConfig,
    RetrievalConfig,
    SearchConfig,
    TokenizerConfig,
)
from contextindex.models.memory import MemoryChunk, MemoryChunkType
from contextindex.services.context_engine import ContextEngine
from tests.fakes import (
    DIMENSION,
    FakeEmbedder,
    InMemorySummaryStore,
    InMemoryVectorStore,
    hash_vector,
)


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def engine(monkeypatch, store):
    """Engine over fakes, installed as the app's global engine."""
    config = Config(
        embedder=EmbedderConfig(dimension=DIMENSION),
        tokenizer=TokenizerConfig(provider="approximate"),
        indexing=IndexingConfig(retry_attempts=1, retry_base_delay_ms=1),
        retrieval=RetrievalConfig(similarity_threshold=0.9),
        search=SearchConfig(default_sources=["local", "gmail", "drive"], semantic_threshold=0.9),
    )
    current = ContextEngine(FakeEmbedder(), store, config)
    monkeypatch.setattr(app_module, "engine", current)
    return current


@pytest.fixture
def client():
    return TestClient(app_module.app)


async def _seed_memory(store: InMemoryVectorStore, text: str = "deploy checklist") -> None:
    await store.insert_memory_chunks(
        [
            MemoryChunk(
                id="mem_seed",
                content=text,
                type=MemoryChunkType.FACT,
                importance=0.6,
                source_message_id="msg-0",
                conversation_id="conv-0",
                user_id="user-1",
                embedding=hash_vector(text),
            )
        ]
    )


MESSAGE = {
    "id": "msg-1",
    "conversation_id": "conv-1",
    "user_id": "user-1",
    "role": "user",
    "content": "I live in Seattle and I prefer Python for backend work.",
}


@pytest.mark.unit
class TestHealth:
    """Test health endpoint."""

    def test_health_without_engine(self, client, monkeypatch):
        """Test health reports initializing before startup."""
        monkeypatch.setattr(app_module, "engine", None)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["engine_initialized"] is False

    def test_health_with_engine(self, client, engine):
        """Test health reports the configured embedder."""
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["worker_running"] is False
        assert body["embedding_model"] == "openai/text-embedding-3-small"

    def test_endpoints_need_engine(self, client, monkeypatch):
        """Test endpoints return 503 before startup."""
        monkeypatch.setattr(app_module, "engine", None)

        assert client.post("/messages/index", json=MESSAGE).status_code == 503
        assert client.get("/stats").status_code == 503


@pytest.mark.unit
class TestIndexing:
    """Test indexing endpoints."""

    def test_index_message_wait(self, client, engine, store):
        """Test inline indexing returns the result."""
        response = client.post("/messages/index", params={"wait": "true"}, json=MESSAGE)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "indexed"
        assert body["result"]["references_created"] == 1
        assert body["result"]["memory_chunks_extracted"] >= 1
        assert "msgref_msg-1" in store.rows

    def test_index_blank_message(self, client, engine):
        """Test blank content is rejected."""
        response = client.post("/messages/index", json={**MESSAGE, "content": "   "})
        assert response.status_code == 400

    def test_queue_without_worker(self, client, engine):
        """Test queued indexing needs a running worker."""
        response = client.post("/messages/index", json=MESSAGE)
        assert response.status_code == 503

    def test_invalid_message(self, client, engine):
        """Test schema violations are rejected."""
        response = client.post("/messages/index", json={**MESSAGE, "role": "system"})
        assert response.status_code == 422

    def test_batch_index(self, client, engine):
        """Test batch indexing keeps request order and records blank messages."""
        messages = [
            {**MESSAGE, "id": "msg-a"},
            {**MESSAGE, "id": "msg-b", "content": ""},
        ]

        response = client.post("/messages/index/batch", json={"messages": messages})

        assert response.status_code == 200
        first, second = response.json()
        assert first["message_id"] == "msg-a"
        assert first["errors"] == []
        assert second["message_id"] == "msg-b"
        assert second["errors"]

    def test_index_file(self, client, engine, store):
        """Test file indexing stores chunks."""
        response = client.post(
            "/files/index",
            json={
                "file_id": "file-1",
                "user_id": "user-1",
                "filename": "notes.txt",
                "content": "Release notes for the deploy pipeline.",
            },
        )

        assert response.status_code == 200
        assert response.json()["chunks_indexed"] == 1
        assert "file-1_chunk_0" in store.rows

    def test_index_empty_file(self, client, engine):
        """Test empty file content is rejected."""
        response = client.post(
            "/files/index",
            json={"file_id": "file-1", "user_id": "user-1", "filename": "a.txt", "content": ""},
        )
        assert response.status_code == 400


@pytest.mark.unit
class TestRetrieval:
    """Test context and search endpoints."""

    def test_gather_context(self, client, engine, store):
        """Test context includes a matching memory and its rendering."""
        asyncio.run(_seed_memory(store))

        response = client.post("/context", json={"text": "deploy checklist", "user_id": "user-1"})

        assert response.status_code == 200
        body = response.json()
        assert [m["id"] for m in body["context"]["relevant_memories"]] == ["mem_seed"]
        assert body["context"]["sources"] == ["memories"]
        assert "### Remembered Facts" in body["formatted"]

    def test_gather_context_empty(self, client, engine):
        """Test no matches gives an empty rendering."""
        body = client.post("/context", json={"text": "anything", "user_id": "user-1"}).json()
        assert body["formatted"] == ""

    def test_unified_search(self, client, engine, store):
        """Test unified search merges local results and reports every source."""
        asyncio.run(_seed_memory(store))

        response = client.get(
            "/search/unified", params={"q": "deploy checklist", "user_id": "user-1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["sources"] == ["local", "gmail", "drive"]
        assert body["breakdown"] == {"local": 1, "gmail": 0, "drive": 0}
        assert body["results"][0]["id"] == "mem_seed"

    def test_unified_search_blank_query(self, client, engine):
        """Test a blank query is rejected."""
        response = client.get("/search/unified", params={"q": " ", "user_id": "user-1"})
        assert response.status_code == 400

    def test_gather_context_requires_user(self, client, engine):
        """Test a blank user id is rejected before any search runs."""
        response = client.post("/context", json={"text": "deploy checklist", "user_id": ""})
        assert response.status_code == 422

    def test_unified_search_project_scope(self, client, engine, store):
        """Test the project parameter hides content from other projects."""
        asyncio.run(_seed_memory(store))

        response = client.get(
            "/search/unified",
            params={"q": "deploy checklist", "user_id": "user-1", "project_id": "proj-9"},
        )

        assert response.status_code == 200
        assert response.json()["breakdown"]["local"] == 0

    def test_semantic_search(self, client, engine, store):
        """Test semantic search with a content type filter."""
        asyncio.run(_seed_memory(store))

        response = client.post(
            "/search/semantic",
            json={
                "query": "deploy checklist",
                "user_id": "user-1",
                "content_types": ["memory"],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["content_type"] == "memory"

    def test_semantic_search_blank_query(self, client, engine):
        """Test a blank semantic query is rejected."""
        response = client.post("/search/semantic", json={"query": "", "user_id": "user-1"})
        assert response.status_code == 400


@pytest.mark.unit
class TestStatistics:
    """Test statistics endpoints."""

    def test_cache_stats(self, client, engine):
        """Test cache stats after a repeated embedding."""
        client.post("/context", json={"text": "anything", "user_id": "user-1"})
        client.post("/context", json={"text": "anything", "user_id": "user-1"})

        body = client.get("/cache/stats").json()

        assert body["enabled"] is True
        assert body["total_requests"] == 2
        assert body["hit_rate"] == 50.0

    def test_stats(self, client, engine, store):
        """Test per-corpus counts."""
        asyncio.run(_seed_memory(store))

        body = client.get("/stats", params={"user_id": "user-1"}).json()

        assert body["content"]["memory"] == 1
        assert body["content"]["knowledge"] == 0
        assert body["indexing"]["pending"] == 0


@pytest.mark.unit
class TestConversationSummaryEndpoint:
    """Test the conversation summary endpoint."""

    def test_summary_after_indexing(self, client, monkeypatch, store):
        """Test an indexed user message shows up in its conversation summary."""
        current = ContextEngine(
            FakeEmbedder(),
            store,
            Config(
                embedder=EmbedderConfig(dimension=DIMENSION),
                tokenizer=TokenizerConfig(provider="approximate"),
            ),
            summary_store=InMemorySummaryStore(),
        )
        monkeypatch.setattr(app_module, "engine", current)

        indexed = client.post("/messages/index", params={"wait": "true"}, json=MESSAGE).json()
        response = client.get("/conversations/conv-1/summary")

        assert indexed["result"]["summary_updated"] is True
        assert response.status_code == 200
        body = response.json()
        assert body["message_count"] == 1
        assert body["summary"].startswith("- User: I live in Seattle")

    def test_summary_unknown_conversation(self, client, engine):
        """Test a conversation without a summary is a 404."""
        response = client.get("/conversations/conv-404/summary")
        assert response.status_code == 404
