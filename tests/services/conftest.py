"""
Fixtures for service tests.
"""

import pytest

from contextindex.config import IndexingConfig
from contextindex.services.indexing_coordinator import IndexingCoordinator


@pytest.fixture
def coordinator(embedding_service, vector_store):
    """Coordinator over the fake embedder and in-memory store."""
    return IndexingCoordinator(
        embedding_service,
        vector_store,
        config=IndexingConfig(max_concurrency=2, retry_attempts=2, retry_base_delay_ms=1),
    )
