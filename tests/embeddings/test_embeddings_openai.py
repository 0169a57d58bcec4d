"""
Tests for OpenAI embedder.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from contextindex.core.embeddings.openai import OpenAIEmbedder
from contextindex.utils.exceptions import EmptyInputError, ProviderError


def _response(*vectors, indexes=None):
    response = MagicMock()
    indexes = indexes or list(range(len(vectors)))
    response.data = [MagicMock(embedding=v, index=i) for v, i in zip(vectors, indexes)]
    return response


@pytest.fixture
def openai_embedder():
    """Create OpenAI embedder for testing."""
    return OpenAIEmbedder(api_key="test-key", model="text-embedding-3-small", dimensions=1536)


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenAIEmbedder:
    """Test OpenAI embedder."""

    async def test_embed(self, openai_embedder):
        """Test single embedding pins the configured dimension."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = _response([0.1, 0.2])

            result = await openai_embedder.embed("hello")

            assert result == [0.1, 0.2]
            mock_create.assert_called_once_with(
                model="text-embedding-3-small", input="hello", dimensions=1536
            )

    async def test_embed_blank(self, openai_embedder):
        """Test blank text raises EmptyInputError."""
        with pytest.raises(EmptyInputError):
            await openai_embedder.embed("")

    async def test_embed_api_error(self, openai_embedder):
        """Test API failures become ProviderError."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.side_effect = RuntimeError("rate limited")
            with pytest.raises(ProviderError, match="rate limited"):
                await openai_embedder.embed("hello")

    async def test_batch_embed_orders_by_index(self, openai_embedder):
        """Test batch results are reordered by the response index."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = _response([2.0], [1.0], indexes=[1, 0])

            results = await openai_embedder.batch_embed(["a", "b"])

            assert results == [[1.0], [2.0]]

    async def test_batch_embed_short_response(self, openai_embedder):
        """Test a response with fewer items than inputs raises ProviderError."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = _response([1.0])
            with pytest.raises(ProviderError, match="incomplete"):
                await openai_embedder.batch_embed(["a", "b"])

    async def test_batch_embed_splits_requests(self, openai_embedder):
        """Test inputs are split by batch_size."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.side_effect = [_response([1.0], [2.0]), _response([3.0])]

            results = await openai_embedder.batch_embed(["a", "b", "c"], batch_size=2)

            assert results == [[1.0], [2.0], [3.0]]
            assert mock_create.call_count == 2

    async def test_get_dimension(self):
        """Test dimension comes from the pin or the model table."""
        assert await OpenAIEmbedder(api_key="k", dimensions=512).get_dimension() == 512
        assert (
            await OpenAIEmbedder(api_key="k", model="text-embedding-3-large").get_dimension()
            == 3072
        )
