"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from contextindex.core.embeddings.base import Embedder
from contextindex.utils.exceptions import EmptyInputError, ProviderError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    Uses the native batch API. For text-embedding-3 models the output
    dimension can be pinned with ``dimensions``.
    """

    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            dimensions: Optional output dimension (text-embedding-3 models only)
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.dimensions = dimensions

        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

    def _request_kwargs(self, kwargs: dict) -> dict:
        if self.dimensions and self.model.startswith("text-embedding-3"):
            kwargs.setdefault("dimensions", self.dimensions)
        return kwargs

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using OpenAI.

        Raises:
            EmptyInputError: If text is blank
            ProviderError: If OpenAI API call fails
        """
        if not text or not text.strip():
            raise EmptyInputError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(
                model=self.model, input=text, **self._request_kwargs(kwargs)
            )

            if not response.data:
                raise ProviderError("OpenAI returned empty embedding response")

            return response.data[0].embedding
        except ProviderError:
            raise
        except Exception as e:
            logger.bind(model=self.model, error=str(e), error_type=type(e).__name__).error(
                f"OpenAI embedding error: {e}"
            )
            raise ProviderError(f"OpenAI embedding error: {e}") from e

    async def batch_embed(
        self, texts: list[str], batch_size: int = 2048, **kwargs
    ) -> list[list[float]]:
        """
        Batch embed using OpenAI's native batch API.

        OpenAI supports up to 2048 inputs per request.

        Raises:
            EmptyInputError: If texts list is empty
            ProviderError: If batch embedding fails or returns a short batch
        """
        if not texts:
            raise EmptyInputError("Texts list cannot be empty")

        try:
            embeddings = []

            for i in range(0, len(texts), batch_size):
                batch = texts[i : i + batch_size]

                response = await self.client.embeddings.create(
                    model=self.model, input=batch, **self._request_kwargs(dict(kwargs))
                )

                if not response.data or len(response.data) != len(batch):
                    raise ProviderError(
                        "OpenAI returned an incomplete batch embedding response",
                        {"expected": len(batch), "received": len(response.data or [])},
                    )

                # Response items carry their input index
                ordered = sorted(response.data, key=lambda item: item.index)
                embeddings.extend(item.embedding for item in ordered)

            return embeddings
        except ProviderError:
            raise
        except Exception as e:
            logger.bind(
                model=self.model, batch_size=batch_size, num_texts=len(texts), error=str(e)
            ).error(f"OpenAI batch embedding error: {e}")
            raise ProviderError(f"OpenAI batch embedding error: {e}") from e

    async def get_dimension(self) -> int:
        """Get embedding dimension from the pinned size or the known model table."""
        if self.dimensions:
            return self.dimensions
        if self.model in self._MODEL_DIMENSIONS:
            return self._MODEL_DIMENSIONS[self.model]
        return await super().get_dimension()

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
