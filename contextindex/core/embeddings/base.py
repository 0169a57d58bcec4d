"""
Embedding provider interface.

A provider turns text into a fixed-length vector. The EmbeddingService
sits in front of every provider and owns caching, truncation and retries,
so providers only translate calls and failures.
"""

import asyncio
from abc import ABC, abstractmethod

from contextindex.utils.exceptions import ProviderError

# Text embedded once to learn a provider's vector length
DIMENSION_SAMPLE = "dimension sample"


class Embedder(ABC):
    """
    An embedding provider.

    Implementations raise EmptyInputError for blank text and ProviderError
    for any transport or response failure.
    """

    #: Learned vector length, set by the first get_dimension() sample call
    _dimension: int | None = None

    @abstractmethod
    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Embed one text.

        Raises:
            EmptyInputError: If text is blank
            ProviderError: If the provider call fails
        """
        pass

    async def batch_embed(
        self, texts: list[str], batch_size: int = 32, **kwargs
    ) -> list[list[float]]:
        """
        Embed many texts, in input order.

        Providers without a batch endpoint get concurrent single calls,
        at most batch_size at a time.
        """
        vectors: list[list[float]] = []
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            vectors.extend(await asyncio.gather(*[self.embed(t, **kwargs) for t in batch]))
        return vectors

    async def get_dimension(self) -> int:
        """
        Vector length, learned from one sample call and remembered.

        Raises:
            ProviderError: If the sample call returns an empty vector
        """
        if self._dimension is None:
            vector = await self.embed(DIMENSION_SAMPLE)
            if not vector:
                raise ProviderError("Provider returned an empty embedding for the dimension sample")
            self._dimension = len(vector)
        return self._dimension

    async def close(self) -> None:
        """Release provider connections."""
        pass
