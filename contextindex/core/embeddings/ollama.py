"""
Ollama embedder using native ollama-python SDK.
"""

import ollama

from contextindex.core.embeddings.base import Embedder
from contextindex.utils.exceptions import EmptyInputError, ProviderError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for local embedding models (nomic-embed-text, mxbai-embed-large, ...).

    Ollama has no batch endpoint, so batches use the concurrent single
    calls of the base class.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 60.0,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Raises:
            EmptyInputError: If text is blank
            ProviderError: If Ollama embedding fails
        """
        if not text or not text.strip():
            raise EmptyInputError("Text cannot be empty")

        try:
            response = await self.client.embeddings(model=self.model, prompt=text, **kwargs)

            if not response or "embedding" not in response:
                raise ProviderError("Ollama returned invalid embedding response")

            return list(response["embedding"])
        except ProviderError:
            raise
        except Exception as e:
            logger.bind(model=self.model, host=self.host, error=str(e)).error(
                f"Ollama embedding error: {e}"
            )
            raise ProviderError(f"Ollama embedding error: {e}") from e
