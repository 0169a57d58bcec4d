"""
Factory for creating embedder providers.
"""

from contextindex.config import EmbedderConfig
from contextindex.core.embeddings.base import Embedder
from contextindex.core.embeddings.ollama import OllamaEmbedder
from contextindex.core.embeddings.openai import OpenAIEmbedder
from contextindex.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Raises:
            ConfigurationError: If the provider is unsupported or misconfigured
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url or "http://localhost:11434",
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required", {"provider": "openai"})
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                dimensions=config.dimension,
                base_url=config.base_url,
                timeout=config.timeout,
            )
        else:
            raise ConfigurationError(
                f"Unsupported embedder provider: {config.provider}",
                {"provider": config.provider},
            )

    @staticmethod
    async def get_dimension(embedder: Embedder, config: EmbedderConfig | None = None) -> int:
        """
        Get embedding dimension.

        The configured dimension wins; otherwise the provider is asked.
        """
        if config and config.dimension:
            return config.dimension
        return await embedder.get_dimension()
