"""
Factory modules for creating contextindex components.

Provides factories for the embedder, vector store and token provider.
"""

from contextindex.core.factory.embedder_factory import EmbedderFactory
from contextindex.core.factory.token_factory import TokenProviderFactory
from contextindex.core.factory.vector_factory import VectorStoreFactory

__all__ = [
    "EmbedderFactory",
    "VectorStoreFactory",
    "TokenProviderFactory",
]
