"""Vector store abstraction and the Qdrant implementation."""

from contextindex.core.vector_store.base import VectorStore
from contextindex.core.vector_store.qdrant import QdrantStore

__all__ = ["VectorStore", "QdrantStore"]
