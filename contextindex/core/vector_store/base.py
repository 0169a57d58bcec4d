"""
Base interface for the content store.

One store holds every embedded corpus (message references, memory chunks,
knowledge entries, file chunks). Writes are append-only; reads are a
single similarity search across corpora, filtered by user, project and
content type.
"""

from abc import ABC, abstractmethod

from contextindex.models.file import FileChunk
from contextindex.models.knowledge import KnowledgeEntry
from contextindex.models.memory import MemoryChunk
from contextindex.models.message import MessageReference
from contextindex.models.search import ContentMatch, ContentType


class VectorStore(ABC):
    """Abstract base class for vector storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the vector store (create collections/indices).

        Raises:
            VectorStoreError: If initialization fails
        """
        pass

    @abstractmethod
    async def store_message_reference(self, reference: MessageReference) -> None:
        """
        Store the back-reference for an indexed message.

        Storing the same message again overwrites its reference.

        Raises:
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def insert_memory_chunks(self, chunks: list[MemoryChunk]) -> int:
        """
        Append memory chunks.

        Returns:
            Number of chunks written

        Raises:
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def insert_knowledge_entries(self, entries: list[KnowledgeEntry]) -> int:
        """
        Append knowledge entries.

        Returns:
            Number of entries written

        Raises:
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def insert_file_chunks(self, chunks: list[FileChunk]) -> int:
        """
        Append file chunks.

        Returns:
            Number of chunks written

        Raises:
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def search_all_content(
        self,
        query_embedding: list[float],
        user_id: str,
        match_threshold: float = 0.7,
        match_count: int = 20,
        project_id: str | None = None,
        content_types: list[ContentType] | None = None,
    ) -> list[ContentMatch]:
        """
        Similarity search across all corpora for one user.

        Args:
            query_embedding: Query vector
            user_id: Owner user ID (always enforced)
            match_threshold: Minimum cosine similarity
            match_count: Maximum results
            project_id: Optional project scope
            content_types: Optional corpora to search (all if None)

        Returns:
            Matches ordered by similarity, highest first

        Raises:
            VectorStoreError: If the search fails
        """
        pass

    @abstractmethod
    async def count_content(
        self, user_id: str | None = None, content_type: ContentType | None = None
    ) -> int:
        """Count stored items, optionally per user and content type."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection to the vector store."""
        pass
