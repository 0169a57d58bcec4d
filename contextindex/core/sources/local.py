"""
Local content source backed by the vector store.
"""

from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.sources.base import SourceAdapter, make_snippet
from contextindex.core.vector_store.base import VectorStore
from contextindex.models.search import ContentType, SearchResult
from contextindex.utils.exceptions import EmptyInputError, PersistenceError, ProviderError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class VectorStoreSource(SourceAdapter):
    """
    Semantic search over indexed content.

    Register one instance per view, e.g. "local" for everything and "kb"
    restricted to knowledge entries.
    """

    requires_token = False

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        name: str = "local",
        content_types: list[ContentType] | None = None,
        match_threshold: float = 0.7,
        project_id: str | None = None,
    ):
        self.name = name
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.content_types = content_types
        self.match_threshold = match_threshold
        self.project_id = project_id

    async def search(
        self,
        query: str,
        token: str | None,
        user_id: str,
        limit: int = 10,
        project_id: str | None = None,
    ) -> list[SearchResult]:
        scope = project_id if project_id is not None else self.project_id
        try:
            embedding = await self.embedding_service.embed(query)
            matches = await self.vector_store.search_all_content(
                embedding,
                user_id=user_id,
                match_threshold=self.match_threshold,
                match_count=limit,
                project_id=scope,
                content_types=self.content_types,
            )
        except (ProviderError, PersistenceError, EmptyInputError) as e:
            logger.bind(source=self.name, user_id=user_id, error=str(e)).warning(
                f"{self.name} search failed: {e}"
            )
            return []

        return [
            SearchResult(
                id=match.id,
                source=self.name,
                content_type=match.content_type.value,
                title=match.title,
                content=match.content,
                snippet=make_snippet(match.content),
                similarity=match.similarity,
                created_at=match.created_at,
                metadata={**match.metadata, "source_id": match.source_id},
            )
            for match in matches
        ]
