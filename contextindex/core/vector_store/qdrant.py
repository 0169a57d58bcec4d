"""
Qdrant content store.

All corpora share one collection. The ``content_type`` payload field
distinguishes message references, memory chunks, knowledge entries and
file chunks, so one query can search across them.
"""

from datetime import datetime
from typing import Any
from uuid import NAMESPACE_DNS, UUID, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    HnswConfigDiff,
    MatchAny,
    MatchValue,
    PointStruct,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    VectorParams,
)

from contextindex.core.vector_store.base import VectorStore
from contextindex.models.file import FileChunk
from contextindex.models.knowledge import KnowledgeEntry
from contextindex.models.memory import MemoryChunk
from contextindex.models.message import MessageReference
from contextindex.models.search import ContentMatch, ContentType
from contextindex.utils.exceptions import ValidationError, VectorStoreError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class QdrantStore(VectorStore):
    """
    Qdrant vector store for all embedded content.

    Features:
    - HNSW indexing for fast search
    - Optional int8 quantization
    - Payload indexes on user_id, project_id, content_type and created_at
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "content",
        vector_size: int = 1536,
        use_grpc: bool = False,
        use_quantization: bool = False,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        on_disk: bool = False,
        timeout: int = 30,
        https: bool = False,
    ):
        """
        Initialize Qdrant store.

        Args:
            host: Qdrant host
            port: Qdrant port (6333 for HTTP, 6334 for gRPC)
            collection_name: Collection name
            vector_size: Embedding dimension
            use_grpc: Use gRPC connection
            use_quantization: Use int8 quantization
            hnsw_m: HNSW M parameter (connections per node)
            hnsw_ef_construct: HNSW ef_construct parameter
            on_disk: Store vectors on disk
            timeout: Request timeout in seconds
            https: Connect over TLS
        """
        self.host = host
        self.port = port
        self.https = https
        self.collection_name = collection_name
        self.vector_size = vector_size
        self.use_grpc = use_grpc
        self.use_quantization = use_quantization
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.client: AsyncQdrantClient | None = None

    def _to_uuid(self, id_str: str) -> str:
        """Convert string ID to UUID format consistently."""
        try:
            UUID(id_str)
            return id_str
        except ValueError:
            return str(uuid5(NAMESPACE_DNS, id_str))

    async def connect(self) -> None:
        """
        Establish connection to Qdrant.

        Raises:
            VectorStoreError: If connection fails
        """
        if self.client is None:
            try:
                self.client = AsyncQdrantClient(
                    host=self.host,
                    port=self.port,
                    prefer_grpc=self.use_grpc,
                    https=self.https,
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.bind(host=self.host, port=self.port, error=str(e)).error(
                    f"Failed to connect to Qdrant: {e}"
                )
                raise VectorStoreError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self) -> None:
        """
        Create the collection and payload indexes if missing.

        Raises:
            VectorStoreError: If initialization fails
        """
        try:
            await self.connect()

            collections = await self.client.get_collections()
            if self.collection_name in [col.name for col in collections.collections]:
                return

            vectors_config = VectorParams(
                size=self.vector_size,
                distance=Distance.COSINE,
                hnsw_config=HnswConfigDiff(m=self.hnsw_m, ef_construct=self.hnsw_ef_construct),
                on_disk=self.on_disk,
            )
            if self.use_quantization:
                vectors_config.quantization_config = ScalarQuantization(
                    scalar=ScalarQuantizationConfig(
                        type=ScalarType.INT8, quantile=0.99, always_ram=True
                    )
                )

            await self.client.create_collection(
                collection_name=self.collection_name, vectors_config=vectors_config
            )

            for field_name, schema in (
                ("user_id", "keyword"),
                ("project_id", "keyword"),
                ("content_type", "keyword"),
                ("created_at", "datetime"),
            ):
                await self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=schema,
                )
        except Exception as e:
            logger.bind(collection=self.collection_name, error=str(e)).error(
                f"Failed to initialize Qdrant collection: {e}"
            )
            raise VectorStoreError(f"Failed to initialize Qdrant collection: {e}") from e

    def _point(
        self,
        id_str: str,
        vector: list[float],
        content_type: ContentType,
        user_id: str,
        project_id: str | None,
        title: str,
        content: str,
        source_id: str | None,
        created_at: datetime,
        metadata: dict[str, Any],
    ) -> PointStruct:
        if len(vector) != self.vector_size:
            raise ValidationError(
                f"Embedding has {len(vector)} dimensions, store expects {self.vector_size}",
                {"id": id_str},
            )
        return PointStruct(
            id=self._to_uuid(id_str),
            vector=vector,
            payload={
                "original_id": id_str,
                "content_type": content_type.value,
                "user_id": user_id,
                "project_id": project_id,
                "title": title,
                "content": content,
                "source_id": source_id,
                "created_at": created_at.isoformat(),
                "metadata": metadata,
            },
        )

    def _reference_point(self, reference: MessageReference) -> PointStruct:
        return self._point(
            reference.id,
            reference.embedding,
            ContentType.MESSAGE,
            reference.user_id,
            reference.project_id,
            f"{reference.role.value} message",
            reference.content,
            reference.conversation_id,
            reference.created_at,
            {"message_id": reference.message_id, "role": reference.role.value},
        )

    def _memory_point(self, chunk: MemoryChunk) -> PointStruct:
        return self._point(
            chunk.id,
            chunk.embedding,
            ContentType.MEMORY,
            chunk.user_id,
            chunk.project_id,
            chunk.type.value,
            chunk.content,
            chunk.source_message_id,
            chunk.created_at,
            {
                **chunk.metadata,
                "chunk_type": chunk.type.value,
                "importance": chunk.importance,
                "conversation_id": chunk.conversation_id,
            },
        )

    def _knowledge_point(self, entry: KnowledgeEntry) -> PointStruct:
        return self._point(
            entry.id,
            entry.embedding,
            ContentType.KNOWLEDGE,
            entry.user_id,
            entry.project_id,
            entry.title,
            entry.content,
            entry.source_id,
            entry.created_at,
            {
                **entry.metadata,
                "category": entry.category.value,
                "tags": sorted(entry.tags),
                "importance": entry.importance,
                "source_type": entry.source_type,
            },
        )

    def _file_point(self, chunk: FileChunk) -> PointStruct:
        return self._point(
            chunk.id,
            chunk.embedding,
            ContentType.FILE,
            chunk.user_id,
            chunk.project_id,
            chunk.filename,
            chunk.content,
            chunk.file_id,
            chunk.created_at,
            {
                "file_type": chunk.file_type,
                "chunk_index": chunk.chunk_index,
                "start_char": chunk.start_char,
                "end_char": chunk.end_char,
            },
        )

    async def _upsert(self, points: list[PointStruct], what: str) -> int:
        if not points:
            return 0
        try:
            await self.connect()
            await self.client.upsert(
                collection_name=self.collection_name, points=points, wait=True
            )
            return len(points)
        except Exception as e:
            logger.bind(collection=self.collection_name, count=len(points), error=str(e)).error(
                f"Failed to write {what}: {e}"
            )
            raise VectorStoreError(f"Failed to write {what}: {e}") from e

    async def store_message_reference(self, reference: MessageReference) -> None:
        await self._upsert([self._reference_point(reference)], "message reference")

    async def insert_memory_chunks(self, chunks: list[MemoryChunk]) -> int:
        return await self._upsert([self._memory_point(c) for c in chunks], "memory chunks")

    async def insert_knowledge_entries(self, entries: list[KnowledgeEntry]) -> int:
        return await self._upsert(
            [self._knowledge_point(e) for e in entries], "knowledge entries"
        )

    async def insert_file_chunks(self, chunks: list[FileChunk]) -> int:
        return await self._upsert([self._file_point(c) for c in chunks], "file chunks")

    def _build_filter(
        self,
        user_id: str | None,
        project_id: str | None = None,
        content_types: list[ContentType] | None = None,
    ) -> Filter | None:
        conditions = []
        # User filter is always applied for searches
        if user_id:
            conditions.append(FieldCondition(key="user_id", match=MatchValue(value=user_id)))
        if project_id:
            conditions.append(
                FieldCondition(key="project_id", match=MatchValue(value=project_id))
            )
        if content_types:
            conditions.append(
                FieldCondition(
                    key="content_type",
                    match=MatchAny(any=[ContentType(t).value for t in content_types]),
                )
            )
        return Filter(must=conditions) if conditions else None

    def _payload_to_match(self, point_id: Any, payload: dict[str, Any], score: float) -> ContentMatch:
        created_at = payload.get("created_at")
        return ContentMatch(
            id=payload.get("original_id", str(point_id)),
            content_type=ContentType(payload["content_type"]),
            title=payload.get("title") or "",
            content=payload.get("content") or "",
            similarity=score,
            source_id=payload.get("source_id"),
            project_id=payload.get("project_id"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            metadata=payload.get("metadata") or {},
        )

    async def search_all_content(
        self,
        query_embedding: list[float],
        user_id: str,
        match_threshold: float = 0.7,
        match_count: int = 20,
        project_id: str | None = None,
        content_types: list[ContentType] | None = None,
    ) -> list[ContentMatch]:
        if not user_id:
            raise ValidationError("user_id is required for content search")

        try:
            await self.connect()
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=match_count,
                score_threshold=match_threshold,
                query_filter=self._build_filter(user_id, project_id, content_types),
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.bind(collection=self.collection_name, user_id=user_id, error=str(e)).error(
                f"Content search failed: {e}"
            )
            raise VectorStoreError(f"Content search failed: {e}") from e

        return [
            self._payload_to_match(point.id, point.payload, point.score)
            for point in response.points
        ]

    async def count_content(
        self, user_id: str | None = None, content_type: ContentType | None = None
    ) -> int:
        try:
            await self.connect()
            response = await self.client.count(
                collection_name=self.collection_name,
                count_filter=self._build_filter(
                    user_id, content_types=[content_type] if content_type else None
                ),
            )
            return response.count
        except Exception as e:
            raise VectorStoreError(f"Failed to count content: {e}") from e

    async def close(self) -> None:
        """Close the connection to Qdrant."""
        if self.client is not None:
            await self.client.close()
            self.client = None
