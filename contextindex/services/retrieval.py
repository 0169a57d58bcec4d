"""
Context retrieval for new requests.

Embeds the incoming text once, then searches each corpus (knowledge,
memories, prior messages, files) concurrently. A corpus whose search
fails contributes nothing; retrieval itself never fails on a backend
error.
"""

import asyncio
import re
from datetime import datetime

from contextindex.config import RetrievalConfig
from contextindex.core.embeddings.service import EmbeddingService
from contextindex.core.vector_store.base import VectorStore
from contextindex.models.search import ContentMatch, ContentType, RelevantContext
from contextindex.services.unified_search import to_utc
from contextindex.utils.exceptions import (
    EmptyInputError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

_GENERAL_QUESTION = re.compile(
    r"^(?:what is|what are|how does|how do|explain|define|tell me about)\b", re.IGNORECASE
)
_PERSONAL_REFERENCE = re.compile(
    r"\b(?:my|our|we|i|me|remember|earlier|last time|before|previous|project)\b", re.IGNORECASE
)


def should_gather_context(text: str) -> bool:
    """
    Decide whether a request can benefit from prior context.

    General knowledge questions that make no personal or historical
    reference skip retrieval.
    """
    stripped = text.strip()
    if not stripped:
        return False
    if _GENERAL_QUESTION.match(stripped) and not _PERSONAL_REFERENCE.search(stripped):
        return False
    return True


class RetrievalEngine:
    """
    Gathers relevant prior content for a request.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        config: RetrievalConfig | None = None,
    ):
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.config = config or RetrievalConfig()

    async def _search_corpus(
        self,
        embedding: list[float],
        user_id: str,
        content_type: ContentType,
        limit: int,
        project_id: str | None,
    ) -> list[ContentMatch]:
        if limit <= 0:
            return []
        try:
            return await self.vector_store.search_all_content(
                embedding,
                user_id=user_id,
                match_threshold=self.config.similarity_threshold,
                match_count=limit,
                project_id=project_id,
                content_types=[content_type],
            )
        except (PersistenceError, ValidationError) as e:
            logger.bind(content_type=content_type.value, user_id=user_id, error=str(e)).warning(
                f"Context search failed for {content_type.value}: {e}"
            )
            return []

    async def gather_relevant_context(
        self,
        current_text: str,
        user_id: str,
        project_id: str | None = None,
    ) -> RelevantContext:
        """
        Find prior content relevant to current_text.

        Returns:
            RelevantContext; empty for blank text, skipped general questions,
            or when the text cannot be embedded
        """
        if not current_text or not current_text.strip():
            return RelevantContext()

        if self.config.skip_general_questions and not should_gather_context(current_text):
            logger.debug("Skipping context retrieval for general question")
            return RelevantContext()

        try:
            embedding = await self.embedding_service.embed(current_text)
        except ProviderError as e:
            logger.bind(user_id=user_id, error=str(e)).warning(
                f"Context retrieval skipped, query embedding failed: {e}"
            )
            return RelevantContext()

        knowledge, memories, messages, files = await asyncio.gather(
            self._search_corpus(
                embedding, user_id, ContentType.KNOWLEDGE, self.config.max_knowledge, project_id
            ),
            self._search_corpus(
                embedding, user_id, ContentType.MEMORY, self.config.max_memories, project_id
            ),
            self._search_corpus(
                embedding, user_id, ContentType.MESSAGE, self.config.max_messages, project_id
            ),
            self._search_corpus(
                embedding, user_id, ContentType.FILE, self.config.max_files, project_id
            ),
        )

        sources = []
        if knowledge:
            sources.append("knowledge_base")
        if memories:
            sources.append("memories")
        if messages:
            sources.append("conversation_history")
        if files:
            sources.append("files")

        all_matches = [*knowledge, *memories, *messages, *files]
        top = max((m.similarity for m in all_matches), default=0.0)

        return RelevantContext(
            relevant_knowledge=knowledge,
            relevant_memories=memories,
            relevant_messages=messages,
            relevant_files=files,
            confidence=min(1.0, max(0.0, top)),
            sources=sources,
        )

    async def semantic_search(
        self,
        query: str,
        user_id: str,
        project_id: str | None = None,
        content_types: list[ContentType] | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 20,
        threshold: float = 0.7,
    ) -> list[ContentMatch]:
        """
        Search indexed content directly.

        Unlike gather_relevant_context, failures propagate to the caller.

        Raises:
            EmptyInputError: If the query is blank
            ProviderError: If the query cannot be embedded
            PersistenceError: If the store search fails
        """
        if not query or not query.strip():
            raise EmptyInputError("Search query cannot be empty")

        embedding = await self.embedding_service.embed(query)
        matches = await self.vector_store.search_all_content(
            embedding,
            user_id=user_id,
            match_threshold=threshold,
            match_count=limit,
            project_id=project_id,
            content_types=content_types,
        )

        if start_date or end_date:
            start = to_utc(start_date) if start_date else None
            end = to_utc(end_date) if end_date else None
            matches = [
                m
                for m in matches
                if m.created_at is not None
                and (start is None or to_utc(m.created_at) >= start)
                and (end is None or to_utc(m.created_at) <= end)
            ]
        return matches


def _preview(text: str, length: int = 200) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= length else text[:length] + "..."


def format_context_for_ai(context: RelevantContext | None) -> str:
    """
    Render gathered context as a prompt section.

    Returns an empty string when there is nothing to show. Never raises.
    """
    if context is None or context.is_empty():
        return ""

    sections: list[str] = ["## Relevant Context"]

    if context.relevant_knowledge:
        sections.append("\n### Knowledge Base")
        for item in context.relevant_knowledge:
            category = item.metadata.get("category", "general")
            sections.append(f"- **{item.title or 'Untitled'}** ({category}): {_preview(item.content)}")

    if context.relevant_memories:
        sections.append("\n### Remembered Facts")
        for item in context.relevant_memories:
            sections.append(f"- {_preview(item.content)}")

    if context.relevant_messages:
        sections.append("\n### Previous Conversations")
        for item in context.relevant_messages:
            role = item.metadata.get("role", "message")
            sections.append(f"- [{role}] {_preview(item.content, 150)}")

    if context.relevant_files:
        sections.append("\n### Related Files")
        for item in context.relevant_files:
            file_type = item.metadata.get("file_type", "file")
            sections.append(f"- {item.title or 'Untitled'} ({file_type}): {_preview(item.content, 150)}")

    sections.append(f"\nContext confidence: {round(context.confidence * 100)}%")
    return "\n".join(sections)
