"""
Search and retrieval models.

- ContentMatch: a row returned by the vector store
- SearchResult: a normalized result from any content source
- SearchFilters: filters applied across sources
- UnifiedSearchResponse: merged, ranked results with per-source counts
- RelevantContext: context gathered for a new request
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Content corpora held by the vector store."""

    MESSAGE = "message"
    MEMORY = "memory"
    KNOWLEDGE = "knowledge"
    FILE = "file"


class ContentMatch(BaseModel):
    """Vector store row with its similarity to the query."""

    id: str
    content_type: ContentType
    title: str = ""
    content: str = ""
    similarity: float = Field(..., description="Cosine similarity to the query")
    source_id: str | None = None
    project_id: str | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResult(BaseModel):
    """Normalized search result from a content source."""

    id: str
    source: str = Field(..., description="Name of the source adapter")
    content_type: str = Field(..., description="Kind of content (email, file, knowledge, ...)")
    title: str = ""
    content: str = ""
    snippet: str = ""
    similarity: float = Field(default=0.0, description="Relevance on the source's scale")
    created_at: datetime | None = None
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchFilters(BaseModel):
    """Filters applied to unified search."""

    limit: int = Field(default=10, ge=1, le=100, description="Max results per source")
    min_similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    project_id: str | None = None
    content_types: list[str] | None = None


class UnifiedSearchResponse(BaseModel):
    """Merged search response."""

    success: bool = True
    query: str
    sources: list[str]
    results: list[SearchResult] = Field(default_factory=list)
    breakdown: dict[str, int] = Field(default_factory=dict)
    total_results: int = 0


class RelevantContext(BaseModel):
    """Context gathered from prior content for a new request."""

    relevant_knowledge: list[ContentMatch] = Field(default_factory=list)
    relevant_memories: list[ContentMatch] = Field(default_factory=list)
    relevant_messages: list[ContentMatch] = Field(default_factory=list)
    relevant_files: list[ContentMatch] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.relevant_knowledge
            or self.relevant_memories
            or self.relevant_messages
            or self.relevant_files
        )
