"""
Data models for contextindex.

- Message, MessageReference: conversational input and its persisted reference
- MemoryChunk, KnowledgeEntry, FileChunk: embedded, persisted entities
- TextChunk: chunker output
- IndexingResult, FileIndexingResult: indexing outcomes
- ConversationSummary: rolling per-conversation summary
- ContentMatch, SearchResult, SearchFilters, UnifiedSearchResponse, RelevantContext: search
"""

from contextindex.models.chunk import TextChunk
from contextindex.models.conversation import ConversationSummary
from contextindex.models.file import FileChunk
from contextindex.models.indexing import FileIndexingResult, IndexingResult
from contextindex.models.knowledge import KnowledgeCategory, KnowledgeEntry
from contextindex.models.memory import MemoryChunk, MemoryChunkType
from contextindex.models.message import Message, MessageReference, MessageRole
from contextindex.models.search import (
    ContentMatch,
    ContentType,
    RelevantContext,
    SearchFilters,
    SearchResult,
    UnifiedSearchResponse,
)

__all__ = [
    "Message",
    "MessageReference",
    "MessageRole",
    "MemoryChunk",
    "MemoryChunkType",
    "KnowledgeEntry",
    "KnowledgeCategory",
    "FileChunk",
    "TextChunk",
    "IndexingResult",
    "FileIndexingResult",
    "ConversationSummary",
    "ContentMatch",
    "ContentType",
    "SearchResult",
    "SearchFilters",
    "UnifiedSearchResponse",
    "RelevantContext",
]
