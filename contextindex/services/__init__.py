"""
Services for contextindex.

- ContextEngine: component wiring and lifecycle
- IndexingCoordinator: message and file indexing pipeline
- IndexingWorker: bounded background indexing pool
- MemoryExtractor, KnowledgeExtractor: rule-based extraction
- RetrievalEngine: context gathering and semantic search
- UnifiedSearchAggregator: merged multi-source search
- roll_summary: rolling per-conversation summaries
"""

from contextindex.services.context_engine import ContextEngine
from contextindex.services.conversation_summary import extract_key_points, roll_summary
from contextindex.services.extractors import KnowledgeExtractor, MemoryExtractor
from contextindex.services.indexing_coordinator import IndexingCoordinator
from contextindex.services.indexing_worker import IndexingWorker
from contextindex.services.retrieval import (
    RetrievalEngine,
    format_context_for_ai,
    should_gather_context,
)
from contextindex.services.unified_search import UnifiedSearchAggregator

__all__ = [
    "ContextEngine",
    "IndexingCoordinator",
    "IndexingWorker",
    "MemoryExtractor",
    "KnowledgeExtractor",
    "RetrievalEngine",
    "format_context_for_ai",
    "should_gather_context",
    "UnifiedSearchAggregator",
    "extract_key_points",
    "roll_summary",
]
