"""Rolling per-conversation summaries."""

from contextindex.core.summaries.base import SummaryStore
from contextindex.core.summaries.sqlite_store import SQLiteSummaryStore

__all__ = ["SummaryStore", "SQLiteSummaryStore"]
