"""
Content sources searched by unified search.

- VectorStoreSource: indexed local content (semantic)
- GmailSource, DriveSource: Google APIs (token-gated)
"""

from contextindex.core.sources.base import SourceAdapter
from contextindex.core.sources.google import DriveSource, GmailSource
from contextindex.core.sources.local import VectorStoreSource

__all__ = ["SourceAdapter", "VectorStoreSource", "GmailSource", "DriveSource"]
