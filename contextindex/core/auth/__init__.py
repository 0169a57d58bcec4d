"""Access-token providers for authenticated content sources."""

from contextindex.core.auth.base import TokenProvider
from contextindex.core.auth.sqlite_provider import SQLiteTokenProvider, TokenRecord, TokenStatus

__all__ = ["TokenProvider", "SQLiteTokenProvider", "TokenRecord", "TokenStatus"]
