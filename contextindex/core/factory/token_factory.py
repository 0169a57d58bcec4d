"""
Factory for creating token providers.
"""

from contextindex.config import TokenStoreConfig
from contextindex.core.auth.sqlite_provider import SQLiteTokenProvider


class TokenProviderFactory:
    """Factory for creating token providers from configuration."""

    @staticmethod
    def create(config: TokenStoreConfig) -> SQLiteTokenProvider:
        return SQLiteTokenProvider(
            db_path=config.db_path,
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_url=config.token_url,
            expiry_buffer_seconds=config.expiry_buffer_seconds,
            timeout=config.timeout,
        )
