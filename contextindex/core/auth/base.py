"""
Token provider interface for authenticated content sources.
"""

from abc import ABC, abstractmethod


class TokenProvider(ABC):
    """Supplies valid access tokens for external content sources."""

    async def initialize(self) -> None:
        """Prepare backing storage."""
        pass

    @abstractmethod
    async def get_valid_access_token(self, user_id: str) -> str | None:
        """
        Get a currently valid access token for a user.

        Returns:
            Access token, or None if the user must re-authenticate
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass
