"""
Conversation summary store interface.
"""

from abc import ABC, abstractmethod

from contextindex.models.conversation import ConversationSummary


class SummaryStore(ABC):
    """Keeps one ConversationSummary per conversation."""

    async def initialize(self) -> None:
        """Prepare backing storage."""
        pass

    @abstractmethod
    async def get_summary(self, conversation_id: str) -> ConversationSummary | None:
        """
        Get the stored summary for a conversation.

        Raises:
            PersistenceError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def save_summary(self, summary: ConversationSummary) -> None:
        """
        Insert or replace a conversation's summary.

        Raises:
            PersistenceError: If the store cannot be written
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass
