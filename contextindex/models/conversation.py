"""
ConversationSummary model: a rolling digest of what a user said in a conversation.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ConversationSummary(BaseModel):
    """Per-conversation summary, rewritten as each message is indexed."""

    conversation_id: str = Field(..., min_length=1)
    user_id: str
    summary: str = ""
    message_count: int = Field(default=0, ge=0)
    last_updated: datetime | None = None
