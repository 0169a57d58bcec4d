"""
Message models.

Messages are immutable once created. A MessageReference is the persisted
back-reference to an indexed message, carrying its embedding.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Author role of a conversational message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single conversational message submitted for indexing."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique message ID")
    conversation_id: str = Field(..., description="Parent conversation ID")
    user_id: str = Field(..., description="Owner user ID")
    role: MessageRole = Field(..., description="Author role")
    content: str = Field(..., description="Message text")
    project_id: str | None = Field(default=None, description="Optional project scope")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")


class MessageReference(BaseModel):
    """Persisted, embedded back-reference to a message."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Reference ID (msgref_<message id>)")
    message_id: str = Field(..., description="Referenced message ID")
    conversation_id: str = Field(..., description="Parent conversation ID")
    user_id: str = Field(..., description="Owner user ID")
    role: MessageRole = Field(..., description="Author role")
    content: str = Field(..., description="Message text")
    project_id: str | None = Field(default=None, description="Optional project scope")
    embedding: list[float] = Field(..., min_length=1, description="Vector embedding")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
