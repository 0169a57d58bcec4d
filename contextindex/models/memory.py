"""
MemoryChunk model: a small, typed fact extracted from a message.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryChunkType(str, Enum):
    """Kinds of extracted memory."""

    FACT = "fact"
    DECISION = "decision"
    PREFERENCE = "preference"
    ACTION_ITEM = "action_item"
    RELATIONSHIP = "relationship"
    EVENT = "event"
    SUMMARY = "summary"


class MemoryChunk(BaseModel):
    """
    Extracted memory with a non-empty embedding.

    A chunk can only be constructed once its embedding exists, so an
    un-embedded chunk is never persisted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique memory chunk ID (mem_xxx)")
    content: str = Field(..., min_length=1, description="Extracted text")
    type: MemoryChunkType = Field(..., description="Memory kind")
    importance: float = Field(..., ge=0.0, le=1.0, description="Importance score")
    source_message_id: str = Field(..., description="Message the chunk was extracted from")
    conversation_id: str = Field(..., description="Parent conversation ID")
    user_id: str = Field(..., description="Owner user ID")
    project_id: str | None = Field(default=None, description="Optional project scope")
    embedding: list[float] = Field(..., min_length=1, description="Vector embedding")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional metadata")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
