"""
KnowledgeEntry model: a titled, categorized item of durable knowledge.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class KnowledgeCategory(str, Enum):
    """Knowledge base categories."""

    PROJECT = "project"
    DECISION = "decision"
    PREFERENCE = "preference"
    TECHNICAL = "technical"
    ISSUE = "issue"


class KnowledgeEntry(BaseModel):
    """Knowledge base entry with a non-empty embedding."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique knowledge entry ID (kb_xxx)")
    title: str = Field(..., min_length=1, description="Short title")
    content: str = Field(..., min_length=1, description="Entry body")
    category: KnowledgeCategory = Field(..., description="Category")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Tag set")
    importance: float = Field(default=0.5, ge=0.0, le=1.0, description="Importance score")
    embedding: list[float] = Field(..., min_length=1, description="Vector embedding")
    source_id: str = Field(..., description="ID of the source message")
    source_type: str = Field(default="conversation", description="Kind of source")
    user_id: str = Field(..., description="Owner user ID")
    project_id: str | None = Field(default=None, description="Optional project scope")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional metadata")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
