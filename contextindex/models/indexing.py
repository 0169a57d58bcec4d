"""
Indexing result models.
"""

from pydantic import BaseModel, Field


class IndexingResult(BaseModel):
    """
    Outcome of indexing one message.

    Counts equal the number of entities actually persisted in this run.
    Step failures are recorded in errors instead of being raised.
    """

    message_id: str = Field(..., description="Indexed message ID")
    memory_chunks_extracted: int = Field(default=0, ge=0)
    knowledge_items_created: int = Field(default=0, ge=0)
    references_created: int = Field(default=0, ge=0)
    summary_updated: bool = Field(default=False, description="Conversation summary rewritten")
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    errors: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class FileIndexingResult(BaseModel):
    """Outcome of indexing one file."""

    file_id: str = Field(..., description="Indexed file ID")
    chunks_indexed: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    errors: list[str] = Field(default_factory=list)
