"""
FileChunk model for indexed file content.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FileChunk(BaseModel):
    """One embedded window of a file's text."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Chunk ID (<file_id>_chunk_N)")
    file_id: str = Field(..., description="Parent file ID")
    user_id: str = Field(..., description="Owner user ID")
    project_id: str | None = Field(default=None, description="Optional project scope")
    filename: str = Field(..., description="Original file name")
    file_type: str = Field(default="text/plain", description="MIME type")
    content: str = Field(..., min_length=1, description="Chunk text")
    chunk_index: int = Field(..., ge=0, description="Zero-based index within the file")
    start_char: int = Field(..., ge=0, description="Start offset in the file text")
    end_char: int = Field(..., ge=0, description="End offset (exclusive) in the file text")
    embedding: list[float] = Field(..., min_length=1, description="Vector embedding")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
