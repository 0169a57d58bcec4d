"""
TextChunk: a window of text produced by the chunker.
"""

from pydantic import BaseModel, ConfigDict, Field


class TextChunk(BaseModel):
    """Substring of an input text with its position."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Chunk text")
    index: int = Field(..., ge=0, description="Zero-based chunk index")
    start_char: int = Field(..., ge=0, description="Start offset in the source text")
    end_char: int = Field(..., ge=0, description="End offset (exclusive) in the source text")
