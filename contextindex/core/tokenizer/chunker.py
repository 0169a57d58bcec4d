"""
Sliding-window text chunker.

Splits text into fixed-size character windows that overlap, so that no
content is lost and adjacent chunks share context across the boundary.
"""

from contextindex.models.chunk import TextChunk
from contextindex.utils.exceptions import ValidationError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[TextChunk]:
    """
    Split text into overlapping windows.

    Text no longer than ``size`` yields a single chunk. Otherwise windows of
    ``size`` characters advance by ``size - overlap``; the last window ends at
    the end of the text.

    Args:
        text: Text to split
        size: Window size in characters
        overlap: Characters shared by adjacent windows

    Returns:
        Chunks in order, with zero-based index and character offsets

    Raises:
        ValidationError: If size <= 0, overlap < 0 or overlap >= size
    """
    if size <= 0:
        raise ValidationError("Chunk size must be positive", {"size": size})
    if overlap < 0 or overlap >= size:
        raise ValidationError(
            "Chunk overlap must be >= 0 and smaller than chunk size",
            {"size": size, "overlap": overlap},
        )

    if not text:
        return []

    length = len(text)
    if length <= size:
        return [TextChunk(content=text, index=0, start_char=0, end_char=length)]

    step = size - overlap
    chunks: list[TextChunk] = []
    start = 0

    while start < length:
        end = min(start + size, length)
        chunks.append(
            TextChunk(content=text[start:end], index=len(chunks), start_char=start, end_char=end)
        )
        if end == length:
            break

        start += step

    return chunks
