"""
Tests for the sliding-window chunker.
"""

import pytest

from contextindex.core.tokenizer import chunk_text
from contextindex.utils.exceptions import ValidationError


@pytest.mark.unit
class TestChunkText:
    """Test chunk_text windows and offsets."""

    def test_empty_text(self):
        """Test empty text yields no chunks."""
        assert chunk_text("") == []

    def test_short_text_single_chunk(self):
        """Test text within the window yields one chunk."""
        chunks = chunk_text("hello world", size=1000, overlap=200)
        assert len(chunks) == 1
        assert chunks[0].content == "hello world"
        assert (chunks[0].start_char, chunks[0].end_char) == (0, 11)

    def test_exact_size_single_chunk(self):
        """Test text exactly one window long yields one chunk."""
        assert len(chunk_text("a" * 1000, size=1000, overlap=200)) == 1

    def test_window_lengths(self):
        """Test 2500 chars with size 1000 and overlap 200."""
        text = "".join(chr(ord("a") + i % 26) for i in range(2500))
        chunks = chunk_text(text, size=1000, overlap=200)

        assert [len(c.content) for c in chunks] == [1000, 1000, 900]
        assert [c.start_char for c in chunks] == [0, 800, 1600]
        assert [c.index for c in chunks] == [0, 1, 2]

    @pytest.mark.parametrize("length", [1001, 1799, 1800, 1850, 2500])
    def test_last_window_reaches_end(self, length):
        """Test the final chunk always ends at the end of the text."""
        chunks = chunk_text("x" * length, size=1000, overlap=200)

        assert chunks[-1].end_char == length
        assert all(c.end_char < length for c in chunks[:-1])
        assert len(chunks[-1].content) >= 200

    def test_adjacent_chunks_overlap(self):
        """Test adjacent chunks share exactly the overlap."""
        text = "".join(chr(ord("a") + i % 26) for i in range(2500))
        chunks = chunk_text(text, size=1000, overlap=200)

        for prev, nxt in zip(chunks, chunks[1:]):
            assert prev.content[-200:] == nxt.content[:200]

    def test_chunks_cover_text(self):
        """Test offsets map back to the source text."""
        text = "word " * 700
        chunks = chunk_text(text, size=500, overlap=100)

        assert chunks[0].start_char == 0
        assert chunks[-1].end_char == len(text)
        for chunk in chunks:
            assert text[chunk.start_char : chunk.end_char] == chunk.content

    def test_zero_overlap(self):
        """Test zero overlap produces disjoint windows."""
        chunks = chunk_text("a" * 25, size=10, overlap=0)
        assert [len(c.content) for c in chunks] == [10, 10, 5]

    @pytest.mark.parametrize("size,overlap", [(0, 0), (-5, 0), (100, 100), (100, 150), (100, -1)])
    def test_invalid_parameters(self, size, overlap):
        """Test invalid size/overlap raises ValidationError."""
        with pytest.raises(ValidationError):
            chunk_text("some text", size=size, overlap=overlap)
