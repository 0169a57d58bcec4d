"""
Tests for key point extraction and summary rolling.
"""

import pytest

from contextindex.models.message import MessageRole
from contextindex.services.conversation_summary import extract_key_points, roll_summary


@pytest.mark.unit
class TestExtractKeyPoints:
    """Test key point extraction."""

    def test_first_person_statement(self):
        """Test a first-person statement stops at the sentence end."""
        points = extract_key_points("I live in Seattle and work at Microsoft. Deadline March 15")
        assert points == ["I live in Seattle and work at Microsoft"]

    def test_statements_before_questions(self):
        """Test statements are listed ahead of questions."""
        points = extract_key_points("What database should we use? I need Postgres.")
        assert points == ["I need Postgres", "What database should we use?"]

    def test_at_most_three(self):
        """Test only the first three points are kept."""
        points = extract_key_points("I am here. I have a cat. I need sleep. I want food.")
        assert points == ["I am here", "I have a cat", "I need sleep"]

    def test_long_point_cut(self):
        """Test each point is cut to 50 characters."""
        [point] = extract_key_points("I want " + "x" * 100)
        assert len(point) == 50

    def test_word_boundary(self):
        """Test words ending in i are not read as statements."""
        assert extract_key_points("Say hi am ready.") == []

    def test_nothing_found(self):
        """Test plain text yields no points."""
        assert extract_key_points("Deadline March 15") == []


@pytest.mark.unit
class TestRollSummary:
    """Test summary rolling."""

    def test_user_points_appended(self):
        """Test user key points are appended as a bullet."""
        summary = roll_summary("- User: I like tea", "I need coffee.", MessageRole.USER)
        assert summary == "- User: I like tea\n- User: I need coffee"

    def test_assistant_ignored(self):
        """Test assistant messages leave the summary unchanged."""
        summary = roll_summary("- User: I like tea", "I want to help.", MessageRole.ASSISTANT)
        assert summary == "- User: I like tea"

    def test_trimmed_from_front(self):
        """Test an overlong summary keeps only its most recent text."""
        summary = roll_summary("x" * 990, "I need coffee.", MessageRole.USER)

        assert len(summary) == 800
        assert summary.endswith("- User: I need coffee")

    def test_custom_bounds(self):
        """Test the length bounds are configurable."""
        summary = roll_summary("abcdef", "ok", MessageRole.USER, max_chars=4, keep_chars=3)
        assert summary == "def"
