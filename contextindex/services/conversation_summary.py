"""
Rolling conversation summaries.

Each user message contributes up to three key points: first-person
statements ("I work at ...") and questions, each cut to 50 characters.
Once a summary grows past ``max_chars`` only its most recent
``keep_chars`` are kept.
"""

import re

from contextindex.models.message import MessageRole

_STATEMENT = re.compile(r"\bi (?:am|have|need|want|like|work|live)[^.!?]+", re.IGNORECASE)
_QUESTION = re.compile(r"[^.!?]*\?")

MAX_POINTS = 3
POINT_LENGTH = 50


def extract_key_points(content: str) -> list[str]:
    """First-person statements, then questions, at most three."""
    points = [match.group(0)[:POINT_LENGTH] for match in _STATEMENT.finditer(content)]
    for match in _QUESTION.finditer(content):
        question = match.group(0).strip()
        if question and question != "?":
            points.append(question[:POINT_LENGTH])
    return points[:MAX_POINTS]


def roll_summary(
    summary: str,
    content: str,
    role: MessageRole,
    max_chars: int = 1000,
    keep_chars: int = 800,
) -> str:
    """Append a message's key points to a summary and trim it from the front."""
    if role == MessageRole.USER:
        points = extract_key_points(content)
        if points:
            summary = f"{summary}\n- User: {', '.join(points)}"

    if len(summary) > max_chars:
        summary = summary[-keep_chars:]
    return summary.strip()
