"""
Pattern detectors for memory and knowledge extraction.

A Detector is a frozen value: a kind plus an ordered tuple of rules. The
set of detectors an extractor runs is a fixed tuple of such values, so a
new detector is a new value rather than a new subclass.

Rule modes:
- SPAN: emit the full matched text of every match
- PRESENCE: emit the first max_length characters of the input, once, if the pattern occurs
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DetectorKind(str, Enum):
    """What a detector looks for."""

    PERSONAL_FACT = "personal_fact"
    RELATIONSHIP = "relationship"
    PREFERENCE = "preference"
    EVENT = "event"
    DECISION = "decision"
    ACTION_ITEM = "action_item"
    INSTRUCTION = "instruction"
    CONFIRMATION = "confirmation"
    PROJECT = "project"
    TECHNICAL = "technical"
    ISSUE = "issue"


class MatchMode(str, Enum):
    SPAN = "span"
    PRESENCE = "presence"


class PatternRule(BaseModel):
    """
    One regular expression with the label and importance of what it finds.

    ``title`` and ``content`` are format templates; ``{match}`` is the full
    match, ``{value}`` the first capture group and ``{text}`` the (truncated) input.
    """

    model_config = ConfigDict(frozen=True)

    pattern: re.Pattern
    label: str
    importance: float = Field(..., ge=0.0, le=1.0)
    mode: MatchMode = MatchMode.SPAN
    max_length: int = 500
    title: str = ""
    content: str = "{match}"
    tags: tuple[str, ...] = ()


class Detection(BaseModel):
    """A single item found by a detector."""

    model_config = ConfigDict(frozen=True)

    kind: DetectorKind
    label: str
    content: str
    title: str = ""
    value: str = ""
    importance: float
    tags: tuple[str, ...] = ()


def _render(template: str, match: str, value: str, text: str) -> str:
    return template.format(match=match, value=value, text=text).strip()


class Detector(BaseModel):
    """A named, ordered set of pattern rules."""

    model_config = ConfigDict(frozen=True)

    kind: DetectorKind
    rules: tuple[PatternRule, ...]

    def detect(self, text: str) -> list[Detection]:
        """
        Run every rule against text.

        Returns:
            Detections in rule order, then match order
        """
        detections: list[Detection] = []

        for rule in self.rules:
            if rule.mode == MatchMode.PRESENCE:
                if rule.pattern.search(text):
                    excerpt = text[: rule.max_length]
                    detections.append(self._build(rule, excerpt, "", excerpt))
                continue

            for match in rule.pattern.finditer(text):
                span = match.group(0).strip()[: rule.max_length]
                if not span:
                    continue
                value = (match.group(1) or "").strip() if match.re.groups else ""
                detections.append(self._build(rule, span, value, text[: rule.max_length]))

        return detections

    def _build(self, rule: PatternRule, span: str, value: str, text: str) -> Detection:
        return Detection(
            kind=self.kind,
            label=rule.label,
            content=_render(rule.content, span, value, text),
            title=_render(rule.title, span, value, text),
            value=value,
            importance=rule.importance,
            tags=tuple(tag.format(value=value.lower()) for tag in rule.tags),
        )


def rule(
    regex: str,
    label: str,
    importance: float,
    flags: int = re.IGNORECASE,
    **kwargs,
) -> PatternRule:
    """Shorthand for building a PatternRule from a regex string."""
    return PatternRule(pattern=re.compile(regex, flags), label=label, importance=importance, **kwargs)
