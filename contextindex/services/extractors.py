"""
Memory and knowledge extraction from message text.

Both extractors run a fixed tuple of detectors. Each detector runs in
isolation: if one raises, the error is logged and recorded in the outcome
while the items found by the other detectors are kept.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from contextindex.core.extraction.detectors import (
    Detection,
    Detector,
    DetectorKind,
    MatchMode,
    rule,
)
from contextindex.models.knowledge import KnowledgeCategory
from contextindex.models.memory import MemoryChunkType
from contextindex.models.message import MessageRole
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Sentence remainder: everything up to the next terminator
_REST = r"([^.!?\n]+)"


class MemoryCandidate(BaseModel):
    """Memory found in a message, not yet embedded."""

    content: str
    type: MemoryChunkType
    importance: float
    metadata: dict = Field(default_factory=dict)


class KnowledgeCandidate(BaseModel):
    """Knowledge item found in a message, not yet embedded."""

    title: str
    content: str
    category: KnowledgeCategory
    importance: float
    tags: list[str] = Field(default_factory=list)


class ExtractionOutcome(BaseModel, Generic[T]):
    """Items found plus errors from detectors that failed."""

    items: list[T] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


MEMORY_DETECTORS: tuple[Detector, ...] = (
    Detector(
        kind=DetectorKind.PERSONAL_FACT,
        rules=(
            rule(rf"\bmy (?:full )?name is {_REST}", "fact", 0.95),
            rule(r"\bi(?:'m| am) (\d+) years old", "fact", 0.9),
            rule(rf"\bi (?:live|reside) (?:in|at) {_REST}", "fact", 0.85),
            rule(rf"\bi work (?:at|for|as an?|as) {_REST}", "fact", 0.85),
            rule(rf"\bmy (?:phone number|email) is {_REST}", "fact", 0.9),
        ),
    ),
    Detector(
        kind=DetectorKind.RELATIONSHIP,
        rules=(
            rule(rf"\bmy (\w+)'s name is {_REST}", "relationship", 0.9),
            rule(rf"\bi have an? (\w+) (?:named|called) {_REST}", "relationship", 0.85),
            rule(r"\b([\w ]{1,60}?) is my (\w+)", "relationship", 0.85),
        ),
    ),
    Detector(
        kind=DetectorKind.PREFERENCE,
        rules=(
            rule(rf"\bmy (?:favorite|favourite) (\w+) is {_REST}", "preference", 0.8),
            rule(rf"\bi (?:really )?(?:like|love|enjoy) {_REST}", "preference", 0.7),
            rule(rf"\bi (?:hate|dislike|can't stand) {_REST}", "preference", 0.7),
            rule(r"\bi prefer ([^.!?\n]+?) (?:over|to) ([^.!?\n]+)", "preference", 0.75),
        ),
    ),
    Detector(
        kind=DetectorKind.EVENT,
        rules=(
            rule(rf"\b(?:yesterday|today|tomorrow) i {_REST}", "event", 0.8),
            rule(rf"\b(?:last|next) (\w+) i {_REST}", "event", 0.75),
        ),
    ),
    Detector(
        kind=DetectorKind.DECISION,
        rules=(
            rule(rf"\bi(?:'ve| have) (?:decided|chosen) (?:to )?{_REST}", "decision", 0.85),
            rule(rf"\blet's (?:go with|choose|do) {_REST}", "decision", 0.8),
            rule(rf"\b(?:we|i) (?:should|will) {_REST}", "decision", 0.75),
        ),
    ),
    Detector(
        kind=DetectorKind.ACTION_ITEM,
        rules=(
            rule(rf"\b(?:deadline|due date|due)\b:?\s+(?:is\s+|on\s+|by\s+)?{_REST}", "action_item", 0.9),
            rule(rf"\b(?:todo|to-do|action item)s?\b:?\s+{_REST}", "action_item", 0.85),
            rule(rf"\b(?:i|we) need to {_REST}", "action_item", 0.8),
        ),
    ),
    Detector(
        kind=DetectorKind.INSTRUCTION,
        rules=(
            rule(rf"\b(?:remember|don't forget) (?:that |to )?{_REST}", "fact", 0.95),
            rule(rf"\b(?:always|never) {_REST}", "preference", 0.9),
            rule(rf"\b(?:important|critical|essential): {_REST}", "fact", 0.95),
        ),
    ),
)

ASSISTANT_DETECTORS: tuple[Detector, ...] = (
    Detector(
        kind=DetectorKind.CONFIRMATION,
        rules=(
            rule(
                r"I understand|I'll remember",
                "summary",
                0.6,
                flags=0,
                mode=MatchMode.PRESENCE,
                max_length=300,
                content="{text}",
            ),
        ),
    ),
)

KNOWLEDGE_DETECTORS: tuple[Detector, ...] = (
    Detector(
        kind=DetectorKind.PROJECT,
        rules=(
            # Trigger words are case-insensitive, the project name must be capitalized
            rule(
                r"(?i:\bproject|\bworking on|\bbuilding)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)",
                "project",
                0.8,
                flags=0,
                title="Project: {value}",
                content="User is working on project: {value}",
                tags=("project", "{value}", "work"),
            ),
        ),
    ),
    Detector(
        kind=DetectorKind.DECISION,
        rules=(
            rule(
                r"\b(?:decided|chose|going with|will use)\s+([^.!?]+)",
                "decision",
                0.9,
                title="Technical Decision",
                content="Decision made: {match}",
                tags=("decision", "technical", "important"),
            ),
        ),
    ),
    Detector(
        kind=DetectorKind.PREFERENCE,
        rules=(
            rule(
                r"\bi (?:like|love|prefer|hate|dislike)\s+([^.!?]+)",
                "preference",
                0.7,
                title="User Preference",
                tags=("preference", "personal"),
            ),
        ),
    ),
    Detector(
        kind=DetectorKind.TECHNICAL,
        rules=(
            rule(
                r"```|\b(?:function|class|import|const|let|var)\b",
                "technical",
                0.8,
                flags=0,
                mode=MatchMode.PRESENCE,
                max_length=500,
                title="Code Discussion",
                content="{text}",
                tags=("code", "technical", "programming"),
            ),
        ),
    ),
    Detector(
        kind=DetectorKind.ISSUE,
        rules=(
            rule(
                r"\b(?:error|issue|problem|bug|broken|failing)\s+([^.!?]+)",
                "issue",
                0.85,
                title="Problem/Error",
                tags=("error", "problem", "debug", "important"),
            ),
        ),
    ),
)

IMPORTANT_KEYWORDS = ("important", "remember", "critical", "emergency", "urgent")


def _run_detectors(
    detectors: tuple[Detector, ...], text: str, errors: list[str]
) -> list[Detection]:
    detections: list[Detection] = []
    for detector in detectors:
        try:
            detections.extend(detector.detect(text))
        except Exception as e:
            logger.bind(detector=detector.kind.value, error=str(e)).error(
                f"Detector {detector.kind.value} failed: {e}"
            )
            errors.append(f"{detector.kind.value} detector failed: {e}")
    return detections


def _role_value(role: MessageRole | str) -> str:
    return (role.value if isinstance(role, MessageRole) else str(role or "")).lower()


class MemoryExtractor:
    """
    Extracts typed memory candidates from a message.

    User messages run the personal fact, relationship, preference, event,
    decision, action item and instruction detectors. Assistant messages only
    yield a summary when the assistant confirms it has taken something in.
    """

    def __init__(
        self,
        detectors: tuple[Detector, ...] = MEMORY_DETECTORS,
        assistant_detectors: tuple[Detector, ...] = ASSISTANT_DETECTORS,
        fallback_min_length: int = 50,
    ):
        self.detectors = detectors
        self.assistant_detectors = assistant_detectors
        self.fallback_min_length = fallback_min_length

    def extract(self, content: str, role: MessageRole | str) -> ExtractionOutcome[MemoryCandidate]:
        outcome: ExtractionOutcome[MemoryCandidate] = ExtractionOutcome()
        if not content or not content.strip():
            return outcome

        role_value = _role_value(role)
        if role_value == MessageRole.USER.value:
            detections = _run_detectors(self.detectors, content, outcome.errors)
        elif role_value == MessageRole.ASSISTANT.value:
            detections = _run_detectors(self.assistant_detectors, content, outcome.errors)
        else:
            return outcome

        seen: set[str] = set()
        for detection in detections:
            if detection.content in seen:
                continue
            seen.add(detection.content)
            outcome.items.append(
                MemoryCandidate(
                    content=detection.content,
                    type=MemoryChunkType(detection.label),
                    importance=detection.importance,
                    metadata={
                        "detector": detection.kind.value,
                        "original_length": len(content),
                        "extraction_confidence": detection.importance,
                    },
                )
            )

        if (
            role_value == MessageRole.USER.value
            and not outcome.items
            and len(content) > self.fallback_min_length
            and any(keyword in content.lower() for keyword in IMPORTANT_KEYWORDS)
        ):
            outcome.items.append(
                MemoryCandidate(
                    content=content[:500],
                    type=MemoryChunkType.FACT,
                    importance=0.7,
                    metadata={"reason": "important_keyword_detected"},
                )
            )

        return outcome


class KnowledgeExtractor:
    """
    Extracts knowledge base candidates (projects, decisions, preferences,
    code discussions and issues) from a message.
    """

    def __init__(self, detectors: tuple[Detector, ...] = KNOWLEDGE_DETECTORS):
        self.detectors = detectors

    def extract(
        self, content: str, role: MessageRole | str = MessageRole.USER
    ) -> ExtractionOutcome[KnowledgeCandidate]:
        outcome: ExtractionOutcome[KnowledgeCandidate] = ExtractionOutcome()
        if not content or not content.strip():
            return outcome

        seen: set[tuple[str, str]] = set()
        for detection in _run_detectors(self.detectors, content, outcome.errors):
            key = (detection.label, detection.content)
            if key in seen:
                continue
            seen.add(key)
            outcome.items.append(
                KnowledgeCandidate(
                    title=detection.title or detection.label.title(),
                    content=detection.content,
                    category=KnowledgeCategory(detection.label),
                    importance=detection.importance,
                    tags=list(dict.fromkeys(detection.tags)),
                )
            )

        return outcome
