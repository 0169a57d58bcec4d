"""
Regex-based detectors used by the memory and knowledge extractors.
"""

from contextindex.core.extraction.detectors import (
    Detection,
    Detector,
    DetectorKind,
    MatchMode,
    PatternRule,
    rule,
)

__all__ = ["Detection", "Detector", "DetectorKind", "MatchMode", "PatternRule", "rule"]
