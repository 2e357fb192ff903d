"""Source article quality assessment.

Scores how much usable material a source article carries. The result is
advisory: the executor records it in RunResult.metadata and never skips a
run because of it.
"""

import re
from difflib import SequenceMatcher
from typing import Literal, Optional

from pydantic import BaseModel, Field

QualityTier = Literal["excellent", "good", "fair", "poor"]

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


class QualityThresholds(BaseModel):
    min_content_length: int = 500
    good_content_length: int = 1000
    excellent_content_length: int = 2000
    title_only_threshold: int = 150
    min_quality_score: float = 0.3
    # Score weights
    content_length_weight: float = 0.7
    structure_weight: float = 0.2
    uniqueness_weight: float = 0.1


class QualityAssessment(BaseModel):
    content_length: int
    quality_score: float = 0.0
    quality_tier: QualityTier = "poor"
    issues: list[str] = Field(default_factory=list)
    eligible: bool = False


def _length_score(length: int, t: QualityThresholds) -> float:
    if length <= 0:
        return 0.0
    if length < t.min_content_length:
        return 0.1
    if length >= t.excellent_content_length:
        return 1.0
    span = t.excellent_content_length - t.min_content_length
    return 0.3 + (length - t.min_content_length) / span * 0.7


def _structure_score(content: str) -> float:
    if not content:
        return 0.0
    score = 0.3
    paragraphs = [p for p in _PARAGRAPH_SPLIT.split(content) if len(p.strip()) > 50]
    if len(paragraphs) >= 2:
        score += 0.2
    if len(paragraphs) >= 4:
        score += 0.2
    sentences = [s for s in _SENTENCE_SPLIT.split(content) if len(s.strip()) > 10]
    if len(sentences) >= 3:
        score += 0.1
    if len(sentences) >= 6:
        score += 0.1
    if any(mark in content for mark in ("-", "•", '"')):
        score += 0.1
    return min(score, 1.0)


def _uniqueness_score(title: str, content: str) -> float:
    if not content:
        return 0.0
    score = 0.5
    title_words = title.lower().split()
    content_words = content.lower().split()

    if title_words and content_words:
        content_set = set(content_words)
        repeated = [w for w in title_words if len(w) > 3 and w in content_set]
        ratio = len(repeated) / len(title_words)
        if ratio > 0.8:
            score -= 0.3
        elif ratio > 0.5:
            score -= 0.1

    distinct = {w for w in content_words if len(w) > 3}
    diversity = len(distinct) / len(content_words)
    if diversity > 0.5:
        score += 0.2
    if diversity > 0.7:
        score += 0.3
    return max(min(score, 1.0), 0.0)


def _is_title_only(title: str, content: str, threshold: int) -> bool:
    if len(content) > threshold or not title or not content:
        return False
    return SequenceMatcher(None, title.lower(), content.lower()).ratio() > 0.8


def assess_source_quality(
    title: Optional[str],
    content: Optional[str],
    thresholds: Optional[QualityThresholds] = None,
) -> QualityAssessment:
    """Score a source article's text. Never raises."""
    t = thresholds or QualityThresholds()
    title = (title or "").strip()
    content = (content or "").strip()
    assessment = QualityAssessment(content_length=len(content))

    if not content:
        assessment.issues.append("no_content")
        return assessment
    if _is_title_only(title, content, t.title_only_threshold):
        assessment.issues.append("title_only")
        return assessment
    if len(content) < t.min_content_length:
        assessment.issues.append("insufficient_length")

    score = (
        _length_score(len(content), t) * t.content_length_weight
        + _structure_score(content) * t.structure_weight
        + _uniqueness_score(title, content) * t.uniqueness_weight
    )
    assessment.quality_score = round(score, 2)

    length = len(content)
    if assessment.quality_score >= 0.8 and length >= t.excellent_content_length:
        assessment.quality_tier = "excellent"
    elif assessment.quality_score >= 0.6 and length >= t.good_content_length:
        assessment.quality_tier = "good"
    elif assessment.quality_score >= 0.3 and length >= t.min_content_length:
        assessment.quality_tier = "fair"

    assessment.eligible = (
        assessment.quality_score >= t.min_quality_score
        and length >= t.min_content_length
    )
    return assessment
