"""Simulated crop quality grading."""

from __future__ import annotations

import random
from dataclasses import dataclass

from cropmarket.domain.enums import QualityGrade

_GRADE_BANDS = (
    (90, "Premium"),
    (75, "Quality"),
    (60, "Standard"),
)


@dataclass(frozen=True)
class GradeResult:
    score: int
    grade: str
    quality_grade: QualityGrade


def simulate_quality_score(confidence: float, rng: random.Random | None = None) -> int:
    """
    Score an image classification result on a 0-100 scale.

    70% of the score comes from the classifier confidence, the rest is a
    random bonus of up to 30 points.
    """
    if not 0.0 <= confidence <= 1.0:
        raise ValueError("confidence must be between 0 and 1")
    rng = rng or random.Random()
    score = round(confidence * 100 * 0.7 + rng.random() * 30)
    return max(0, min(100, score))


def grade_for_score(score: int) -> str:
    for threshold, label in _GRADE_BANDS:
        if score >= threshold:
            return label
    return "Basic"


def quality_grade_for_score(score: int) -> QualityGrade:
    """Map a score onto the A/B/C grade stored on listings."""
    if score >= 75:
        return QualityGrade.A
    if score >= 60:
        return QualityGrade.B
    return QualityGrade.C


def grade(confidence: float, rng: random.Random | None = None) -> GradeResult:
    score = simulate_quality_score(confidence, rng)
    return GradeResult(score=score, grade=grade_for_score(score), quality_grade=quality_grade_for_score(score))
