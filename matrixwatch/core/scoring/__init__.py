"""Earnings scoring for the rating matrix."""

from matrixwatch.core.scoring.earnings import (
    EarningsScore,
    EarningsScorer,
    categorize,
    normalize_guidance,
    reaction_note,
    surprise_percent,
)

__all__ = [
    "EarningsScore",
    "EarningsScorer",
    "categorize",
    "normalize_guidance",
    "reaction_note",
    "surprise_percent",
]
