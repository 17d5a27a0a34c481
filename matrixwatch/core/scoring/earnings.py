"""
Earnings Quality Scorer.

Converts one reported quarter into a bounded 1-10 score and a coarse
category used by the rating rules of the decision matrix.

Scoring Components (start at 5, neutral):
- EPS vs estimate: Beat +2 / Miss -2 (beyond +/-2%)
- Revenue vs estimate: Up +2 / Down -2 (beyond +/-1%)
- Guidance: Increased +1 / Decreased -1
- Market reaction: +1 above +5%, -1 below -5%

The final score is clamped to [1, 10].

Interpretation:
- 7-10: Good
- 4-6: Okay
- 1-3: Bad
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from matrixwatch.core.models import EarningsRecord
from matrixwatch.core.scoring.constants import (
    CATEGORY_GOOD_MIN,
    CATEGORY_OKAY_MIN,
    EPS_BEAT_PCT,
    EPS_POINTS,
    GUIDANCE_POINTS,
    REACTION_POINTS,
    REACTION_RANGES,
    REACTION_THRESHOLD_PCT,
    REVENUE_POINTS,
    REVENUE_UP_PCT,
    SCORE_MAX,
    SCORE_MIN,
    SCORE_NEUTRAL,
)

logger = logging.getLogger(__name__)

GUIDANCE_INCREASED = "Increased"
GUIDANCE_MAINTAIN = "Maintain"
GUIDANCE_DECREASED = "Decreased"

_GUIDANCE_ALIASES = {
    "increased": GUIDANCE_INCREASED,
    "increase": GUIDANCE_INCREASED,
    "raised": GUIDANCE_INCREASED,
    "raise": GUIDANCE_INCREASED,
    "maintain": GUIDANCE_MAINTAIN,
    "maintained": GUIDANCE_MAINTAIN,
    "decreased": GUIDANCE_DECREASED,
    "decrease": GUIDANCE_DECREASED,
    "lowered": GUIDANCE_DECREASED,
    "lower": GUIDANCE_DECREASED,
}


def normalize_guidance(guidance: Optional[str]) -> Optional[str]:
    """Map provider guidance wording onto Increased / Maintain / Decreased."""
    if guidance is None:
        return None
    return _GUIDANCE_ALIASES.get(guidance.strip().lower())


def surprise_percent(actual: Optional[float], estimate: Optional[float]) -> Optional[float]:
    """Percent difference of actual vs estimate, None if not computable."""
    if actual is None or estimate is None or estimate == 0:
        return None
    return (actual - estimate) / abs(estimate) * 100


@dataclass
class EarningsScore:
    """
    Result of scoring a single quarter.

    `score` is always within [1, 10]; `category` is Good, Okay or Bad.
    """

    score: int
    category: str = ""
    beat_status: Optional[str] = None      # Beat, In-Line, Miss
    revenue_status: Optional[str] = None   # Up, Flat, Down
    guidance: Optional[str] = None
    market_reaction: Optional[float] = None
    note: str = ""

    def __post_init__(self) -> None:
        """Set category based on score."""
        if not self.category:
            self.category = categorize(self.score)


def categorize(score: int) -> str:
    """Coarse three-bucket category for a 1-10 score."""
    if score >= CATEGORY_GOOD_MIN:
        return "Good"
    elif score >= CATEGORY_OKAY_MIN:
        return "Okay"
    else:
        return "Bad"


def reaction_note(category: str, market_reaction: Optional[float]) -> str:
    """
    Judge whether the market reaction matched the earnings category.

    Returns:
        "Normal", "Abnormal" (moved against the result) or "Explosive"
        (moved far beyond the expected range)
    """
    if market_reaction is None:
        return "Normal"

    ranges = REACTION_RANGES.get(category, REACTION_RANGES["Okay"])
    if category == "Good":
        if market_reaction < ranges["min"]:
            return "Abnormal"
        if market_reaction > ranges["explosive"]:
            return "Explosive"
        return "Normal"
    elif category == "Bad":
        if market_reaction > ranges["explosive"]:
            return "Abnormal"
        if market_reaction < ranges["min"]:
            return "Explosive"
        return "Normal"
    else:
        if abs(market_reaction) > ranges["explosive"]:
            return "Abnormal"
        return "Normal"


class EarningsScorer:
    """
    Calculator for the earnings quality score.

    Usage:
        scorer = EarningsScorer()

        result = scorer.score(1.10, 1.00, 50e9, 50e9, "Maintain", 1.0)
        print(f"Score: {result.score}/10 - {result.category}")

        # Fill score, label and note on a provider record
        record = scorer.score_record(record)
    """

    def beat_status(
        self, eps_actual: Optional[float], eps_estimate: Optional[float]
    ) -> Optional[str]:
        pct = surprise_percent(eps_actual, eps_estimate)
        if pct is None:
            return None
        if pct > EPS_BEAT_PCT:
            return "Beat"
        elif pct < -EPS_BEAT_PCT:
            return "Miss"
        return "In-Line"

    def revenue_status(
        self, rev_actual: Optional[float], rev_estimate: Optional[float]
    ) -> Optional[str]:
        pct = surprise_percent(rev_actual, rev_estimate)
        if pct is None:
            return None
        if pct > REVENUE_UP_PCT:
            return "Up"
        elif pct < -REVENUE_UP_PCT:
            return "Down"
        return "Flat"

    def score(
        self,
        eps_actual: Optional[float],
        eps_estimate: Optional[float],
        rev_actual: Optional[float],
        rev_estimate: Optional[float],
        guidance: Optional[str] = None,
        market_reaction: Optional[float] = None,
    ) -> EarningsScore:
        """
        Score one quarter.

        Args:
            eps_actual: Reported EPS
            eps_estimate: Consensus EPS estimate
            rev_actual: Reported revenue
            rev_estimate: Consensus revenue estimate
            guidance: Guidance direction (Increased/Maintain/Decreased or aliases)
            market_reaction: Price change after the report, in percent

        Returns:
            EarningsScore with score, category, sub-verdicts and note
        """
        beat = self.beat_status(eps_actual, eps_estimate)
        revenue = self.revenue_status(rev_actual, rev_estimate)
        direction = normalize_guidance(guidance)
        if guidance is not None and direction is None:
            logger.debug("Ignoring unrecognised guidance value: %r", guidance)

        points = SCORE_NEUTRAL
        if beat == "Beat":
            points += EPS_POINTS
        elif beat == "Miss":
            points -= EPS_POINTS

        if revenue == "Up":
            points += REVENUE_POINTS
        elif revenue == "Down":
            points -= REVENUE_POINTS

        if direction == GUIDANCE_INCREASED:
            points += GUIDANCE_POINTS
        elif direction == GUIDANCE_DECREASED:
            points -= GUIDANCE_POINTS

        if market_reaction is not None:
            if market_reaction > REACTION_THRESHOLD_PCT:
                points += REACTION_POINTS
            elif market_reaction < -REACTION_THRESHOLD_PCT:
                points -= REACTION_POINTS

        points = max(SCORE_MIN, min(SCORE_MAX, points))

        return EarningsScore(
            score=points,
            beat_status=beat,
            revenue_status=revenue,
            guidance=direction,
            market_reaction=market_reaction,
            note=self._build_note(beat, revenue, direction, market_reaction),
        )

    def score_record(self, record: EarningsRecord) -> EarningsRecord:
        """Return a copy of `record` with score, label and note filled in."""
        result = self.score(
            record.eps_actual,
            record.eps_estimate,
            record.revenue_actual,
            record.revenue_estimate,
            record.guidance,
            record.market_reaction,
        )
        return replace(record, score=result.score, label=result.category, note=result.note)

    def _build_note(
        self,
        beat: Optional[str],
        revenue: Optional[str],
        guidance: Optional[str],
        market_reaction: Optional[float],
    ) -> str:
        parts = []
        if beat is not None:
            parts.append(f"EPS {beat.lower()}")
        if revenue is not None:
            parts.append(f"Revenue {revenue.lower()}")
        if guidance == GUIDANCE_MAINTAIN:
            parts.append("Maintained guidance")
        elif guidance is not None:
            parts.append(f"{guidance} guidance")
        if market_reaction is not None:
            if market_reaction > 0:
                parts.append(f"Market up {market_reaction:.1f}%")
            elif market_reaction < 0:
                parts.append(f"Market down {abs(market_reaction):.1f}%")
            else:
                parts.append("Market flat")
        return "; ".join(parts)
