"""
Decision matrix threshold table.

Thresholds are keyed by (rule id, classification, tier). Cells are written
the way the matrix spreadsheet writes them and parsed once at load:

    "10%"        -> 10.0
    "- 5%"       -> -5.0
    "+/- 2.5%"   -> 2.5  (band half-width)
    "40"         -> 40.0
    "Δ POSITIVE" -> DeltaDirection.POSITIVE
    "N/A"        -> NOT_APPLICABLE (rule switched off for this cell)

A cell that is absent altogether is a configuration error and surfaces
as ThresholdConfigError, both from lookup() and from validate().
"""

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Union

from matrixwatch.core.exceptions import ThresholdConfigError
from matrixwatch.core.matrix.rules import EvaluationLogic, RuleDefinition
from matrixwatch.core.models import MAX_TIER, MIN_TIER, Classification

logger = logging.getLogger(__name__)


class DeltaDirection(Enum):
    """Required sign of a delta metric."""

    POSITIVE = 1
    NEGATIVE = -1

    @property
    def label(self) -> str:
        return f"Δ {self.name}"


class _NotApplicable:
    """Sentinel for cells where a rule does not apply."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "N/A"

    def __bool__(self) -> bool:
        return False


NOT_APPLICABLE = _NotApplicable()

ThresholdValue = Union[float, DeltaDirection, _NotApplicable]


# Matrix rule thresholds, one row per rule, tiers 1-4 per classification
MATRIX_THRESHOLDS: dict[str, dict[str, dict[int, str]]] = {
    # POSITION INCREASE RULES
    "price-52wk": {
        "Compounder": {1: "10%", 2: "15%", 3: "20%", 4: "N/A"},
        "Catalyst": {1: "20%", 2: "N/A", 3: "N/A", 4: "N/A"},
        "Cyclical": {1: "15%", 2: "20%", 3: "N/A", 4: "N/A"},
    },
    "rsi-low": {
        "Compounder": {1: "40", 2: "40", 3: "40", 4: "N/A"},
        "Catalyst": {1: "30", 2: "30", 3: "30", 4: "N/A"},
        "Cyclical": {1: "35", 2: "35", 3: "35", 4: "N/A"},
    },
    "macd-below": {
        "Compounder": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
        "Catalyst": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
        "Cyclical": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
    },
    "golden-cross-pos": {
        "Compounder": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
        "Catalyst": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
        "Cyclical": {1: "Δ POSITIVE", 2: "Δ POSITIVE", 3: "Δ POSITIVE", 4: "N/A"},
    },
    "sector-perf-neg": {
        "Compounder": {1: "-10%", 2: "-15%", 3: "-15%", 4: "N/A"},
        "Catalyst": {1: "-20%", 2: "-20%", 3: "-20%", 4: "N/A"},
        "Cyclical": {1: "-15%", 2: "-15%", 3: "-15%", 4: "N/A"},
    },
    "at-200ma": {
        "Compounder": {1: "+/- 2.5%", 2: "+/- 2.5%", 3: "+/- 2.5%", 4: "N/A"},
        "Catalyst": {1: "N/A", 2: "N/A", 3: "N/A", 4: "N/A"},
        "Cyclical": {1: "+/- 2.5%", 2: "+/- 2.5%", 3: "N/A", 4: "N/A"},
    },
    # POSITION DECREASE RULES
    "price-90day": {
        "Compounder": {1: "N/A", 2: "25%", 3: "25%", 4: "20%"},
        "Catalyst": {1: "25%", 2: "20%", 3: "15%", 4: "20%"},
        "Cyclical": {1: "25%", 2: "20%", 3: "15%", 4: "20%"},
    },
    "max-weight": {
        "Compounder": {1: "8%", 2: "8%", 3: "5%", 4: "4%"},
        "Catalyst": {1: "6%", 2: "4%", 3: "4%", 4: "4%"},
        "Cyclical": {1: "6%", 2: "6%", 3: "4%", 4: "4%"},
    },
    "max-weight-intl": {
        "Compounder": {1: "10%", 2: "10%", 3: "7%", 4: "6%"},
        "Catalyst": {1: "8%", 2: "6%", 3: "6%", 4: "6%"},
        "Cyclical": {1: "8%", 2: "8%", 3: "6%", 4: "6%"},
    },
    "active-risk": {
        "Compounder": {1: "N/A", 2: "N/A", 3: "N/A", 4: "N/A"},
        "Catalyst": {1: "4%", 2: "4%", 3: "4%", 4: "4%"},
        "Cyclical": {1: "5%", 2: "5%", 3: "5%", 4: "5%"},
    },
    "rsi-high": {
        "Compounder": {1: "N/A", 2: "70", 3: "70", 4: "70"},
        "Catalyst": {1: "60", 2: "60", 3: "60", 4: "60"},
        "Cyclical": {1: "70", 2: "70", 3: "70", 4: "70"},
    },
    "macd-above": {
        "Compounder": {1: "N/A", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
        "Catalyst": {1: "Δ NEGATIVE", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
        "Cyclical": {1: "Δ NEGATIVE", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
    },
    "golden-cross-neg": {
        "Compounder": {1: "N/A", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
        "Catalyst": {1: "Δ NEGATIVE", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
        "Cyclical": {1: "Δ NEGATIVE", 2: "Δ NEGATIVE", 3: "Δ NEGATIVE", 4: "Δ NEGATIVE"},
    },
    "sector-perf-pos": {
        "Compounder": {1: "N/A", 2: "10%", 3: "15%", 4: "15%"},
        "Catalyst": {1: "20%", 2: "20%", 3: "20%", 4: "20%"},
        "Cyclical": {1: "15%", 2: "15%", 3: "15%", 4: "15%"},
    },
    "under-200ma": {
        "Compounder": {1: "N/A", 2: "- 5%", 3: "- 5%", 4: "N/A"},
        "Catalyst": {1: "- 5%", 2: "- 5%", 3: "- 5%", 4: "- 5%"},
        "Cyclical": {1: "- 5%", 2: "- 5%", 3: "- 5%", 4: "- 5%"},
    },
    # RATING INCREASE RULES
    "earnings-quality": {
        "Compounder": {1: "N/A", 2: "5", 3: "5", 4: "5"},
        "Catalyst": {1: "N/A", 2: "5", 3: "5", 4: "5"},
        "Cyclical": {1: "N/A", 2: "5", 3: "5", 4: "5"},
    },
    "ebitda-margin": {
        "Compounder": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Catalyst": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Cyclical": {1: "N/A", 2: "4", 3: "3", 4: "2"},
    },
    "roic-increase": {
        "Compounder": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Catalyst": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Cyclical": {1: "N/A", 2: "4", 3: "3", 4: "2"},
    },
    "debt-reduction": {
        "Compounder": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Catalyst": {1: "N/A", 2: "4", 3: "3", 4: "2"},
        "Cyclical": {1: "N/A", 2: "4", 3: "3", 4: "2"},
    },
    # RATING DECREASE RULES
    "negative-quarters": {
        "Compounder": {1: "-4", 2: "-4", 3: "-4", 4: "N/A"},
        "Catalyst": {1: "-4", 2: "-4", 3: "-4", 4: "N/A"},
        "Cyclical": {1: "-4", 2: "-4", 3: "-4", 4: "N/A"},
    },
    "ebitda-margin-neg": {
        "Compounder": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Catalyst": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Cyclical": {1: "3", 2: "2", 3: "2", 4: "N/A"},
    },
    "roic-decrease": {
        "Compounder": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Catalyst": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Cyclical": {1: "3", 2: "2", 3: "2", 4: "N/A"},
    },
    "debt-increase": {
        "Compounder": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Catalyst": {1: "3", 2: "2", 3: "2", 4: "N/A"},
        "Cyclical": {1: "3", 2: "2", 3: "2", 4: "N/A"},
    },
}

_NA_CELLS = {"", "-", "N/A", "#N/A", "NA"}
_NUMBER = re.compile(r"^([+-]?)\s*(\d+(?:\.\d+)?)\s*%?$")


def parse_threshold(cell: Any) -> ThresholdValue:
    """
    Parse a matrix cell into a threshold value.

    Raises:
        ThresholdConfigError: If the cell cannot be interpreted
    """
    if cell is None:
        return NOT_APPLICABLE
    if isinstance(cell, (DeltaDirection, _NotApplicable)):
        return cell
    if isinstance(cell, bool):
        raise ThresholdConfigError(f"Invalid threshold cell: {cell!r}")
    if isinstance(cell, (int, float)):
        return float(cell)

    text = str(cell).strip()
    if text.upper() in _NA_CELLS:
        return NOT_APPLICABLE

    upper = text.upper()
    if "POSITIVE" in upper:
        return DeltaDirection.POSITIVE
    if "NEGATIVE" in upper:
        return DeltaDirection.NEGATIVE

    if text.startswith("+/-"):
        text = text[3:].strip()

    match = _NUMBER.match(text)
    if not match:
        raise ThresholdConfigError(f"Invalid threshold cell: {cell!r}")
    sign, number = match.groups()
    value = float(number)
    return -value if sign == "-" else value


class ThresholdTable:
    """
    Read-only lookup of thresholds by rule, classification and tier.

    Usage:
        table = ThresholdTable.default()
        table.validate(DEFAULT_RULES)

        value = table.lookup("rsi-low", Classification.CAT, 1)  # 30.0
    """

    def __init__(self, raw: dict[str, dict[Any, dict[Any, Any]]]):
        """
        Build a table from raw matrix cells.

        Args:
            raw: rule id -> classification -> tier -> cell

        Raises:
            ThresholdConfigError: On unknown classifications, bad tiers or
                unparseable cells
        """
        self._cells: dict[str, dict[Classification, dict[int, ThresholdValue]]] = {}

        for rule_id, by_class in raw.items():
            parsed: dict[Classification, dict[int, ThresholdValue]] = {}
            for class_key, by_tier in by_class.items():
                try:
                    classification = Classification.parse(class_key)
                except ValueError as e:
                    raise ThresholdConfigError(str(e), rule_id=rule_id) from e
                tiers: dict[int, ThresholdValue] = {}
                for tier_key, cell in by_tier.items():
                    try:
                        tier = int(tier_key)
                    except (TypeError, ValueError):
                        raise ThresholdConfigError(
                            f"{rule_id}: invalid tier {tier_key!r}", rule_id=rule_id
                        ) from None
                    try:
                        tiers[tier] = parse_threshold(cell)
                    except ThresholdConfigError as e:
                        raise ThresholdConfigError(
                            f"{rule_id}/{classification.value}/{tier}: {e}",
                            rule_id=rule_id,
                        ) from e
                parsed[classification] = tiers
            self._cells[rule_id] = parsed

    @classmethod
    def default(cls) -> "ThresholdTable":
        """Table built from the built-in decision matrix."""
        return cls(MATRIX_THRESHOLDS)

    @classmethod
    def from_json(cls, path: Path) -> "ThresholdTable":
        """
        Load a table from a JSON file shaped like MATRIX_THRESHOLDS.

        Raises:
            ThresholdConfigError: If the file is unreadable or malformed
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ThresholdConfigError(f"Cannot load thresholds from {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ThresholdConfigError(f"Threshold file {path} must contain an object")
        logger.info("Loaded threshold table from %s (%d rules)", path, len(raw))
        return cls(raw)

    @property
    def rule_ids(self) -> list[str]:
        return sorted(self._cells)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._cells

    def lookup(
        self, rule_id: str, classification: Classification | str, tier: int
    ) -> ThresholdValue:
        """
        Resolve the threshold for a rule and holding column.

        Returns:
            A number, a DeltaDirection, or NOT_APPLICABLE

        Raises:
            ThresholdConfigError: If the cell does not exist
        """
        classification = Classification.parse(classification)
        try:
            return self._cells[rule_id][classification][tier]
        except KeyError:
            raise ThresholdConfigError(
                f"No threshold for rule '{rule_id}', "
                f"classification {classification.value}, tier {tier}",
                rule_id=rule_id,
            ) from None

    def validate(self, rules: Iterable[RuleDefinition]) -> None:
        """
        Check every rule can be served for every classification and tier.

        Raises:
            ThresholdConfigError: On the first missing or mismatched cell
        """
        for rule in rules:
            for classification in Classification:
                for tier in range(MIN_TIER, MAX_TIER + 1):
                    value = self.lookup(rule.rule_id, classification, tier)
                    self._check_kind(rule, classification, tier, value)

    def _check_kind(
        self,
        rule: RuleDefinition,
        classification: Classification,
        tier: int,
        value: ThresholdValue,
    ) -> None:
        if value is NOT_APPLICABLE:
            return
        where = f"{rule.rule_id}/{classification.value}/{tier}"
        if rule.is_delta:
            if not isinstance(value, DeltaDirection):
                raise ThresholdConfigError(
                    f"{where}: delta rule needs a direction, got {value!r}",
                    rule_id=rule.rule_id,
                )
            expected = (
                DeltaDirection.POSITIVE
                if rule.evaluation_logic == EvaluationLogic.POSITIVE
                else DeltaDirection.NEGATIVE
            )
            if value is not expected:
                raise ThresholdConfigError(
                    f"{where}: rule expects {expected.label}, table has {value.label}",
                    rule_id=rule.rule_id,
                )
        elif isinstance(value, DeltaDirection):
            raise ThresholdConfigError(
                f"{where}: numeric rule cannot use {value.label}",
                rule_id=rule.rule_id,
            )
