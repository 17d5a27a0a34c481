"""
Rule evaluator for the decision matrix.

For each holding the evaluator walks the rule set in order, resolves the
metric each rule reads and the threshold for the holding's classification
and tier, and applies one shared comparison. Rules fire independently;
several may fire for the same symbol.

A rule is skipped (no alert, no error) when:
- its threshold cell is N/A for the holding's column
- it does not apply to the holding's region
- the metric it reads is None (insufficient history, missing earnings)
"""

import logging
from typing import Optional

from matrixwatch.core.indicators.snapshot import IndicatorSnapshot
from matrixwatch.core.matrix.rules import (
    DEFAULT_RULES,
    DataSource,
    EvaluationLogic,
    RuleDefinition,
    sort_rules,
)
from matrixwatch.core.matrix.thresholds import (
    NOT_APPLICABLE,
    DeltaDirection,
    ThresholdTable,
    ThresholdValue,
)
from matrixwatch.core.models import (
    ActionType,
    Alert,
    EarningsRecord,
    Holding,
    Severity,
)

logger = logging.getLogger(__name__)

WEIGHT_PCT_DIGITS = 9

# Breach beyond this multiple of the threshold escalates to critical
ESCALATION_MULTIPLIER = 2.0

_ADVICE = {
    (ActionType.INCREASE, None): "consider increasing position",
    (ActionType.DECREASE, None): "consider decreasing position",
    (ActionType.RATING, "Increase"): "consider raising rating",
    (ActionType.RATING, "Decrease"): "consider lowering rating",
}


def compare(logic: EvaluationLogic, value: float, threshold: ThresholdValue) -> bool:
    """
    Decide whether a metric value breaches a threshold.

    Args:
        logic: Comparison to apply
        value: Metric value
        threshold: Number for above/below/at, DeltaDirection for
            positive/negative

    Returns:
        True if the rule fires
    """
    if logic == EvaluationLogic.ABOVE:
        return value > threshold
    if logic == EvaluationLogic.BELOW:
        return value < threshold
    if logic == EvaluationLogic.AT:
        return abs(value) <= abs(threshold)
    if logic == EvaluationLogic.POSITIVE:
        return value > 0
    if logic == EvaluationLogic.NEGATIVE:
        return value < 0
    raise ValueError(f"Unknown evaluation logic: {logic}")


def resolve_metric(
    rule: RuleDefinition,
    holding: Holding,
    snapshot: Optional[IndicatorSnapshot],
    earnings: Optional[EarningsRecord],
) -> Optional[float]:
    """
    Read the value a rule compares.

    Portfolio metrics come straight from the holding; earnings metrics from
    the latest earnings record; everything else from the indicator snapshot.

    Returns:
        The metric value, or None when it is unavailable
    """
    if rule.data_source == DataSource.PORTFOLIO:
        if rule.metric == "weight_pct":
            # Rounded so a weight stored as 0.07 reads as exactly 7.0%
            return round(holding.weight * 100, WEIGHT_PCT_DIGITS)
        return getattr(holding, rule.metric)

    if rule.data_source == DataSource.EARNINGS:
        if earnings is None:
            return None
        return getattr(earnings, rule.metric)

    if snapshot is None:
        return None

    if rule.zero_line is not None:
        if snapshot.macd is None:
            return None
        if rule.zero_line == "below" and snapshot.macd >= 0:
            return None
        if rule.zero_line == "above" and snapshot.macd <= 0:
            return None

    return getattr(snapshot, rule.metric)


def severity_for(rule: RuleDefinition, value: float, threshold: ThresholdValue) -> Severity:
    """
    Final severity of a firing rule.

    The rule's default severity is authoritative. Only rules that declare
    escalation become critical, and only when the value is more than twice
    a positive threshold.
    """
    if (
        rule.escalates
        and rule.evaluation_logic == EvaluationLogic.ABOVE
        and isinstance(threshold, float)
        and threshold > 0
        and value > threshold * ESCALATION_MULTIPLIER
    ):
        return Severity.CRITICAL
    return rule.default_severity


class RuleEvaluator:
    """
    Applies the decision matrix to one holding at a time.

    Usage:
        evaluator = RuleEvaluator(ThresholdTable.default())
        candidates = evaluator.evaluate_holding(holding, snapshot, earnings)
    """

    def __init__(
        self,
        table: ThresholdTable,
        rules: Optional[tuple[RuleDefinition, ...]] = None,
    ) -> None:
        self.table = table
        self.rules = sort_rules(rules or DEFAULT_RULES)

    def evaluate_holding(
        self,
        holding: Holding,
        snapshot: Optional[IndicatorSnapshot] = None,
        earnings: Optional[EarningsRecord] = None,
    ) -> list[Alert]:
        """
        Evaluate every rule against one holding.

        Args:
            holding: A validated holding
            snapshot: Indicator snapshot for the holding's symbol
            earnings: Latest scored earnings record for the symbol

        Returns:
            Candidate alerts in rule order
        """
        alerts = []
        for rule in self.rules:
            alert = self.evaluate_rule(rule, holding, snapshot, earnings)
            if alert is not None:
                alerts.append(alert)
        return alerts

    def evaluate_rule(
        self,
        rule: RuleDefinition,
        holding: Holding,
        snapshot: Optional[IndicatorSnapshot],
        earnings: Optional[EarningsRecord],
    ) -> Optional[Alert]:
        """Evaluate a single rule; returns the alert if it fires."""
        if not rule.applies_to(holding.region):
            return None

        threshold = self.table.lookup(rule.rule_id, holding.classification, holding.tier)
        if threshold is NOT_APPLICABLE:
            return None

        value = resolve_metric(rule, holding, snapshot, earnings)
        if value is None:
            logger.debug("%s: skipping %s, no %s", holding.symbol, rule.rule_id, rule.metric)
            return None

        if not compare(rule.evaluation_logic, value, threshold):
            return None

        return self._build_alert(rule, holding, value, threshold)

    def _build_alert(
        self,
        rule: RuleDefinition,
        holding: Holding,
        value: float,
        threshold: ThresholdValue,
    ) -> Alert:
        shown = threshold.label if isinstance(threshold, DeltaDirection) else threshold
        details = rule.details_format.format(value=value, threshold=shown)
        advice = _ADVICE[(rule.action_type, rule.rating_action)]

        return Alert(
            symbol=holding.symbol,
            rule_id=rule.rule_id,
            action_type=rule.action_type,
            severity=severity_for(rule, value, threshold),
            message=f"{holding.symbol}: {rule.name} - {advice}",
            details=details,
            region=holding.region,
        )
