"""
Decision matrix rule definitions.

Each rule names the metric it reads, how that metric is compared to the
threshold cell for a holding's classification and tier, and the severity
of the alert it emits. Rules are data: the evaluator treats them uniformly.

Action types:
- Increase: Technical entry signals (oversold, drawdown, support)
- Decrease: Risk signals (overweight, overbought, breakdown)
- Rating: Quality rating changes driven by earnings and fundamentals
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from matrixwatch.core.models import ActionType, Region, Severity


class EvaluationMethod(str, Enum):
    """Kind of value a rule compares."""

    VALUE = "value"          # Raw indicator or score value
    PERCENT = "percent"      # Percentage (weights, returns, drawdowns)
    DELTA = "delta"          # Sign of a difference (crossovers)
    PROXIMITY = "proximity"  # Absolute distance within a band


class EvaluationLogic(str, Enum):
    """Comparison applied between a metric and its threshold."""

    ABOVE = "above"          # value > threshold
    BELOW = "below"          # value < threshold
    AT = "at"                # |value| <= threshold
    POSITIVE = "positive"    # value > 0
    NEGATIVE = "negative"    # value < 0


class DataSource(str, Enum):
    """Where a rule's metric comes from."""

    HISTORICAL_PRICES = "historical_prices"
    RSI_DATA = "rsi_data"
    MACD_DATA = "macd_data"
    MARKET_INDICES = "market_indices"
    PORTFOLIO = "portfolio"
    EARNINGS = "earnings"


DELTA_LOGIC = (EvaluationLogic.POSITIVE, EvaluationLogic.NEGATIVE)


@dataclass(frozen=True)
class RuleDefinition:
    """
    A single decision matrix rule.

    Attributes:
        rule_id: Stable identifier, also the threshold table key
        name: Short display name
        description: What the rule detects
        action_type: Increase, Decrease or Rating
        evaluation_method: Kind of value compared
        evaluation_logic: Comparison applied
        data_source: Provider of the metric
        metric: Attribute read from the snapshot, holding or earnings record
        details_format: Format string for the alert details, receives
            `value` and `threshold`
        order_number: Evaluation order within the action type
        default_severity: Severity when the rule fires
        escalates: Whether breaching twice the threshold raises severity
            to critical
        regions: Regions the rule applies to (None = all)
        rating_action: Increase or Decrease, for Rating rules only
        zero_line: For MACD rules, side of the zero line ("below" or
            "above") the MACD line must be on
    """

    rule_id: str
    name: str
    description: str
    action_type: ActionType
    evaluation_method: EvaluationMethod
    evaluation_logic: EvaluationLogic
    data_source: DataSource
    metric: str
    details_format: str
    order_number: int
    default_severity: Severity = Severity.INFO
    escalates: bool = False
    regions: Optional[frozenset[Region]] = None
    rating_action: Optional[str] = None
    zero_line: Optional[str] = None

    @property
    def is_delta(self) -> bool:
        return self.evaluation_logic in DELTA_LOGIC

    def applies_to(self, region: Region) -> bool:
        return self.regions is None or region in self.regions

    def to_dict(self) -> dict[str, Any]:
        """Rule metadata for listings and reports."""
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "description": self.description,
            "action_type": self.action_type.value,
            "rating_action": self.rating_action,
            "evaluation_method": self.evaluation_method.value,
            "evaluation_logic": self.evaluation_logic.value,
            "data_source": self.data_source.value,
            "default_severity": self.default_severity.value,
            "escalates": self.escalates,
            "regions": sorted(r.value for r in self.regions) if self.regions else None,
            "order_number": self.order_number,
        }


_DOMESTIC = frozenset({Region.USD, Region.CAD})
_INTL = frozenset({Region.INTL})


DEFAULT_RULES: tuple[RuleDefinition, ...] = (
    # ------------------------------------------------------------------
    # Increase position
    # ------------------------------------------------------------------
    RuleDefinition(
        rule_id="price-52wk",
        name="Price % vs 52-wk High",
        description="Price has fallen below its 52-week high by the threshold percentage",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="pct_below_52wk_high",
        details_format="Current: {value:.1f}% below 52-wk high, Threshold: {threshold:g}%",
        order_number=1,
    ),
    RuleDefinition(
        rule_id="rsi-low",
        name="RSI Below Threshold",
        description="14-day RSI below the threshold indicates an oversold condition",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.BELOW,
        data_source=DataSource.RSI_DATA,
        metric="rsi",
        details_format="Current RSI(14): {value:.1f}, Threshold: {threshold:g}",
        order_number=2,
    ),
    RuleDefinition(
        rule_id="macd-below",
        name="MACD Positive Crossover",
        description="MACD crosses above its signal line while below the zero line",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.DELTA,
        evaluation_logic=EvaluationLogic.POSITIVE,
        data_source=DataSource.MACD_DATA,
        metric="macd_histogram",
        details_format="Current MACD histogram: {value:+.3f}, Threshold: {threshold}",
        order_number=3,
        zero_line="below",
    ),
    RuleDefinition(
        rule_id="golden-cross-pos",
        name="Golden Cross",
        description="50-day MA above 200-day MA indicates a bullish trend",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.DELTA,
        evaluation_logic=EvaluationLogic.POSITIVE,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="ma_spread",
        details_format="Current MA50-MA200: {value:+.2f}, Threshold: {threshold}",
        order_number=4,
    ),
    RuleDefinition(
        rule_id="sector-perf-neg",
        name="Sector Underperformance",
        description="90-day performance trails the sector benchmark by the threshold",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.BELOW,
        data_source=DataSource.MARKET_INDICES,
        metric="sector_relative_90d",
        details_format="Current vs sector: {value:+.1f}%, Threshold: {threshold:g}%",
        order_number=5,
    ),
    RuleDefinition(
        rule_id="at-200ma",
        name="At 200-day Moving Average",
        description="Price within the threshold band of the 200-day MA (potential support)",
        action_type=ActionType.INCREASE,
        evaluation_method=EvaluationMethod.PROXIMITY,
        evaluation_logic=EvaluationLogic.AT,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="pct_from_ma200",
        details_format="Current vs 200-day MA: {value:+.1f}%, Threshold: +/- {threshold:g}%",
        order_number=6,
    ),
    # ------------------------------------------------------------------
    # Decrease position
    # ------------------------------------------------------------------
    RuleDefinition(
        rule_id="price-90day",
        name="90-day Price Increase",
        description="Price rose by more than the threshold over 90 trading days",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="return_90d",
        details_format="Current 90-day return: {value:+.1f}%, Threshold: {threshold:g}%",
        order_number=1,
        default_severity=Severity.WARNING,
    ),
    RuleDefinition(
        rule_id="max-weight",
        name="Maximum Position Weight",
        description="Position weight exceeds the maximum share of the portfolio",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.PORTFOLIO,
        metric="weight_pct",
        details_format="{value:.1f}% vs {threshold:.1f}% max",
        order_number=2,
        default_severity=Severity.WARNING,
        escalates=True,
        regions=_DOMESTIC,
    ),
    RuleDefinition(
        rule_id="max-weight-intl",
        name="Maximum INTL Position Weight",
        description="International position weight exceeds the INTL maximum",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.PORTFOLIO,
        metric="weight_pct",
        details_format="{value:.1f}% vs {threshold:.1f}% max",
        order_number=3,
        default_severity=Severity.WARNING,
        escalates=True,
        regions=_INTL,
    ),
    RuleDefinition(
        rule_id="active-risk",
        name="Active Risk Threshold",
        description="Active risk versus benchmark exceeds the threshold",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.PORTFOLIO,
        metric="active_risk",
        details_format="{value:.1f}% vs {threshold:.1f}% max active risk",
        order_number=4,
        default_severity=Severity.WARNING,
        escalates=True,
    ),
    RuleDefinition(
        rule_id="rsi-high",
        name="RSI Above Threshold",
        description="14-day RSI above the threshold indicates an overbought condition",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.RSI_DATA,
        metric="rsi",
        details_format="Current RSI(14): {value:.1f}, Threshold: {threshold:g}",
        order_number=5,
        default_severity=Severity.WARNING,
    ),
    RuleDefinition(
        rule_id="macd-above",
        name="MACD Negative Crossover",
        description="MACD crosses below its signal line while above the zero line",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.DELTA,
        evaluation_logic=EvaluationLogic.NEGATIVE,
        data_source=DataSource.MACD_DATA,
        metric="macd_histogram",
        details_format="Current MACD histogram: {value:+.3f}, Threshold: {threshold}",
        order_number=6,
        default_severity=Severity.WARNING,
        zero_line="above",
    ),
    RuleDefinition(
        rule_id="golden-cross-neg",
        name="Death Cross",
        description="50-day MA below 200-day MA indicates a bearish trend",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.DELTA,
        evaluation_logic=EvaluationLogic.NEGATIVE,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="ma_spread",
        details_format="Current MA50-MA200: {value:+.2f}, Threshold: {threshold}",
        order_number=7,
        default_severity=Severity.WARNING,
    ),
    RuleDefinition(
        rule_id="sector-perf-pos",
        name="Sector Outperformance",
        description="90-day performance leads the sector benchmark by the threshold",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.MARKET_INDICES,
        metric="sector_relative_90d",
        details_format="Current vs sector: {value:+.1f}%, Threshold: {threshold:g}%",
        order_number=8,
        default_severity=Severity.WARNING,
    ),
    RuleDefinition(
        rule_id="under-200ma",
        name="Under 200-day Moving Average",
        description="Price below the 200-day MA by more than the threshold",
        action_type=ActionType.DECREASE,
        evaluation_method=EvaluationMethod.PERCENT,
        evaluation_logic=EvaluationLogic.BELOW,
        data_source=DataSource.HISTORICAL_PRICES,
        metric="pct_from_ma200",
        details_format="Current vs 200-day MA: {value:+.1f}%, Threshold: {threshold:g}%",
        order_number=9,
        default_severity=Severity.WARNING,
    ),
    # ------------------------------------------------------------------
    # Rating increase
    # ------------------------------------------------------------------
    RuleDefinition(
        rule_id="earnings-quality",
        name="Earnings Quality",
        description="Latest earnings score exceeds the points required to raise the rating",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="score",
        details_format="Current earnings score: {value:g}, Threshold: {threshold:g}",
        order_number=1,
        rating_action="Increase",
    ),
    RuleDefinition(
        rule_id="ebitda-margin",
        name="EBITDA Margin Improvement",
        description="EBITDA margin improved YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="ebitda_margin_positive_quarters",
        details_format="Positive EBITDA margin quarters: {value:g}, Threshold: {threshold:g}",
        order_number=2,
        rating_action="Increase",
    ),
    RuleDefinition(
        rule_id="roic-increase",
        name="ROIC Improvement",
        description="ROIC improved YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="roic_positive_quarters",
        details_format="Positive ROIC quarters: {value:g}, Threshold: {threshold:g}",
        order_number=3,
        rating_action="Increase",
    ),
    RuleDefinition(
        rule_id="debt-reduction",
        name="Debt Reduction",
        description="Net debt improved YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="net_debt_positive_quarters",
        details_format="Positive net debt quarters: {value:g}, Threshold: {threshold:g}",
        order_number=4,
        rating_action="Increase",
    ),
    # ------------------------------------------------------------------
    # Rating decrease
    # ------------------------------------------------------------------
    RuleDefinition(
        rule_id="negative-quarters",
        name="Consecutive Negative Quarters",
        description="Consecutive negative quarters beyond the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.BELOW,
        data_source=DataSource.EARNINGS,
        metric="negative_quarters",
        details_format="Negative quarters: {value:g}, Threshold: {threshold:g}",
        order_number=1,
        default_severity=Severity.WARNING,
        rating_action="Decrease",
    ),
    RuleDefinition(
        rule_id="ebitda-margin-neg",
        name="EBITDA Margin Deterioration",
        description="EBITDA margin declined YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="ebitda_margin_negative_quarters",
        details_format="Negative EBITDA margin quarters: {value:g}, Threshold: {threshold:g}",
        order_number=2,
        default_severity=Severity.WARNING,
        rating_action="Decrease",
    ),
    RuleDefinition(
        rule_id="roic-decrease",
        name="ROIC Deterioration",
        description="ROIC declined YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="roic_negative_quarters",
        details_format="Negative ROIC quarters: {value:g}, Threshold: {threshold:g}",
        order_number=3,
        default_severity=Severity.WARNING,
        rating_action="Decrease",
    ),
    RuleDefinition(
        rule_id="debt-increase",
        name="Debt Increase",
        description="Net debt worsened YoY in more quarters than the threshold",
        action_type=ActionType.RATING,
        evaluation_method=EvaluationMethod.VALUE,
        evaluation_logic=EvaluationLogic.ABOVE,
        data_source=DataSource.EARNINGS,
        metric="net_debt_negative_quarters",
        details_format="Negative net debt quarters: {value:g}, Threshold: {threshold:g}",
        order_number=4,
        default_severity=Severity.WARNING,
        rating_action="Decrease",
    ),
)


def sort_rules(rules: tuple[RuleDefinition, ...] | list[RuleDefinition]) -> list[RuleDefinition]:
    """Order rules by action type, then rating direction, then order number."""
    action_order = {ActionType.INCREASE: 0, ActionType.DECREASE: 1, ActionType.RATING: 2}
    return sorted(
        rules,
        key=lambda r: (
            action_order[r.action_type],
            0 if r.rating_action in (None, "Increase") else 1,
            r.order_number,
            r.rule_id,
        ),
    )


def rules_for_action(
    action_type: ActionType | str,
    rating_action: Optional[str] = None,
    rules: Optional[tuple[RuleDefinition, ...]] = None,
) -> list[RuleDefinition]:
    """
    List the rules for one action type, in evaluation order.

    Args:
        action_type: Increase, Decrease or Rating
        rating_action: For Rating, optionally restrict to Increase or Decrease
        rules: Rule set to read (defaults to DEFAULT_RULES)

    Returns:
        Rules sorted by order number
    """
    action = ActionType.parse(action_type)
    selected = [r for r in (rules or DEFAULT_RULES) if r.action_type == action]
    if rating_action is not None:
        wanted = rating_action.strip().capitalize()
        selected = [r for r in selected if r.rating_action == wanted]
    return sort_rules(selected)


def get_rule(rule_id: str, rules: Optional[tuple[RuleDefinition, ...]] = None) -> RuleDefinition:
    """
    Look up a rule by id.

    Raises:
        KeyError: If no rule has that id
    """
    for rule in rules or DEFAULT_RULES:
        if rule.rule_id == rule_id:
            return rule
    raise KeyError(f"Unknown rule: {rule_id}")
