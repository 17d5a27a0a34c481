"""Decision matrix: rules, thresholds, evaluation and aggregation."""

from matrixwatch.core.matrix.aggregator import AlertAggregator, alert_sort_key
from matrixwatch.core.matrix.engine import EngineRun, MatrixEngine, filter_region
from matrixwatch.core.matrix.evaluator import RuleEvaluator, compare, resolve_metric
from matrixwatch.core.matrix.rules import (
    DEFAULT_RULES,
    DataSource,
    EvaluationLogic,
    EvaluationMethod,
    RuleDefinition,
    get_rule,
    rules_for_action,
)
from matrixwatch.core.matrix.thresholds import (
    MATRIX_THRESHOLDS,
    NOT_APPLICABLE,
    DeltaDirection,
    ThresholdTable,
    parse_threshold,
)

__all__ = [
    # Engine
    "EngineRun",
    "MatrixEngine",
    "filter_region",
    # Evaluation
    "AlertAggregator",
    "RuleEvaluator",
    "alert_sort_key",
    "compare",
    "resolve_metric",
    # Rules
    "DEFAULT_RULES",
    "DataSource",
    "EvaluationLogic",
    "EvaluationMethod",
    "RuleDefinition",
    "get_rule",
    "rules_for_action",
    # Thresholds
    "MATRIX_THRESHOLDS",
    "NOT_APPLICABLE",
    "DeltaDirection",
    "ThresholdTable",
    "parse_threshold",
]
