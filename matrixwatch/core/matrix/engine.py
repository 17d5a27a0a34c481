"""
Decision Matrix Engine.

Runs the full pipeline for a batch of holdings:

1. Validate holdings (invalid ones are skipped with a reason)
2. Compute indicator snapshots concurrently, one job per symbol
3. Score earnings records that arrive unscored
4. Evaluate every rule for every holding
5. Deduplicate and order the candidate alerts

The engine is a stateless function of its inputs: it performs no I/O and
keeps nothing between calls, so repeated runs over the same inputs return
identical alert lists, and per-region runs merge to the same result as a
single run over all regions.

Usage:
    engine = MatrixEngine()
    alerts = engine.evaluate(holdings, price_history, earnings)

    # With skip reasons for observability
    result = engine.run(holdings, price_history, earnings)
    print(f"{len(result.alerts)} alerts, {result.skipped_count} skipped")
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from matrixwatch.core.exceptions import InvalidHoldingError
from matrixwatch.core.indicators.snapshot import compute_snapshots
from matrixwatch.core.matrix.aggregator import AlertAggregator
from matrixwatch.core.matrix.evaluator import RuleEvaluator
from matrixwatch.core.matrix.rules import DEFAULT_RULES, RuleDefinition
from matrixwatch.core.matrix.thresholds import ThresholdTable
from matrixwatch.core.models import (
    Alert,
    EarningsRecord,
    Holding,
    PricePoint,
    Region,
)
from matrixwatch.core.scoring.earnings import EarningsScorer

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass
class EngineRun:
    """
    Outcome of one engine pass.

    Attributes:
        alerts: Final ordered alerts
        skipped: Symbol -> reason for every holding that could not be evaluated
        evaluated: Number of holdings evaluated
    """

    alerts: list[Alert] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    evaluated: int = 0

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


class MatrixEngine:
    """
    Evaluates holdings against the decision matrix.

    The threshold table is validated against the rule set at construction:
    a missing cell is fatal and the engine refuses to run.
    """

    def __init__(
        self,
        table: Optional[ThresholdTable] = None,
        rules: Optional[tuple[RuleDefinition, ...]] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """
        Initialize the engine.

        Args:
            table: Threshold table (defaults to the built-in matrix)
            rules: Rule set (defaults to DEFAULT_RULES)
            max_workers: Threads used for indicator computation

        Raises:
            ThresholdConfigError: If the table cannot serve every rule
        """
        self.table = table or ThresholdTable.default()
        self.rules = tuple(rules or DEFAULT_RULES)
        self.max_workers = max(1, max_workers)

        self.table.validate(self.rules)

        self.evaluator = RuleEvaluator(self.table, self.rules)
        self.aggregator = AlertAggregator()
        self.scorer = EarningsScorer()

    @classmethod
    def from_config(cls, cfg=None) -> "MatrixEngine":
        """Build an engine from application configuration."""
        if cfg is None:
            from matrixwatch.config import config as cfg

        table = (
            ThresholdTable.from_json(cfg.thresholds_path)
            if cfg.thresholds_path is not None
            else ThresholdTable.default()
        )
        return cls(table=table, max_workers=cfg.max_workers)

    def evaluate(
        self,
        holdings: list[Holding],
        price_history: dict[str, list[PricePoint]],
        earnings: Optional[dict[str, EarningsRecord]] = None,
        benchmarks: Optional[dict[str, list[PricePoint]]] = None,
    ) -> list[Alert]:
        """
        Evaluate holdings and return the ordered alert list.

        See run() for arguments; skip reasons are logged but not returned.
        """
        return self.run(holdings, price_history, earnings, benchmarks).alerts

    def run(
        self,
        holdings: list[Holding],
        price_history: dict[str, list[PricePoint]],
        earnings: Optional[dict[str, EarningsRecord]] = None,
        benchmarks: Optional[dict[str, list[PricePoint]]] = None,
    ) -> EngineRun:
        """
        Evaluate holdings and report what was skipped.

        Args:
            holdings: Holdings to evaluate (any mix of regions)
            price_history: Symbol -> ascending price series
            earnings: Symbol -> latest earnings record
            benchmarks: Benchmark symbol -> price series, for
                sector-relative performance

        Returns:
            EngineRun with ordered alerts and skip reasons
        """
        earnings = earnings or {}
        benchmarks = benchmarks or {}
        result = EngineRun()

        valid: list[Holding] = []
        for holding in holdings:
            candidate = replace(holding)
            try:
                candidate.validate()
            except InvalidHoldingError as e:
                logger.warning("Skipping %s: %s", e.symbol, e.reason)
                result.skipped[e.symbol] = e.reason
                continue
            valid.append(candidate)

        symbols = {h.symbol for h in valid}
        series_by_symbol = {s: price_history[s] for s in symbols if s in price_history}
        benchmark_by_symbol = {
            h.symbol: self._benchmark_series(h, benchmarks, price_history)
            for h in valid
            if h.benchmark
        }
        batch = compute_snapshots(series_by_symbol, benchmark_by_symbol, self.max_workers)

        candidates: list[Alert] = []
        for holding in valid:
            if holding.symbol in batch.failures:
                result.skipped[holding.symbol] = batch.failures[holding.symbol]
                continue

            record = self._scored(earnings.get(holding.symbol))
            candidates.extend(
                self.evaluator.evaluate_holding(
                    holding, batch.snapshots.get(holding.symbol), record
                )
            )
            result.evaluated += 1

        result.alerts = self.aggregator.aggregate(candidates)
        logger.info(
            "Matrix run: %d holdings evaluated, %d skipped, %d alerts",
            result.evaluated, result.skipped_count, len(result.alerts),
        )
        return result

    def run_regions(
        self,
        holdings_by_region: dict[Region | str, list[Holding]],
        price_history: dict[str, list[PricePoint]],
        earnings: Optional[dict[str, EarningsRecord]] = None,
        benchmarks: Optional[dict[str, list[PricePoint]]] = None,
    ) -> EngineRun:
        """
        Run one independent pass per region and merge the results.

        Equivalent to a single run() over the union of all holdings.
        """
        merged = EngineRun()
        candidates: list[Alert] = []

        for region in sorted(holdings_by_region, key=lambda r: Region.parse(r).value):
            region_run = self.run(
                holdings_by_region[region], price_history, earnings, benchmarks
            )
            candidates.extend(region_run.alerts)
            merged.skipped.update(region_run.skipped)
            merged.evaluated += region_run.evaluated

        merged.alerts = self.aggregator.aggregate(candidates)
        return merged

    def _scored(self, record: Optional[EarningsRecord]) -> Optional[EarningsRecord]:
        if record is None or record.score is not None:
            return record
        return self.scorer.score_record(record)

    def _benchmark_series(
        self,
        holding: Holding,
        benchmarks: dict[str, list[PricePoint]],
        price_history: dict[str, list[PricePoint]],
    ) -> Optional[list[PricePoint]]:
        series = benchmarks.get(holding.benchmark) or price_history.get(holding.benchmark)
        if series is None:
            logger.debug("%s: no history for benchmark %s", holding.symbol, holding.benchmark)
        return series


def filter_region(holdings: list[Holding], region: Region | str) -> list[Holding]:
    """Holdings belonging to one region (unparseable regions are dropped)."""
    wanted = Region.parse(region)
    selected = []
    for holding in holdings:
        try:
            if Region.parse(holding.region) == wanted:
                selected.append(holding)
        except ValueError:
            continue
    return selected
