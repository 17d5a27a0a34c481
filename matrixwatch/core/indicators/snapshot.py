"""
Indicator snapshots for the rule evaluator.

A snapshot is the latest value of every indicator for one symbol. It is a
computed view, never a source of truth: recompute it from the trailing
price window whenever the history changes.

Snapshots for distinct symbols share no state and are computed
concurrently by compute_snapshots().
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Optional

from matrixwatch.core.exceptions import DataError, PriceSeriesError
from matrixwatch.core.indicators.technical import (
    MACD_SIGNAL,
    MACD_SLOW,
    RSI_PERIOD,
    TRADING_DAYS_PER_YEAR,
    calculate_macd,
    calculate_rsi,
    fifty_two_week_range,
    percent_change,
    simple_moving_average,
)
from matrixwatch.core.models import PricePoint, validate_series

logger = logging.getLogger(__name__)

# Points needed before the MACD signal line is considered stable
MACD_STABLE_POINTS = MACD_SLOW + MACD_SIGNAL
SHORT_MA_WINDOW = 50
LONG_MA_WINDOW = 200
RETURN_LOOKBACK = 90


@dataclass
class IndicatorSnapshot:
    """Latest indicator values for one symbol. None means insufficient history."""

    symbol: str
    as_of: Optional[date] = None
    close: Optional[float] = None

    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None

    ma50: Optional[float] = None
    ma200: Optional[float] = None

    high_52wk: Optional[float] = None
    low_52wk: Optional[float] = None
    range_position: Optional[float] = None
    pct_below_52wk_high: Optional[float] = None

    return_90d: Optional[float] = None
    sector_relative_90d: Optional[float] = None  # percentage points vs benchmark

    @property
    def ma_spread(self) -> Optional[float]:
        """MA50 minus MA200; sign marks golden (+) or death (-) cross state."""
        if self.ma50 is None or self.ma200 is None:
            return None
        return self.ma50 - self.ma200

    @property
    def pct_from_ma200(self) -> Optional[float]:
        """Signed distance of the close from the 200-day MA, in percent."""
        if self.close is None or not self.ma200:
            return None
        return (self.close / self.ma200 - 1.0) * 100

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["as_of"] = self.as_of.isoformat() if self.as_of else None
        data["ma_spread"] = self.ma_spread
        data["pct_from_ma200"] = self.pct_from_ma200
        return data


def compute_snapshot(
    symbol: str,
    series: list[PricePoint],
    benchmark_series: Optional[list[PricePoint]] = None,
) -> IndicatorSnapshot:
    """
    Compute the indicator snapshot for one symbol.

    Args:
        symbol: Stock ticker symbol
        series: Ascending price history, one point per trading day
        benchmark_series: Optional sector benchmark history for
            sector-relative performance

    Returns:
        IndicatorSnapshot with every computable field set

    Raises:
        PriceSeriesError: If the series is unordered or has duplicate dates
    """
    validate_series(symbol, series)
    snapshot = IndicatorSnapshot(symbol=symbol)
    if not series:
        return snapshot

    closes = [p.close for p in series]
    snapshot.as_of = series[-1].trade_date
    snapshot.close = closes[-1]

    if len(closes) > RSI_PERIOD:
        snapshot.rsi = calculate_rsi(closes, RSI_PERIOD)[-1]

    macd_series = calculate_macd(closes)
    line, signal, histogram = macd_series.latest()
    snapshot.macd = line
    if len(closes) >= MACD_STABLE_POINTS:
        snapshot.macd_signal = signal
        snapshot.macd_histogram = histogram

    snapshot.ma50 = simple_moving_average(closes, SHORT_MA_WINDOW)
    snapshot.ma200 = simple_moving_average(closes, LONG_MA_WINDOW)

    # A shorter series has no meaningful 52-week high
    range_position = (
        fifty_two_week_range(closes, TRADING_DAYS_PER_YEAR)
        if len(closes) >= TRADING_DAYS_PER_YEAR
        else None
    )
    if range_position is not None:
        snapshot.high_52wk = range_position.high
        snapshot.low_52wk = range_position.low
        snapshot.range_position = range_position.position
        snapshot.pct_below_52wk_high = range_position.pct_below_high

    snapshot.return_90d = percent_change(closes, RETURN_LOOKBACK)

    if benchmark_series and snapshot.return_90d is not None:
        snapshot.sector_relative_90d = _sector_relative(
            symbol, snapshot.return_90d, benchmark_series
        )

    return snapshot


def _sector_relative(
    symbol: str, return_90d: float, benchmark_series: list[PricePoint]
) -> Optional[float]:
    benchmark = benchmark_series[0].symbol
    try:
        validate_series(benchmark, benchmark_series)
    except PriceSeriesError as e:
        logger.warning("Ignoring benchmark %s for %s: %s", benchmark, symbol, e)
        return None

    benchmark_return = percent_change(
        [p.close for p in benchmark_series], RETURN_LOOKBACK
    )
    if benchmark_return is None:
        return None
    return return_90d - benchmark_return


@dataclass
class SnapshotBatch:
    """Result of a concurrent snapshot computation."""

    snapshots: dict[str, IndicatorSnapshot] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


def compute_snapshots(
    price_history: dict[str, list[PricePoint]],
    benchmarks: Optional[dict[str, Optional[list[PricePoint]]]] = None,
    max_workers: int = 4,
) -> SnapshotBatch:
    """
    Compute snapshots for many symbols in parallel.

    Args:
        price_history: Symbol -> ascending price series
        benchmarks: Symbol -> benchmark series used for that symbol
        max_workers: Thread pool size

    Returns:
        SnapshotBatch with snapshots keyed by symbol and the reason for
        every symbol whose series was rejected
    """
    benchmarks = benchmarks or {}
    batch = SnapshotBatch()

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                compute_snapshot, symbol, series, benchmarks.get(symbol)
            ): symbol
            for symbol, series in price_history.items()
        }

        for future in as_completed(futures):
            symbol = futures[future]
            try:
                batch.snapshots[symbol] = future.result()
            except DataError as e:
                logger.warning("Skipping indicators for %s: %s", symbol, e)
                batch.failures[symbol] = str(e)

    return batch
