"""Technical indicator pipeline."""

from matrixwatch.core.indicators.snapshot import (
    IndicatorSnapshot,
    SnapshotBatch,
    compute_snapshot,
    compute_snapshots,
)
from matrixwatch.core.indicators.technical import (
    MACDSeries,
    RangePosition,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    fifty_two_week_range,
    percent_change,
    simple_moving_average,
)

__all__ = [
    # Snapshots
    "IndicatorSnapshot",
    "SnapshotBatch",
    "compute_snapshot",
    "compute_snapshots",
    # Series calculations
    "MACDSeries",
    "RangePosition",
    "calculate_ema",
    "calculate_macd",
    "calculate_rsi",
    "fifty_two_week_range",
    "percent_change",
    "simple_moving_average",
]
