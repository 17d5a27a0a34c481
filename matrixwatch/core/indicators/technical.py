"""
Technical indicator calculations.

Pure functions over a list of closing prices ordered oldest to newest.
Every function works on the series index, not calendar dates, so weekend
and holiday gaps need no special handling.

Indicators:
- RSI: Wilder's Relative Strength Index (bounded 0-100)
- EMA: Exponential moving average seeded with a simple average
- MACD: Fast EMA minus slow EMA, with signal line and histogram
- SMA: Trailing simple moving average
- 52-week range: High/low, range position, and distance below the high
- Percent change: Return over a trailing number of points

Positions that lack enough history are None, never zero.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
TRADING_DAYS_PER_YEAR = 252


def calculate_rsi(
    closes: Sequence[float], period: int = RSI_PERIOD
) -> list[Optional[float]]:
    """
    Calculate RSI for every position of a price series.

    The first average gain/loss is the simple mean of the first `period`
    changes; later values use Wilder smoothing
    avg = (avg * (period - 1) + current) / period.

    Args:
        closes: Closing prices, oldest first
        period: Lookback period (default 14)

    Returns:
        List aligned with `closes`. Entries before index `period` are None.
        All entries are None when fewer than period + 1 closes exist.
    """
    values: list[Optional[float]] = [None] * len(closes)
    if len(closes) < period + 1:
        logger.debug(
            "Not enough data for RSI(%d): need %d prices, got %d",
            period, period + 1, len(closes),
        )
        return values

    gains = []
    losses = []
    for prev, curr in zip(closes, closes[1:]):
        change = curr - prev
        gains.append(change if change > 0 else 0.0)
        losses.append(-change if change < 0 else 0.0)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    values[period] = _rsi(avg_gain, avg_loss)

    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # Change i sits between closes[i] and closes[i + 1]
        values[i + 1] = _rsi(avg_gain, avg_loss)

    return values


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_ema(values: Sequence[float], period: int) -> list[Optional[float]]:
    """
    Calculate an exponential moving average.

    Seed is the simple average of the first `period` values, placed at index
    period - 1. Subsequent values use ema = value * k + prev * (1 - k) with
    k = 2 / (period + 1).
    """
    result: list[Optional[float]] = [None] * len(values)
    if len(values) < period:
        return result

    k = 2.0 / (period + 1)
    ema = sum(values[:period]) / period
    result[period - 1] = ema
    for i in range(period, len(values)):
        ema = values[i] * k + ema * (1.0 - k)
        result[i] = ema
    return result


@dataclass
class MACDSeries:
    """MACD line, signal line, and histogram aligned with the input prices."""

    macd: list[Optional[float]]
    signal: list[Optional[float]]
    histogram: list[Optional[float]]

    def latest(self) -> tuple[Optional[float], Optional[float], Optional[float]]:
        """Most recent (macd, signal, histogram), or Nones for an empty series."""
        if not self.macd:
            return None, None, None
        return self.macd[-1], self.signal[-1], self.histogram[-1]


def calculate_macd(
    closes: Sequence[float],
    fast_period: int = MACD_FAST,
    slow_period: int = MACD_SLOW,
    signal_period: int = MACD_SIGNAL,
) -> MACDSeries:
    """
    Calculate MACD(fast, slow, signal).

    The MACD line is available once the slow EMA is seeded. The signal line
    is an EMA of the available MACD values, so it (and the histogram) stays
    None until `signal_period` MACD values have accumulated. Partial series
    therefore yield MACD-line-only values.
    """
    n = len(closes)
    fast = calculate_ema(closes, fast_period)
    slow = calculate_ema(closes, slow_period)

    macd_line: list[Optional[float]] = [None] * n
    for i in range(n):
        if fast[i] is not None and slow[i] is not None:
            macd_line[i] = fast[i] - slow[i]

    indices = [i for i, v in enumerate(macd_line) if v is not None]
    defined = [macd_line[i] for i in indices]
    signal_values = calculate_ema(defined, signal_period)

    signal_line: list[Optional[float]] = [None] * n
    histogram: list[Optional[float]] = [None] * n
    for idx, sig in zip(indices, signal_values):
        if sig is None:
            continue
        signal_line[idx] = sig
        histogram[idx] = macd_line[idx] - sig

    return MACDSeries(macd=macd_line, signal=signal_line, histogram=histogram)


def simple_moving_average(closes: Sequence[float], window: int) -> Optional[float]:
    """Mean of the trailing `window` closes, or None with insufficient history."""
    if window <= 0 or len(closes) < window:
        return None
    return sum(closes[-window:]) / window


@dataclass
class RangePosition:
    """Where the latest close sits within its trailing high/low range."""

    high: float
    low: float
    position: Optional[float]  # 0 = at low, 1 = at high
    pct_below_high: Optional[float]


def fifty_two_week_range(
    closes: Sequence[float], window: int = TRADING_DAYS_PER_YEAR
) -> Optional[RangePosition]:
    """
    Compute the 52-week range position of the latest close.

    Uses the trailing `window` points, or the whole series when shorter.
    compute_snapshot() only calls this once a full year of closes exists.

    Returns:
        RangePosition, or None for an empty series.
    """
    if not closes:
        return None
    trailing = closes[-window:]
    current = closes[-1]
    high = max(trailing)
    low = min(trailing)

    position = (current - low) / (high - low) if high != low else None
    pct_below_high = (high - current) / high * 100 if high != 0 else None
    return RangePosition(high=high, low=low, position=position, pct_below_high=pct_below_high)


def percent_change(closes: Sequence[float], lookback: int = 90) -> Optional[float]:
    """
    Percent return of the latest close versus `lookback` points earlier.

    Returns:
        (current / base - 1) * 100, or None when fewer than lookback + 1
        points exist or the base price is zero.
    """
    if lookback <= 0 or len(closes) < lookback + 1:
        return None
    base = closes[-1 - lookback]
    if base == 0:
        return None
    return (closes[-1] / base - 1.0) * 100
