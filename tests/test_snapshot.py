"""
Tests for indicator snapshots.
"""

from dataclasses import replace

import pytest

from matrixwatch.core.exceptions import PriceSeriesError
from matrixwatch.core.indicators.snapshot import (
    MACD_STABLE_POINTS,
    compute_snapshot,
    compute_snapshots,
)


class TestComputeSnapshot:
    """Tests for single-symbol snapshots."""

    def test_full_history(self, series_factory, rising_closes):
        """With 300 points every indicator is available."""
        snap = compute_snapshot("AAPL", series_factory("AAPL", rising_closes))

        assert snap.close == 399.0
        assert snap.rsi == 100.0
        assert snap.macd is not None
        assert snap.macd_histogram is not None
        assert snap.ma50 == pytest.approx(sum(rising_closes[-50:]) / 50)
        assert snap.ma200 == pytest.approx(sum(rising_closes[-200:]) / 200)
        assert snap.ma_spread > 0
        assert snap.pct_below_52wk_high == pytest.approx(0.0)
        assert snap.return_90d == pytest.approx((399.0 / 309.0 - 1) * 100)

    def test_short_history_is_none_not_zero(self, series_factory):
        """Indicators without enough history are None."""
        snap = compute_snapshot("NEW", series_factory("NEW", [10.0 + i for i in range(10)]))

        assert snap.close == 19.0
        assert snap.rsi is None
        assert snap.macd is None
        assert snap.macd_histogram is None
        assert snap.ma50 is None
        assert snap.ma200 is None
        assert snap.ma_spread is None
        assert snap.pct_from_ma200 is None
        assert snap.return_90d is None
        assert snap.high_52wk is None
        assert snap.pct_below_52wk_high is None

    def test_empty_series(self):
        snap = compute_snapshot("NONE", [])

        assert snap.as_of is None
        assert snap.close is None
        assert snap.rsi is None

    def test_macd_signal_needs_stable_history(self, series_factory):
        """Histogram is withheld until MACD_STABLE_POINTS closes exist."""
        closes = [100.0 + (i % 5) for i in range(MACD_STABLE_POINTS)]

        short = compute_snapshot("X", series_factory("X", closes[:-1]))
        full = compute_snapshot("X", series_factory("X", closes))

        assert short.macd is not None
        assert short.macd_histogram is None
        assert full.macd_histogram is not None

    def test_90_day_return_needs_91_points(self, series_factory):
        closes = [100.0] * 90 + [120.0]

        assert compute_snapshot("X", series_factory("X", closes)).return_90d == pytest.approx(20.0)
        assert compute_snapshot("X", series_factory("X", closes[1:])).return_90d is None

    def test_sector_relative(self, series_factory):
        """Sector-relative is the 90-day return gap in percentage points."""
        holding = series_factory("XOM", [100.0 + i for i in range(91)])
        benchmark = series_factory("XLE", [100.0] * 90 + [110.0])

        snap = compute_snapshot("XOM", holding, benchmark)

        assert snap.return_90d == pytest.approx(90.0)
        assert snap.sector_relative_90d == pytest.approx(80.0)

    def test_unordered_benchmark_ignored(self, series_factory):
        """A malformed benchmark drops only the sector-relative return."""
        holding = series_factory("AAA", [100.0] * 91)
        benchmark = list(reversed(series_factory("XLK", [100.0 + i for i in range(91)])))

        snap = compute_snapshot("AAA", holding, benchmark)

        assert snap.sector_relative_90d is None
        assert snap.return_90d == pytest.approx(0.0)
        assert snap.rsi is not None

    def test_duplicate_benchmark_dates_ignored(self, series_factory):
        holding = series_factory("AAA", [100.0] * 91)
        benchmark = series_factory("XLK", [100.0] * 91)
        benchmark[-1] = replace(benchmark[-1], trade_date=benchmark[-2].trade_date)

        assert compute_snapshot("AAA", holding, benchmark).sector_relative_90d is None

    def test_52_week_range_needs_a_year(self, series_factory):
        closes = [100.0] * 251 + [90.0]

        full = compute_snapshot("X", series_factory("X", closes))
        short = compute_snapshot("X", series_factory("X", closes[1:]))

        assert full.pct_below_52wk_high == pytest.approx(10.0)
        assert short.high_52wk is None
        assert short.pct_below_52wk_high is None

    def test_sector_relative_without_benchmark(self, series_factory, rising_closes):
        snap = compute_snapshot("AAPL", series_factory("AAPL", rising_closes))

        assert snap.sector_relative_90d is None

    def test_pct_from_ma200(self, series_factory):
        closes = [100.0] * 199 + [110.0]
        snap = compute_snapshot("X", series_factory("X", closes))

        assert snap.ma200 == pytest.approx(100.05)
        assert snap.pct_from_ma200 == pytest.approx((110.0 / 100.05 - 1) * 100)

    def test_duplicate_dates_rejected(self, series_factory):
        series = series_factory("X", [1.0, 2.0, 3.0])
        series[2] = replace(series[2], trade_date=series[1].trade_date)

        with pytest.raises(PriceSeriesError, match="duplicate"):
            compute_snapshot("X", series)

    def test_unordered_dates_rejected(self, series_factory):
        series = series_factory("X", [1.0, 2.0, 3.0])

        with pytest.raises(PriceSeriesError, match="out of order"):
            compute_snapshot("X", list(reversed(series)))

    def test_to_dict(self, series_factory, rising_closes):
        data = compute_snapshot("AAPL", series_factory("AAPL", rising_closes)).to_dict()

        assert data["symbol"] == "AAPL"
        assert data["as_of"] == "2024-10-26"
        assert data["ma_spread"] > 0


class TestComputeSnapshots:
    """Tests for concurrent snapshot computation."""

    def test_bad_series_isolated(self, series_factory, rising_closes):
        """A malformed series fails only its own symbol."""
        good = series_factory("GOOD", rising_closes)
        bad = list(reversed(series_factory("BAD", rising_closes)))

        batch = compute_snapshots({"GOOD": good, "BAD": bad}, max_workers=2)

        assert set(batch.snapshots) == {"GOOD"}
        assert set(batch.failures) == {"BAD"}
        assert "BAD" in batch.failures["BAD"]

    def test_worker_count_does_not_change_results(self, series_factory, wave_closes, rising_closes):
        history = {
            "A": series_factory("A", wave_closes),
            "B": series_factory("B", rising_closes),
            "C": series_factory("C", wave_closes[:50]),
        }

        serial = compute_snapshots(history, max_workers=1)
        parallel = compute_snapshots(history, max_workers=8)

        assert serial.snapshots == parallel.snapshots

    def test_benchmarks_per_symbol(self, series_factory):
        history = {"XOM": series_factory("XOM", [100.0 + i for i in range(91)])}
        benchmarks = {"XOM": series_factory("XLE", [100.0] * 91)}

        batch = compute_snapshots(history, benchmarks)

        assert batch.snapshots["XOM"].sector_relative_90d == pytest.approx(90.0)
