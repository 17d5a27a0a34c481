"""
Tests for the Decision Matrix Engine.
"""

import copy
import json

import pytest

from matrixwatch.config import Config
from matrixwatch.core.exceptions import ThresholdConfigError
from matrixwatch.core.matrix.engine import MatrixEngine, filter_region
from matrixwatch.core.matrix.thresholds import MATRIX_THRESHOLDS, ThresholdTable
from matrixwatch.core.models import Classification, Region, Severity


@pytest.fixture
def engine():
    return MatrixEngine()


@pytest.fixture
def portfolio(make_holding, series_factory, rising_closes, falling_closes, wave_closes):
    """Holdings across all three regions with full price history."""
    holdings = [
        make_holding(symbol="AAPL", region=Region.USD, classification=Classification.COMP, tier=2, weight=0.09),
        make_holding(symbol="MSFT", region=Region.USD, classification=Classification.CAT, tier=1, weight=0.02),
        make_holding(symbol="SHOP", region=Region.CAD, classification=Classification.CAT, tier=2, weight=0.05),
        make_holding(symbol="RY", region=Region.CAD, classification=Classification.CYCL, tier=1, weight=0.13),
        make_holding(symbol="NESN", region=Region.INTL, classification=Classification.COMP, tier=3, weight=0.08),
        make_holding(symbol="SAP", region=Region.INTL, classification=Classification.CYCL, tier=2, weight=0.03),
    ]
    history = {
        "AAPL": series_factory("AAPL", rising_closes),
        "MSFT": series_factory("MSFT", falling_closes),
        "SHOP": series_factory("SHOP", wave_closes),
        "RY": series_factory("RY", wave_closes[:120]),
        "NESN": series_factory("NESN", falling_closes),
        "SAP": series_factory("SAP", rising_closes),
    }
    return holdings, history


def by_region(holdings):
    grouped = {}
    for h in holdings:
        grouped.setdefault(h.region, []).append(h)
    return grouped


class TestConstruction:
    """Tests for engine setup."""

    def test_default_table_validates(self):
        engine = MatrixEngine()

        assert len(engine.rules) == 23

    def test_missing_cell_is_fatal(self):
        raw = copy.deepcopy(MATRIX_THRESHOLDS)
        del raw["max-weight"]["Catalyst"][2]

        with pytest.raises(ThresholdConfigError) as exc_info:
            MatrixEngine(table=ThresholdTable(raw))
        assert exc_info.value.rule_id == "max-weight"

    def test_from_config_default_table(self, tmp_path):
        cfg = Config(db_path=tmp_path / "x.db", thresholds_path=None, max_workers=2)

        engine = MatrixEngine.from_config(cfg)

        assert engine.max_workers == 2

    def test_from_config_custom_table(self, tmp_path, make_holding):
        raw = copy.deepcopy(MATRIX_THRESHOLDS)
        raw["max-weight"]["Compounder"][1] = "3%"
        path = tmp_path / "thresholds.json"
        path.write_text(json.dumps(raw), encoding="utf-8")
        cfg = Config(db_path=tmp_path / "x.db", thresholds_path=path, max_workers=1)

        engine = MatrixEngine.from_config(cfg)
        holding = make_holding(classification=Classification.COMP, tier=1, weight=0.04)

        alerts = engine.evaluate([holding], {})
        assert [a.details for a in alerts] == ["4.0% vs 3.0% max"]


class TestRun:
    """Tests for a single engine pass."""

    def test_alerts_reference_known_rules(self, engine, portfolio):
        holdings, history = portfolio

        alerts = engine.evaluate(holdings, history)

        assert alerts
        for alert in alerts:
            assert alert.rule_id in engine.table

    def test_deterministic(self, engine, portfolio):
        holdings, history = portfolio

        first = engine.evaluate(holdings, history)
        second = engine.evaluate(holdings, history)

        assert first == second

    def test_input_order_irrelevant(self, engine, portfolio):
        holdings, history = portfolio

        assert engine.evaluate(holdings, history) == engine.evaluate(list(reversed(holdings)), history)

    def test_worker_count_irrelevant(self, portfolio):
        holdings, history = portfolio

        serial = MatrixEngine(max_workers=1).evaluate(holdings, history)
        parallel = MatrixEngine(max_workers=8).evaluate(holdings, history)

        assert serial == parallel

    def test_sorted_by_severity_symbol_rule(self, engine, portfolio):
        holdings, history = portfolio

        alerts = engine.evaluate(holdings, history)
        keys = [(-a.severity.rank, a.symbol, a.rule_id) for a in alerts]

        assert keys == sorted(keys)
        assert len(set(keys)) == len(keys)

    def test_overweight_escalation(self, engine, portfolio):
        """RY at 13% on a 6% maximum is more than double: critical."""
        holdings, history = portfolio

        alerts = engine.evaluate(holdings, history)
        ry_weight = [a for a in alerts if a.symbol == "RY" and a.rule_id == "max-weight"]

        assert ry_weight[0].severity == Severity.CRITICAL
        assert alerts[0].severity == Severity.CRITICAL

    def test_invalid_holding_skipped(self, engine, make_holding):
        holdings = [
            make_holding(symbol="BAD", tier=5),
            make_holding(symbol="OK", classification=Classification.COMP, tier=1, weight=0.09),
        ]

        result = engine.run(holdings, {})

        assert "BAD" in result.skipped
        assert "tier" in result.skipped["BAD"]
        assert result.evaluated == 1
        assert [a.symbol for a in result.alerts] == ["OK"]

    def test_unknown_classification_skipped(self, engine, make_holding):
        result = engine.run([make_holding(symbol="ODD", classification="Growth")], {})

        assert "Unknown classification" in result.skipped["ODD"]
        assert result.alerts == []

    def test_malformed_series_skipped(self, engine, make_holding, series_factory, rising_closes):
        holdings = [
            make_holding(symbol="BAD", weight=0.5),
            make_holding(symbol="GOOD", classification=Classification.COMP, tier=1, weight=0.09),
        ]
        history = {"BAD": list(reversed(series_factory("BAD", rising_closes)))}

        result = engine.run(holdings, history)

        assert result.skipped_count == 1
        assert "out of order" in result.skipped["BAD"]
        assert all(a.symbol == "GOOD" for a in result.alerts)

    def test_missing_history_keeps_portfolio_rules(self, engine, make_holding):
        holding = make_holding(classification=Classification.COMP, tier=1, weight=0.09)

        result = engine.run([holding], price_history={})

        assert result.skipped == {}
        assert [a.rule_id for a in result.alerts] == ["max-weight"]

    def test_unscored_earnings_are_scored(self, engine, make_holding, good_earnings):
        holding = make_holding(classification=Classification.COMP, tier=2)

        alerts = engine.evaluate([holding], {}, {"AAPL": good_earnings})

        assert [a.rule_id for a in alerts] == ["earnings-quality"]
        assert "7" in alerts[0].details

    def test_sector_benchmark(self, engine, make_holding, series_factory):
        holding = make_holding(symbol="XOM", classification=Classification.COMP, tier=2, benchmark="XLE")
        history = {"XOM": series_factory("XOM", [100.0 + i for i in range(91)])}
        benchmarks = {"XLE": series_factory("XLE", [100.0] * 91)}

        alerts = engine.evaluate([holding], history, benchmarks=benchmarks)

        sector = [a for a in alerts if a.rule_id == "sector-perf-pos"]
        assert sector
        assert "+90.0%" in sector[0].details

    def test_benchmark_from_price_history(self, engine, make_holding, series_factory):
        holding = make_holding(symbol="XOM", classification=Classification.COMP, tier=2, benchmark="XLE")
        history = {
            "XOM": series_factory("XOM", [100.0 + i for i in range(91)]),
            "XLE": series_factory("XLE", [100.0] * 91),
        }

        alerts = engine.evaluate([holding], history)

        assert "sector-perf-pos" in [a.rule_id for a in alerts]

    def test_unordered_benchmark_disables_sector_rules(self, engine, make_holding, series_factory):
        holding = make_holding(symbol="AAA", classification=Classification.COMP, tier=2, benchmark="XLK")
        history = {"AAA": series_factory("AAA", [100.0] * 91)}
        benchmarks = {"XLK": list(reversed(series_factory("XLK", [100.0 + i for i in range(91)])))}

        result = engine.run([holding], history, benchmarks=benchmarks)

        assert result.skipped == {}
        assert result.evaluated == 1
        assert not [a for a in result.alerts if a.rule_id.startswith("sector-perf")]

    def test_caller_holdings_not_modified(self, engine, make_holding):
        holding = make_holding(region="usd", classification="compounder", tier=1, weight=0.09)

        alerts = engine.evaluate([holding], {})

        assert holding.region == "usd"
        assert alerts[0].region == Region.USD

    def test_empty_input(self, engine):
        result = engine.run([], {})

        assert result.alerts == []
        assert result.skipped == {}


class TestRegions:
    """Tests for per-region runs."""

    def test_per_region_equals_union(self, engine, portfolio):
        holdings, history = portfolio

        union = engine.run(holdings, history)
        regional = engine.run_regions(by_region(holdings), history)

        assert regional.alerts == union.alerts
        assert regional.skipped == union.skipped
        assert regional.evaluated == union.evaluated

    def test_region_key_order_irrelevant(self, engine, portfolio):
        holdings, history = portfolio
        grouped = by_region(holdings)
        reordered = {k: grouped[k] for k in reversed(list(grouped))}

        assert engine.run_regions(grouped, history).alerts == engine.run_regions(reordered, history).alerts

    def test_string_region_keys(self, engine, portfolio):
        holdings, history = portfolio
        grouped = {k.value: v for k, v in by_region(holdings).items()}

        assert engine.run_regions(grouped, history).alerts == engine.evaluate(holdings, history)

    def test_filter_region(self, portfolio):
        holdings, _ = portfolio

        assert [h.symbol for h in filter_region(holdings, "INTL")] == ["NESN", "SAP"]
        assert [h.symbol for h in filter_region(holdings, Region.CAD)] == ["SHOP", "RY"]
