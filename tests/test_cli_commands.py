"""
Tests for CLI commands.

Tests cover:
- Main CLI group and help
- rules list command
- earnings score command
- db import, engine run and alerts list against a temporary database
- Error handling and exit codes
"""

import copy
import json

import pytest

from matrixwatch.cli.main import cli
from matrixwatch.core.matrix.thresholds import MATRIX_THRESHOLDS


@pytest.fixture
def portfolio_file(tmp_path):
    """Import file with one overweight holding and a short price history."""
    payload = {
        "holdings": [
            {
                "symbol": "AAPL",
                "region": "USD",
                "classification": "Comp",
                "tier": 1,
                "weight": 0.09,
                "book_price": 150.0,
                "quantity": 10,
            },
            {
                "symbol": "RY",
                "region": "CAD",
                "classification": "Cycl",
                "tier": 2,
                "weight": 0.02,
                "book_price": 120.0,
                "quantity": 5,
            },
        ],
        "prices": [
            {"symbol": "AAPL", "date": "2024-01-02", "close": 185.0},
            {"symbol": "AAPL", "date": "2024-01-03", "close": 184.0},
        ],
        "earnings": [
            {
                "symbol": "AAPL",
                "fiscal_year": 2024,
                "fiscal_quarter": 1,
                "eps_actual": 1.10,
                "eps_estimate": 1.00,
            }
        ],
    }
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestCLIMain:
    """Tests for main CLI group."""

    def test_help(self, cli_runner):
        """Test --help lists the command groups."""
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "decision matrix alerts" in result.output
        for group in ("Matrix", "Earnings", "Setup"):
            assert group in result.output

    def test_version(self, cli_runner):
        """Test --version displays version."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "matrixwatch" in result.output.lower()


class TestRulesCommand:
    """Tests for the rules list command."""

    def test_list_increase_json(self, cli_runner):
        result = cli_runner.invoke(cli, ["rules", "list", "Increase", "--json"])

        assert result.exit_code == 0
        rows = json.loads(result.output)
        ids = [row["rule_id"] for row in rows]
        assert "rsi-low" in ids
        assert all(row["action_type"] == "Increase" for row in rows)
        assert [row["order_number"] for row in rows] == sorted(row["order_number"] for row in rows)

    def test_threshold_column(self, cli_runner, tmp_db):
        result = cli_runner.invoke(
            cli, ["rules", "list", "Increase", "--classification", "Cat", "--tier", "1", "--json"]
        )

        assert result.exit_code == 0
        rows = {row["rule_id"]: row for row in json.loads(result.output)}
        assert rows["rsi-low"]["threshold"] == "30"

    def test_rating_filter(self, cli_runner):
        result = cli_runner.invoke(
            cli, ["rules", "list", "Rating", "--rating-action", "Decrease", "--json"]
        )

        assert result.exit_code == 0
        rows = json.loads(result.output)
        assert rows
        assert {row["rating_action"] for row in rows} == {"Decrease"}

    def test_classification_requires_tier(self, cli_runner):
        result = cli_runner.invoke(cli, ["rules", "list", "Increase", "--classification", "Cat"])

        assert result.exit_code == 2
        assert "together" in result.output

    def test_table_output(self, cli_runner):
        result = cli_runner.invoke(cli, ["rules", "list", "Decrease"])

        assert result.exit_code == 0
        assert "Decrease Rules" in result.output


class TestEarningsCommand:
    """Tests for the earnings score command."""

    def test_score_json(self, cli_runner):
        result = cli_runner.invoke(
            cli,
            [
                "earnings", "score",
                "--eps", "1.10", "--eps-estimate", "1.00",
                "--revenue", "50000", "--revenue-estimate", "50000",
                "--guidance", "Maintain", "--reaction", "1.0",
                "--json",
            ],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["score"] == 7
        assert data["category"] == "Good"

    def test_score_panel(self, cli_runner):
        result = cli_runner.invoke(cli, ["earnings", "score", "--eps", "1.10", "--eps-estimate", "1.00"])

        assert result.exit_code == 0
        assert "/10" in result.output


class TestDbCommands:
    """Tests for database commands."""

    def test_init(self, cli_runner, tmp_db):
        result = cli_runner.invoke(cli, ["db", "init"])

        assert result.exit_code == 0
        assert "initialized" in result.output.lower()

    def test_import_and_stats(self, cli_runner, tmp_db, portfolio_file):
        result = cli_runner.invoke(cli, ["db", "import", str(portfolio_file)])

        assert result.exit_code == 0
        assert "Holdings: 2" in result.output
        assert "2 new" in result.output

        stats = cli_runner.invoke(cli, ["db", "stats"])
        assert stats.exit_code == 0
        assert "Database Statistics" in stats.output

    def test_import_invalid_json(self, cli_runner, tmp_db, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = cli_runner.invoke(cli, ["db", "import", str(path)])

        assert result.exit_code == 1
        assert "Data Error" in result.output


class TestEngineCommand:
    """Tests for engine run and alerts list."""

    def test_run_without_holdings(self, cli_runner, tmp_db):
        result = cli_runner.invoke(cli, ["engine", "run"])

        assert result.exit_code == 0
        assert "No holdings to evaluate" in result.output

    def test_run_json_and_stored_alerts(self, cli_runner, tmp_db, portfolio_file):
        cli_runner.invoke(cli, ["db", "import", str(portfolio_file)])

        result = cli_runner.invoke(cli, ["engine", "run", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["evaluated"] == 2
        assert data["skipped"] == {}
        assert [(a["symbol"], a["rule_id"]) for a in data["alerts"]] == [("AAPL", "max-weight")]

        listed = cli_runner.invoke(cli, ["alerts", "list", "--json"])
        assert listed.exit_code == 0
        assert json.loads(listed.output) == data["alerts"]

    def test_run_single_region(self, cli_runner, tmp_db, portfolio_file):
        cli_runner.invoke(cli, ["db", "import", str(portfolio_file)])

        result = cli_runner.invoke(cli, ["engine", "run", "--region", "CAD", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["evaluated"] == 1
        assert data["alerts"] == []

    def test_no_save_keeps_stored_alerts(self, cli_runner, tmp_db, portfolio_file):
        cli_runner.invoke(cli, ["db", "import", str(portfolio_file)])

        cli_runner.invoke(cli, ["engine", "run", "--no-save"])
        listed = cli_runner.invoke(cli, ["alerts", "list"])

        assert listed.exit_code == 0
        assert "No alerts stored" in listed.output

    def test_bad_threshold_table(self, cli_runner, tmp_db, tmp_path, monkeypatch):
        raw = copy.deepcopy(MATRIX_THRESHOLDS)
        del raw["rsi-low"]["Catalyst"][1]
        path = tmp_path / "thresholds.json"
        path.write_text(json.dumps(raw), encoding="utf-8")

        from matrixwatch.config import config

        monkeypatch.setattr(config, "thresholds_path", path)

        result = cli_runner.invoke(cli, ["engine", "run"])

        assert result.exit_code == 1
        assert "Threshold Table Error" in result.output
        assert "rsi-low" in result.output

    def test_missing_threshold_file(self, cli_runner, tmp_db, tmp_path, monkeypatch):
        from matrixwatch.config import config

        monkeypatch.setattr(config, "thresholds_path", tmp_path / "absent.json")

        result = cli_runner.invoke(cli, ["engine", "run"])

        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    def test_indicators_unknown_symbol(self, cli_runner, tmp_db):
        result = cli_runner.invoke(cli, ["engine", "indicators", "ZZZ"])

        assert result.exit_code == 1
        assert "No price history" in result.output
