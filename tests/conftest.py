"""
Pytest configuration and shared fixtures for matrixwatch tests.

Provides price-series builders, sample holdings and earnings records, and
a temporary SQLite database.
"""

import math
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Generator

import pytest

from matrixwatch.core.models import (
    Classification,
    EarningsRecord,
    Holding,
    PricePoint,
    Region,
)

START_DATE = date(2024, 1, 1)


# ==============================================================================
# Autouse Fixtures - Run automatically for all tests
# ==============================================================================


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear matrixwatch environment variables for every test."""
    for name in (
        "MATRIXWATCH_DB_PATH",
        "MATRIXWATCH_THRESHOLDS_PATH",
        "MATRIXWATCH_MAX_WORKERS",
        "MATRIXWATCH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# ==============================================================================
# Price Series Fixtures
# ==============================================================================


def build_series(symbol: str, closes: list[float], start: date = START_DATE) -> list[PricePoint]:
    """One PricePoint per close on consecutive days."""
    return [
        PricePoint(
            symbol=symbol,
            trade_date=start + timedelta(days=i),
            open=close,
            high=close,
            low=close,
            close=close,
            volume=1_000,
        )
        for i, close in enumerate(closes)
    ]


@pytest.fixture
def series_factory() -> Callable[..., list[PricePoint]]:
    """Builder for price series from a list of closes."""
    return build_series


@pytest.fixture
def rising_closes() -> list[float]:
    """300 strictly rising closes (every change is a gain)."""
    return [100.0 + i for i in range(300)]


@pytest.fixture
def falling_closes() -> list[float]:
    """300 strictly falling closes (every change is a loss)."""
    return [400.0 - i for i in range(300)]


@pytest.fixture
def wave_closes() -> list[float]:
    """300 closes oscillating around 100 with a slight upward drift."""
    return [100.0 + 0.05 * i + 8.0 * math.sin(i / 6.0) for i in range(300)]


# ==============================================================================
# Holding / Earnings Fixtures
# ==============================================================================


@pytest.fixture
def make_holding() -> Callable[..., Holding]:
    """Builder for a valid holding with overridable fields."""

    def _make(**overrides) -> Holding:
        fields = {
            "symbol": "AAPL",
            "region": Region.USD,
            "classification": Classification.COMP,
            "tier": 2,
            "weight": 0.03,
            "book_price": 150.0,
            "quantity": 10,
        }
        fields.update(overrides)
        return Holding(**fields)

    return _make


@pytest.fixture
def good_earnings() -> EarningsRecord:
    """
    Quarter that scores 7 (Good).

    EPS beat (+2), revenue flat, guidance maintained, market +1%.
    """
    return EarningsRecord(
        symbol="AAPL",
        fiscal_year=2024,
        fiscal_quarter=3,
        eps_actual=1.10,
        eps_estimate=1.00,
        revenue_actual=50_000.0,
        revenue_estimate=50_000.0,
        guidance="Maintain",
        market_reaction=1.0,
    )


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "test_matrixwatch.db"


@pytest.fixture
def tmp_db(tmp_db_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """
    Set up a temporary database for testing.

    Monkeypatches the database path and initializes the schema.
    """
    monkeypatch.setenv("MATRIXWATCH_DB_PATH", str(tmp_db_path))

    # The config singleton reads the environment at import time
    from matrixwatch.config import config

    monkeypatch.setattr(config, "db_path", tmp_db_path)
    monkeypatch.setattr(config, "thresholds_path", None)

    from matrixwatch.db.database import reset_engine

    reset_engine()

    from matrixwatch.db import init_db

    init_db()

    yield tmp_db_path

    reset_engine()
    if tmp_db_path.exists():
        tmp_db_path.unlink()


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
