"""
SQLModel definitions for the matrixwatch database.

Defines the schema for:
- HoldingRecord: Positions per regional portfolio
- PriceHistory: Daily bars, immutable once written
- EarningsResult: Reported quarters with derived score
- AlertRecord: Alerts from the latest run, replaced per region
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint


class HoldingRecord(SQLModel, table=True):
    """A position in one regional portfolio."""

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("symbol", "region", name="uq_holding_symbol_region"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(index=True, max_length=20)
    region: str = Field(index=True, max_length=4)  # USD, CAD, INTL
    classification: str = Field(max_length=4)  # Comp, Cat, Cycl
    tier: int = Field(ge=1, le=4)

    weight: float = Field(default=0.0)  # Share of the regional portfolio, 0-1
    book_price: float = Field(default=0.0)
    quantity: float = Field(default=0.0)
    benchmark: Optional[str] = Field(default=None, max_length=20)
    active_risk: Optional[float] = None

    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PriceHistory(SQLModel, table=True):
    """
    One daily bar.

    One row per (symbol, trade_date) enforced by unique constraint.
    """

    __tablename__ = "price_history"
    __table_args__ = (
        UniqueConstraint("symbol", "trade_date", name="uq_price_history_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(index=True, max_length=20)
    trade_date: date = Field(index=True)

    open: float
    high: float
    low: float
    close: float
    volume: int = Field(default=0)


class EarningsResult(SQLModel, table=True):
    """
    One reported quarter for a symbol.

    Upserted on (symbol, fiscal_year, fiscal_quarter).
    """

    __tablename__ = "earnings_results"
    __table_args__ = (
        UniqueConstraint(
            "symbol", "fiscal_year", "fiscal_quarter", name="uq_earnings_quarter"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(index=True, max_length=20)
    fiscal_year: int = Field(index=True)
    fiscal_quarter: int = Field(ge=1, le=4)

    eps_actual: Optional[float] = None
    eps_estimate: Optional[float] = None
    revenue_actual: Optional[float] = None
    revenue_estimate: Optional[float] = None
    guidance: Optional[str] = Field(default=None, max_length=20)
    market_reaction: Optional[float] = None

    # Derived by EarningsScorer
    score: Optional[int] = Field(default=None, ge=1, le=10)
    label: Optional[str] = Field(default=None, max_length=10)  # Good, Okay, Bad
    note: Optional[str] = Field(default=None, max_length=255)

    # Fundamental trend counts
    ebitda_margin_positive_quarters: Optional[int] = None
    ebitda_margin_negative_quarters: Optional[int] = None
    roic_positive_quarters: Optional[int] = None
    roic_negative_quarters: Optional[int] = None
    net_debt_positive_quarters: Optional[int] = None
    net_debt_negative_quarters: Optional[int] = None
    negative_quarters: Optional[int] = None

    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AlertRecord(SQLModel, table=True):
    """
    An alert from the most recent engine run.

    Ephemeral: each run replaces the rows of the regions it evaluated.
    """

    __tablename__ = "matrix_alerts"

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(index=True, max_length=20)
    rule_id: str = Field(max_length=40)
    action_type: str = Field(max_length=10)  # Increase, Decrease, Rating
    severity: str = Field(index=True, max_length=10)  # info, warning, critical
    message: str = Field(max_length=255)
    details: str = Field(max_length=255)
    region: str = Field(index=True, max_length=4)

    run_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
