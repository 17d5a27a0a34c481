"""
Domain models for the decision matrix engine.

Defines the plain data carried through the engine:
- Holding: A position in one of the regional portfolios
- PricePoint: One daily bar of price history
- EarningsRecord: One reported quarter with derived score
- Alert: An advisory produced by a rule firing

These are in-memory dataclasses. Persistence lives in matrixwatch.db.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from matrixwatch.core.exceptions import InvalidHoldingError, PriceSeriesError

MIN_TIER = 1
MAX_TIER = 4


class Region(str, Enum):
    """Currency bucket a portfolio is held in."""

    USD = "USD"
    CAD = "CAD"
    INTL = "INTL"

    @classmethod
    def parse(cls, value: Any) -> "Region":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown region: {value}") from None


class Classification(str, Enum):
    """
    Coarse stock category selecting which threshold variant applies.

    COMP: Compounder - steady long-term growers
    CAT: Catalyst - event driven / speculative
    CYCL: Cyclical - economically sensitive
    """

    COMP = "Comp"
    CAT = "Cat"
    CYCL = "Cycl"

    @classmethod
    def parse(cls, value: Any) -> "Classification":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "comp": cls.COMP,
            "compounder": cls.COMP,
            "cat": cls.CAT,
            "catalyst": cls.CAT,
            "cycl": cls.CYCL,
            "cyclical": cls.CYCL,
        }
        if key not in aliases:
            raise ValueError(f"Unknown classification: {value}")
        return aliases[key]


class Severity(str, Enum):
    """Alert severity, ordered info < warning < critical."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.CRITICAL: 2}


class ActionType(str, Enum):
    """Alert category a rule belongs to."""

    INCREASE = "Increase"
    DECREASE = "Decrease"
    RATING = "Rating"

    @classmethod
    def parse(cls, value: Any) -> "ActionType":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValueError(f"Unknown action type: {value}")


@dataclass
class Holding:
    """
    A position in one regional portfolio.

    Weight is the position's share of its portfolio (0-1). Classification
    and tier select the threshold column applied to the holding.
    """

    symbol: str
    region: Region
    classification: Classification
    tier: int
    weight: float
    book_price: float
    quantity: float

    # Sector ETF / index used for sector-relative performance
    benchmark: Optional[str] = None

    # Active risk vs benchmark in percent, supplied by the portfolio provider
    active_risk: Optional[float] = None

    def validate(self) -> None:
        """
        Check the holding can be evaluated.

        Raises:
            InvalidHoldingError: If any field is out of range or unknown.
        """
        if not self.symbol or not str(self.symbol).strip():
            raise InvalidHoldingError(str(self.symbol), "empty symbol")
        try:
            self.region = Region.parse(self.region)
            self.classification = Classification.parse(self.classification)
        except ValueError as e:
            raise InvalidHoldingError(self.symbol, str(e)) from e
        if not isinstance(self.tier, int) or not MIN_TIER <= self.tier <= MAX_TIER:
            raise InvalidHoldingError(
                self.symbol, f"tier must be {MIN_TIER}..{MAX_TIER}, got {self.tier}"
            )
        if self.quantity is None or self.quantity < 0:
            raise InvalidHoldingError(self.symbol, f"negative quantity: {self.quantity}")
        if self.book_price is None or self.book_price < 0:
            raise InvalidHoldingError(self.symbol, f"negative book price: {self.book_price}")
        if self.weight is None or not 0.0 <= self.weight <= 1.0:
            raise InvalidHoldingError(self.symbol, f"weight outside [0, 1]: {self.weight}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Holding":
        """Create a Holding from a dictionary (e.g., a provider row)."""
        return cls(
            symbol=data["symbol"],
            region=data["region"],
            classification=data["classification"],
            tier=data["tier"],
            weight=data.get("weight", 0.0),
            book_price=data.get("book_price", 0.0),
            quantity=data.get("quantity", 0.0),
            benchmark=data.get("benchmark"),
            active_risk=data.get("active_risk"),
        )


@dataclass(frozen=True)
class PricePoint:
    """One daily bar. Immutable once written."""

    symbol: str
    trade_date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


def validate_series(symbol: str, series: list[PricePoint]) -> None:
    """
    Check a price series is strictly ascending by date.

    Raises:
        PriceSeriesError: On unordered or duplicate dates.
    """
    for prev, curr in zip(series, series[1:]):
        if curr.trade_date == prev.trade_date:
            raise PriceSeriesError(symbol, f"duplicate date {curr.trade_date}")
        if curr.trade_date < prev.trade_date:
            raise PriceSeriesError(
                symbol, f"dates out of order at {curr.trade_date}"
            )


@dataclass
class EarningsRecord:
    """
    One reported quarter for a symbol.

    Score and label are derived by EarningsScorer. The trend counts are
    optional fundamentals supplied by the earnings provider and feed the
    rating matrix rules.
    """

    symbol: str
    fiscal_year: int
    fiscal_quarter: int

    eps_actual: Optional[float] = None
    eps_estimate: Optional[float] = None
    revenue_actual: Optional[float] = None
    revenue_estimate: Optional[float] = None
    guidance: Optional[str] = None
    market_reaction: Optional[float] = None  # % price change after the report

    # Derived
    score: Optional[int] = None
    label: Optional[str] = None
    note: Optional[str] = None

    # Fundamental trend counts (quarters improving / worsening YoY)
    ebitda_margin_positive_quarters: Optional[int] = None
    ebitda_margin_negative_quarters: Optional[int] = None
    roic_positive_quarters: Optional[int] = None
    roic_negative_quarters: Optional[int] = None
    net_debt_positive_quarters: Optional[int] = None
    net_debt_negative_quarters: Optional[int] = None
    negative_quarters: Optional[int] = None  # signed, e.g. -4 for four in a row


@dataclass(frozen=True)
class Alert:
    """
    Advisory produced when a matrix rule fires for a holding.

    Ephemeral: a run replaces the previous alert set for its scope.
    """

    symbol: str
    rule_id: str
    action_type: ActionType
    severity: Severity
    message: str
    details: str
    region: Region

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "symbol": self.symbol,
            "rule_id": self.rule_id,
            "action_type": self.action_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": self.details,
            "region": self.region.value,
        }
