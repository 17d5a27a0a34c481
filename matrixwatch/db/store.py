"""
Persistence helpers for the engine's inputs and outputs.

Converts between the in-memory domain models (matrixwatch.core.models) and
the SQLModel tables. The engine itself never touches the database; the CLI
loads inputs through these helpers, runs the engine, and saves the alerts.

Usage:
    replace_holdings(holdings)
    save_prices(points)

    engine = MatrixEngine()
    alerts = engine.evaluate(load_holdings(), load_price_history(), load_latest_earnings())
    replace_alerts(alerts, regions=[Region.USD, Region.CAD, Region.INTL])
"""

import dataclasses
import logging
from typing import Iterable, Optional

from sqlmodel import select

from matrixwatch.core.matrix.aggregator import alert_sort_key
from matrixwatch.core.models import (
    ActionType,
    Alert,
    EarningsRecord,
    Holding,
    PricePoint,
    Region,
    Severity,
)
from matrixwatch.db.database import get_session
from matrixwatch.db.models import (
    AlertRecord,
    EarningsResult,
    HoldingRecord,
    PriceHistory,
)

logger = logging.getLogger(__name__)

_EARNINGS_FIELDS = [
    f.name for f in dataclasses.fields(EarningsRecord) if f.name != "symbol"
]


def _region_value(region) -> str:
    return Region.parse(region).value


# =============================================================================
# Holdings
# =============================================================================


def replace_holdings(holdings: list[Holding], region: Optional[Region | str] = None) -> int:
    """
    Replace stored holdings.

    Args:
        holdings: New holdings. Each must pass Holding.validate().
        region: Only replace this region's rows (default: all regions)

    Returns:
        Number of holdings written
    """
    for holding in holdings:
        holding.validate()

    with get_session() as session:
        stmt = select(HoldingRecord)
        if region is not None:
            stmt = stmt.where(HoldingRecord.region == _region_value(region))
        for row in session.exec(stmt).all():
            session.delete(row)
        session.flush()

        for h in holdings:
            session.add(
                HoldingRecord(
                    symbol=h.symbol,
                    region=h.region.value,
                    classification=h.classification.value,
                    tier=h.tier,
                    weight=h.weight,
                    book_price=h.book_price,
                    quantity=h.quantity,
                    benchmark=h.benchmark,
                    active_risk=h.active_risk,
                )
            )

    logger.info("Stored %d holdings", len(holdings))
    return len(holdings)


def load_holdings(region: Optional[Region | str] = None) -> list[Holding]:
    """Load holdings, optionally for one region, ordered by region then symbol."""
    with get_session() as session:
        stmt = select(HoldingRecord)
        if region is not None:
            stmt = stmt.where(HoldingRecord.region == _region_value(region))
        stmt = stmt.order_by(HoldingRecord.region, HoldingRecord.symbol)

        return [
            Holding(
                symbol=row.symbol,
                region=Region.parse(row.region),
                classification=row.classification,
                tier=row.tier,
                weight=row.weight,
                book_price=row.book_price,
                quantity=row.quantity,
                benchmark=row.benchmark,
                active_risk=row.active_risk,
            )
            for row in session.exec(stmt).all()
        ]


# =============================================================================
# Price history
# =============================================================================


def save_prices(points: Iterable[PricePoint]) -> int:
    """
    Store daily bars.

    Bars are immutable once written: a (symbol, date) that already exists
    is left untouched.

    Returns:
        Number of new bars inserted
    """
    points = list(points)
    inserted = 0

    with get_session() as session:
        symbols = {p.symbol for p in points}
        existing = set()
        if symbols:
            rows = session.exec(
                select(PriceHistory.symbol, PriceHistory.trade_date).where(
                    PriceHistory.symbol.in_(sorted(symbols))
                )
            ).all()
            existing = {(symbol, trade_date) for symbol, trade_date in rows}

        for p in points:
            key = (p.symbol, p.trade_date)
            if key in existing:
                continue
            existing.add(key)
            session.add(
                PriceHistory(
                    symbol=p.symbol,
                    trade_date=p.trade_date,
                    open=p.open,
                    high=p.high,
                    low=p.low,
                    close=p.close,
                    volume=p.volume,
                )
            )
            inserted += 1

    skipped = len(points) - inserted
    if skipped:
        logger.debug("Ignored %d bars already stored", skipped)
    return inserted


def load_price_history(symbols: Optional[Iterable[str]] = None) -> dict[str, list[PricePoint]]:
    """
    Load price series keyed by symbol, each ascending by date.

    Args:
        symbols: Restrict to these symbols (default: everything stored)
    """
    history: dict[str, list[PricePoint]] = {}

    with get_session() as session:
        stmt = select(PriceHistory)
        if symbols is not None:
            stmt = stmt.where(PriceHistory.symbol.in_(list(symbols)))
        stmt = stmt.order_by(PriceHistory.symbol, PriceHistory.trade_date)

        for row in session.exec(stmt).all():
            history.setdefault(row.symbol, []).append(
                PricePoint(
                    symbol=row.symbol,
                    trade_date=row.trade_date,
                    open=row.open,
                    high=row.high,
                    low=row.low,
                    close=row.close,
                    volume=row.volume,
                )
            )

    return history


# =============================================================================
# Earnings
# =============================================================================


def upsert_earnings(record: EarningsRecord) -> None:
    """Insert or update the record for its (symbol, fiscal year, quarter)."""
    values = {name: getattr(record, name) for name in _EARNINGS_FIELDS}

    with get_session() as session:
        row = session.exec(
            select(EarningsResult).where(
                EarningsResult.symbol == record.symbol,
                EarningsResult.fiscal_year == record.fiscal_year,
                EarningsResult.fiscal_quarter == record.fiscal_quarter,
            )
        ).first()

        if row is None:
            session.add(EarningsResult(symbol=record.symbol, **values))
            logger.debug(
                "Inserted earnings %s FY%d Q%d",
                record.symbol, record.fiscal_year, record.fiscal_quarter,
            )
        else:
            for name, value in values.items():
                setattr(row, name, value)
            session.add(row)


def load_latest_earnings(symbols: Optional[Iterable[str]] = None) -> dict[str, EarningsRecord]:
    """Most recent reported quarter per symbol."""
    latest: dict[str, EarningsRecord] = {}

    with get_session() as session:
        stmt = select(EarningsResult)
        if symbols is not None:
            stmt = stmt.where(EarningsResult.symbol.in_(list(symbols)))
        stmt = stmt.order_by(
            EarningsResult.symbol,
            EarningsResult.fiscal_year.desc(),
            EarningsResult.fiscal_quarter.desc(),
        )

        for row in session.exec(stmt).all():
            if row.symbol in latest:
                continue
            latest[row.symbol] = EarningsRecord(
                symbol=row.symbol,
                **{name: getattr(row, name) for name in _EARNINGS_FIELDS},
            )

    return latest


# =============================================================================
# Alerts
# =============================================================================


def replace_alerts(alerts: list[Alert], regions: Optional[Iterable[Region | str]] = None) -> int:
    """
    Replace stored alerts for the regions a run covered.

    Args:
        alerts: Final alerts of the run
        regions: Regions the run evaluated (default: all regions)

    Returns:
        Number of alerts written
    """
    scope = (
        {_region_value(r) for r in regions}
        if regions is not None
        else {r.value for r in Region}
    )

    with get_session() as session:
        stale = session.exec(
            select(AlertRecord).where(AlertRecord.region.in_(sorted(scope)))
        ).all()
        for row in stale:
            session.delete(row)
        session.flush()

        for alert in alerts:
            session.add(
                AlertRecord(
                    symbol=alert.symbol,
                    rule_id=alert.rule_id,
                    action_type=alert.action_type.value,
                    severity=alert.severity.value,
                    message=alert.message,
                    details=alert.details,
                    region=alert.region.value,
                )
            )

    logger.info("Stored %d alerts for %s", len(alerts), ", ".join(sorted(scope)))
    return len(alerts)


def load_alerts(
    region: Optional[Region | str] = None,
    severity: Optional[Severity | str] = None,
) -> list[Alert]:
    """Load stored alerts in severity, symbol, rule order."""
    with get_session() as session:
        stmt = select(AlertRecord)
        if region is not None:
            stmt = stmt.where(AlertRecord.region == _region_value(region))
        if severity is not None:
            stmt = stmt.where(AlertRecord.severity == Severity(severity).value)

        alerts = [
            Alert(
                symbol=row.symbol,
                rule_id=row.rule_id,
                action_type=ActionType.parse(row.action_type),
                severity=Severity(row.severity),
                message=row.message,
                details=row.details,
                region=Region.parse(row.region),
            )
            for row in session.exec(stmt).all()
        ]

    return sorted(alerts, key=alert_sort_key)
