"""
Database module for matrixwatch.

Provides SQLModel definitions, connection management and the store helpers
that feed the engine and keep the latest alerts.
"""

from matrixwatch.db.database import get_engine, get_session, init_db, reset_engine
from matrixwatch.db.models import AlertRecord, EarningsResult, HoldingRecord, PriceHistory
from matrixwatch.db.store import (
    load_alerts,
    load_holdings,
    load_latest_earnings,
    load_price_history,
    replace_alerts,
    replace_holdings,
    save_prices,
    upsert_earnings,
)

__all__ = [
    # Models
    "AlertRecord",
    "EarningsResult",
    "HoldingRecord",
    "PriceHistory",
    # Database
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
    # Store
    "load_alerts",
    "load_holdings",
    "load_latest_earnings",
    "load_price_history",
    "replace_alerts",
    "replace_holdings",
    "save_prices",
    "upsert_earnings",
]
