"""
SQLite storage for matrixwatch.

One process-wide engine bound to config.db_path, created lazily on first
use. Holdings, price bars, earnings and matrix alerts all share it.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from matrixwatch.config import config

logger = logging.getLogger(__name__)

_engine = None
_engine_lock = threading.Lock()


def database_url(path: Path) -> str:
    """SQLAlchemy URL for a SQLite file."""
    return f"sqlite:///{path}"


def get_engine() -> Engine:
    """
    Engine for the configured database, created on first call.

    The parent directory of the database file is created if needed.
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                path = config.db_path
                path.parent.mkdir(parents=True, exist_ok=True)
                # Engine threads may share the connection pool
                _engine = create_engine(
                    database_url(path),
                    echo=False,
                    connect_args={"check_same_thread": False},
                )
                logger.info("Opened matrixwatch database at %s", path)

    return _engine


def init_db() -> None:
    """Create any missing matrixwatch tables. Idempotent."""
    from matrixwatch.db.models import (  # noqa: F401
        AlertRecord,
        EarningsResult,
        HoldingRecord,
        PriceHistory,
    )

    SQLModel.metadata.create_all(get_engine())
    logger.debug("Schema ready: %s", ", ".join(sorted(SQLModel.metadata.tables)))


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Transactional session.

    Commits when the block exits normally; on any exception the
    transaction is rolled back, logged and re-raised.

    Usage:
        with get_session() as session:
            session.add(HoldingRecord(symbol="RY", region="CAD", ...))
    """
    session = Session(get_engine())
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error("Rolling back matrixwatch transaction: %s", e, exc_info=True)
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine() -> None:
    """Dispose the engine so the next call reopens config.db_path."""
    global _engine

    with _engine_lock:
        if _engine is None:
            return
        _engine.dispose()
        _engine = None
        logger.debug("Database engine disposed")
