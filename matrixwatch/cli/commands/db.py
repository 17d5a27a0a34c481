"""Database management commands."""

import json
import logging
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from sqlmodel import func, select

from matrixwatch.cli.error_handler import handle_cli_errors
from matrixwatch.config import config
from matrixwatch.core.exceptions import DataError
from matrixwatch.core.models import EarningsRecord, Holding, PricePoint
from matrixwatch.core.scoring.earnings import EarningsScorer
from matrixwatch.db.database import get_session, init_db
from matrixwatch.db.models import AlertRecord, EarningsResult, HoldingRecord, PriceHistory
from matrixwatch.db.store import replace_holdings, save_prices, upsert_earnings

logger = logging.getLogger(__name__)


@click.group()
def db() -> None:
    """Database management commands.

    Initialize the local database and import portfolio data.
    """
    pass


@db.command()
@click.pass_context
@handle_cli_errors
def init(ctx: click.Context) -> None:
    """
    Initialize the local database.

    Creates the holdings, price history, earnings and alert tables.

    \b
    Example:
        matrixwatch db init
    """
    console: Console = ctx.obj["console"]

    config.ensure_directories()

    with console.status("[bold blue]Initializing database...[/bold blue]"):
        init_db()

    console.print("[green]Database initialized successfully![/green]")
    console.print(f"[dim]Database path: {config.db_path}[/dim]")


@db.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
@handle_cli_errors
def import_data(ctx: click.Context, path: Path) -> None:
    """
    Import holdings, prices and earnings from a JSON file.

    The file holds up to three lists: "holdings", "prices" and "earnings".
    Holdings replace the stored set; prices already stored are kept;
    earnings are scored and upserted per quarter.

    \b
    Example:
        matrixwatch db import portfolio.json
    """
    console: Console = ctx.obj["console"]

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DataError(f"{path} is not valid JSON: {e}") from e

    init_db()

    holdings = [Holding.from_dict(row) for row in payload.get("holdings", [])]
    prices = [
        PricePoint(
            symbol=row["symbol"],
            trade_date=date.fromisoformat(row["date"]),
            open=row.get("open", row["close"]),
            high=row.get("high", row["close"]),
            low=row.get("low", row["close"]),
            close=row["close"],
            volume=row.get("volume", 0),
        )
        for row in payload.get("prices", [])
    ]

    scorer = EarningsScorer()
    earnings = [
        scorer.score_record(EarningsRecord(**row)) for row in payload.get("earnings", [])
    ]

    if holdings:
        replace_holdings(holdings)
    inserted = save_prices(prices)
    for record in earnings:
        upsert_earnings(record)

    console.print(f"[green]Imported {path.name}[/green]")
    console.print(f"  Holdings: {len(holdings)}")
    console.print(f"  Price bars: {inserted} new ({len(prices) - inserted} already stored)")
    console.print(f"  Earnings quarters: {len(earnings)}")


@db.command()
@click.pass_context
@handle_cli_errors
def stats(ctx: click.Context) -> None:
    """
    Show database statistics.

    \b
    Example:
        matrixwatch db stats
    """
    console: Console = ctx.obj["console"]

    init_db()
    with get_session() as session:
        counts = {
            "Holdings": session.exec(select(func.count()).select_from(HoldingRecord)).one(),
            "Price Bars": session.exec(select(func.count()).select_from(PriceHistory)).one(),
            "Earnings Quarters": session.exec(select(func.count()).select_from(EarningsResult)).one(),
            "Alerts": session.exec(select(func.count()).select_from(AlertRecord)).one(),
        }

    table = Table(title="Database Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    for label, count in counts.items():
        table.add_row(label, f"{count:,}")
    table.add_row("Database Path", str(config.db_path))

    console.print(table)
