"""Decision matrix engine commands."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from matrixwatch.cli.error_handler import handle_cli_errors
from matrixwatch.cli.formatting import (
    BORDER_PRIMARY,
    format_value,
    get_action_color,
    severity_text,
)
from matrixwatch.config import config
from matrixwatch.core.indicators.snapshot import compute_snapshot
from matrixwatch.core.matrix.engine import EngineRun, MatrixEngine
from matrixwatch.core.models import Holding, Region
from matrixwatch.db.database import init_db
from matrixwatch.db.store import (
    load_holdings,
    load_latest_earnings,
    load_price_history,
    replace_alerts,
)

logger = logging.getLogger(__name__)

REGION_CHOICES = [r.value for r in Region] + ["all"]


@click.group()
def engine() -> None:
    """
    Run the decision matrix.

    \b
    Examples:
        matrixwatch engine run                 # All regions
        matrixwatch engine run --region USD    # One portfolio
        matrixwatch engine run --json          # JSON output
        matrixwatch engine indicators AAPL     # Indicator snapshot
    """
    pass


def _group_by_region(holdings: list[Holding]) -> dict[Region, list[Holding]]:
    grouped: dict[Region, list[Holding]] = {}
    for holding in holdings:
        grouped.setdefault(Region.parse(holding.region), []).append(holding)
    return grouped


def _run_summary(result: EngineRun) -> dict:
    return {
        "alerts": [a.to_dict() for a in result.alerts],
        "skipped": result.skipped,
        "evaluated": result.evaluated,
    }


@engine.command("run")
@click.option(
    "--region",
    type=click.Choice(REGION_CHOICES, case_sensitive=False),
    default="all",
    help="Portfolio to evaluate (default: all)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-save", is_flag=True, help="Do not replace stored alerts")
@click.pass_context
@handle_cli_errors
def engine_run(ctx: click.Context, region: str, as_json: bool, no_save: bool) -> None:
    """
    Evaluate holdings against the decision matrix.

    Loads holdings, price history and the latest earnings from the
    database, runs every rule and prints the resulting alerts. Stored
    alerts for the evaluated regions are replaced unless --no-save.
    """
    console: Console = ctx.obj["console"]

    config.validate()
    matrix = MatrixEngine.from_config(config)
    init_db()

    scope: Optional[Region] = None if region.lower() == "all" else Region.parse(region)
    holdings = load_holdings(scope)
    if not holdings:
        if as_json:
            console.print_json(data=_run_summary(EngineRun()))
        else:
            console.print("[yellow]No holdings to evaluate[/yellow]")
            console.print("[dim]Tip: Run `matrixwatch db import FILE` to load a portfolio[/dim]")
        return

    symbols = {h.symbol for h in holdings} | {h.benchmark for h in holdings if h.benchmark}
    price_history = load_price_history(symbols)
    earnings = load_latest_earnings({h.symbol for h in holdings})

    if scope is None:
        result = matrix.run_regions(_group_by_region(holdings), price_history, earnings)
        regions = list(Region)
    else:
        result = matrix.run(holdings, price_history, earnings)
        regions = [scope]

    if not no_save:
        replace_alerts(result.alerts, regions=regions)

    if as_json:
        console.print_json(data=_run_summary(result))
        return

    _print_alerts(console, result)


def _print_alerts(console: Console, result: EngineRun) -> None:
    if result.alerts:
        table = Table(title="Matrix Alerts")
        table.add_column("Severity", justify="center")
        table.add_column("Symbol", style="cyan")
        table.add_column("Region", justify="center")
        table.add_column("Action", justify="center")
        table.add_column("Rule", style="dim")
        table.add_column("Details")

        for alert in result.alerts:
            table.add_row(
                severity_text(alert.severity),
                alert.symbol,
                alert.region.value,
                Text(alert.action_type.value, style=get_action_color(alert.action_type)),
                alert.rule_id,
                alert.details,
            )
        console.print(table)
    else:
        console.print("[green]No rules fired[/green]")

    console.print(
        f"[dim]{result.evaluated} holdings evaluated, "
        f"{len(result.alerts)} alerts, {result.skipped_count} skipped[/dim]"
    )
    for symbol, reason in sorted(result.skipped.items()):
        console.print(f"[yellow]  Skipped {symbol}: {reason}[/yellow]")


@engine.command("indicators")
@click.argument("symbol")
@click.option("--benchmark", default=None, help="Benchmark symbol for sector-relative return")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def engine_indicators(
    ctx: click.Context, symbol: str, benchmark: Optional[str], as_json: bool
) -> None:
    """Show the indicator snapshot computed from stored prices."""
    console: Console = ctx.obj["console"]
    symbol = symbol.upper()

    init_db()
    wanted = {symbol} | ({benchmark.upper()} if benchmark else set())
    history = load_price_history(wanted)

    if symbol not in history:
        console.print(f"[yellow]No price history stored for {symbol}[/yellow]")
        raise SystemExit(1)

    snapshot = compute_snapshot(
        symbol, history[symbol], history.get(benchmark.upper()) if benchmark else None
    )

    if as_json:
        console.print_json(data=snapshot.to_dict(), default=str)
        return

    table = Table(show_header=False, box=None)
    table.add_column("Indicator", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Close", format_value(snapshot.close))
    table.add_row("RSI(14)", format_value(snapshot.rsi, 1))
    table.add_row("MACD", format_value(snapshot.macd, 3))
    table.add_row("MACD Signal", format_value(snapshot.macd_signal, 3))
    table.add_row("MACD Histogram", format_value(snapshot.macd_histogram, 3))
    table.add_row("MA50", format_value(snapshot.ma50))
    table.add_row("MA200", format_value(snapshot.ma200))
    table.add_row("From MA200", format_value(snapshot.pct_from_ma200, 1, "%"))
    table.add_row("52wk High", format_value(snapshot.high_52wk))
    table.add_row("52wk Low", format_value(snapshot.low_52wk))
    table.add_row("Below 52wk High", format_value(snapshot.pct_below_52wk_high, 1, "%"))
    table.add_row("90d Return", format_value(snapshot.return_90d, 1, "%"))
    table.add_row("Sector Relative 90d", format_value(snapshot.sector_relative_90d, 1, " pts"))

    console.print(
        Panel(table, title=f"{symbol} as of {snapshot.as_of}", border_style=BORDER_PRIMARY)
    )
