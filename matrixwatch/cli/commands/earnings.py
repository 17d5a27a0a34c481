"""Earnings scoring commands."""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matrixwatch.cli.error_handler import handle_cli_errors
from matrixwatch.cli.formatting import MISSING, get_label_color
from matrixwatch.core.scoring.earnings import EarningsScorer, reaction_note


@click.group()
def earnings() -> None:
    """
    Score reported earnings.

    \b
    Examples:
        matrixwatch earnings score --eps 1.10 --eps-estimate 1.00
        matrixwatch earnings score --eps 2.1 --eps-estimate 2.3 --guidance Lowered --reaction -7
    """
    pass


@earnings.command("score")
@click.option("--eps", "eps_actual", type=float, default=None, help="Reported EPS")
@click.option("--eps-estimate", type=float, default=None, help="Consensus EPS estimate")
@click.option("--revenue", "revenue_actual", type=float, default=None, help="Reported revenue")
@click.option("--revenue-estimate", type=float, default=None, help="Consensus revenue estimate")
@click.option("--guidance", default=None, help="Increased, Maintain or Decreased")
@click.option("--reaction", type=float, default=None, help="Price change after the report (%)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def earnings_score(
    ctx: click.Context,
    eps_actual: Optional[float],
    eps_estimate: Optional[float],
    revenue_actual: Optional[float],
    revenue_estimate: Optional[float],
    guidance: Optional[str],
    reaction: Optional[float],
    as_json: bool,
) -> None:
    """Score one quarter on the 1-10 earnings quality scale."""
    console: Console = ctx.obj["console"]

    result = EarningsScorer().score(
        eps_actual, eps_estimate, revenue_actual, revenue_estimate, guidance, reaction
    )
    market = reaction_note(result.category, reaction)

    if as_json:
        console.print_json(
            data={
                "score": result.score,
                "category": result.category,
                "beat_status": result.beat_status,
                "revenue_status": result.revenue_status,
                "guidance": result.guidance,
                "market_reaction": result.market_reaction,
                "reaction_note": market,
                "note": result.note,
            }
        )
        return

    color = get_label_color(result.category)

    table = Table(show_header=False, box=None)
    table.add_column("Component", style="cyan")
    table.add_column("Value")
    table.add_row("EPS", result.beat_status or MISSING)
    table.add_row("Revenue", result.revenue_status or MISSING)
    table.add_row("Guidance", result.guidance or MISSING)
    table.add_row("Market Reaction", market)

    console.print(
        Panel(
            table,
            title=f"[{color}]{result.score}/10 - {result.category}[/{color}]",
            subtitle=result.note or None,
            border_style=color,
        )
    )
