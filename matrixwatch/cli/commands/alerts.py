"""Stored matrix alert commands."""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from matrixwatch.cli.error_handler import handle_cli_errors
from matrixwatch.cli.formatting import get_action_color, severity_text
from matrixwatch.core.models import Region, Severity
from matrixwatch.db.database import init_db
from matrixwatch.db.store import load_alerts


@click.group()
def alerts() -> None:
    """
    Review alerts from the latest engine run.

    \b
    Examples:
        matrixwatch alerts list
        matrixwatch alerts list --region INTL
        matrixwatch alerts list --severity critical
    """
    pass


@alerts.command("list")
@click.option(
    "--region",
    type=click.Choice([r.value for r in Region], case_sensitive=False),
    default=None,
    help="Filter by portfolio",
)
@click.option(
    "--severity",
    type=click.Choice([s.value for s in Severity], case_sensitive=False),
    default=None,
    help="Filter by severity",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def alerts_list(
    ctx: click.Context, region: Optional[str], severity: Optional[str], as_json: bool
) -> None:
    """List stored alerts, most severe first."""
    console: Console = ctx.obj["console"]

    init_db()
    stored = load_alerts(region=region, severity=severity.lower() if severity else None)

    if as_json:
        console.print_json(data=[a.to_dict() for a in stored])
        return

    if not stored:
        console.print("[yellow]No alerts stored[/yellow]")
        console.print("[dim]Tip: Run `matrixwatch engine run` to evaluate holdings[/dim]")
        return

    table = Table(title="Matrix Alerts")
    table.add_column("Severity", justify="center")
    table.add_column("Symbol", style="cyan")
    table.add_column("Region", justify="center")
    table.add_column("Action", justify="center")
    table.add_column("Message")
    table.add_column("Details", style="dim")

    for alert in stored:
        table.add_row(
            severity_text(alert.severity),
            alert.symbol,
            alert.region.value,
            Text(alert.action_type.value, style=get_action_color(alert.action_type)),
            alert.message,
            alert.details,
        )

    console.print(table)
    console.print(f"[dim]{len(stored)} alert(s)[/dim]")
