"""Decision matrix rule listing commands."""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from matrixwatch.cli.error_handler import handle_cli_errors
from matrixwatch.cli.formatting import MISSING, severity_text
from matrixwatch.config import config
from matrixwatch.core.matrix.rules import rules_for_action
from matrixwatch.core.matrix.thresholds import (
    NOT_APPLICABLE,
    DeltaDirection,
    ThresholdTable,
)
from matrixwatch.core.models import MAX_TIER, MIN_TIER, Classification


def _format_threshold(value) -> str:
    if value is NOT_APPLICABLE:
        return "N/A"
    if isinstance(value, DeltaDirection):
        return value.label
    return f"{value:g}"


def _load_table() -> ThresholdTable:
    config.validate()
    if config.thresholds_path is not None:
        return ThresholdTable.from_json(config.thresholds_path)
    return ThresholdTable.default()


@click.group()
def rules() -> None:
    """
    Inspect decision matrix rules and thresholds.

    \b
    Examples:
        matrixwatch rules list Increase
        matrixwatch rules list Rating --rating-action Decrease
        matrixwatch rules list Decrease --classification Cat --tier 2
    """
    pass


@rules.command("list")
@click.argument(
    "action_type", type=click.Choice(["Increase", "Decrease", "Rating"], case_sensitive=False)
)
@click.option(
    "--rating-action",
    type=click.Choice(["Increase", "Decrease"], case_sensitive=False),
    default=None,
    help="For Rating rules, only raise or lower",
)
@click.option("--classification", default=None, help="Show thresholds for Comp, Cat or Cycl")
@click.option(
    "--tier", type=click.IntRange(MIN_TIER, MAX_TIER), default=None, help="Tier for thresholds"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def rules_list(
    ctx: click.Context,
    action_type: str,
    rating_action: Optional[str],
    classification: Optional[str],
    tier: Optional[int],
    as_json: bool,
) -> None:
    """
    List the rules of one action type in evaluation order.

    With --classification and --tier, also shows the threshold that
    applies to that column of the matrix.
    """
    console: Console = ctx.obj["console"]

    if (classification is None) != (tier is None):
        raise click.UsageError("--classification and --tier must be given together")

    column = None
    if classification is not None:
        try:
            column = Classification.parse(classification)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--classification") from e

    table_data = _load_table() if column is not None else None
    selected = rules_for_action(action_type, rating_action)

    rows = []
    for rule in selected:
        row = rule.to_dict()
        if table_data is not None:
            row["threshold"] = _format_threshold(table_data.lookup(rule.rule_id, column, tier))
        rows.append(row)

    if as_json:
        console.print_json(data=rows)
        return

    title = f"{action_type.capitalize()} Rules"
    if column is not None:
        title += f" ({column.value} tier {tier})"

    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Rule", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Logic", justify="center")
    table.add_column("Source")
    table.add_column("Severity", justify="center")
    if column is not None:
        table.add_column("Threshold", justify="right")

    for row in rows:
        cells = [
            str(row["order_number"]),
            row["rule_id"],
            row["name"],
            f"{row['evaluation_method']}/{row['evaluation_logic']}",
            row["data_source"],
            severity_text(row["default_severity"]),
        ]
        if column is not None:
            cells.append(row.get("threshold", MISSING))
        table.add_row(*cells)

    console.print(table)
