"""
matrixwatch CLI - Decision Matrix Engine.

Entry point for the command-line interface. Provides commands for:
- Running the decision matrix over the regional portfolios
- Reviewing stored alerts
- Inspecting rules and thresholds
- Ad-hoc earnings scoring
- Database setup and data import

Usage:
    matrixwatch --help
    matrixwatch db init
    matrixwatch db import portfolio.json
    matrixwatch engine run
    matrixwatch engine run --region INTL --json
    matrixwatch alerts list --severity critical
    matrixwatch rules list Decrease --classification Cat --tier 2
    matrixwatch earnings score --eps 1.10 --eps-estimate 1.00
"""

import logging
from collections import OrderedDict

import click
from rich.console import Console

from matrixwatch import __version__
from matrixwatch.cli.commands import alerts, db, earnings, engine, rules
from matrixwatch.config import config


class OrderedGroup(click.Group):
    """Group whose help lists subcommands under section headings."""

    COMMAND_GROUPS: OrderedDict[str, list[str]] = OrderedDict([
        ("Matrix", ["engine", "alerts", "rules"]),
        ("Earnings", ["earnings"]),
        ("Setup", ["db"]),
    ])

    def format_commands(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        sections = list(self.COMMAND_GROUPS.items())
        grouped = {name for _, names in sections for name in names}
        leftover = [name for name in self.list_commands(ctx) if name not in grouped]
        if leftover:
            sections.append(("Other", leftover))

        for title, names in sections:
            rows = []
            for name in names:
                cmd = self.get_command(ctx, name)
                if cmd is not None:
                    rows.append((name, cmd.get_short_help_str(limit=formatter.width)))
            if rows:
                with formatter.section(title):
                    formatter.write_dl(rows)


# Shared by every command through ctx.obj
console = Console()


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="matrixwatch")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    matrixwatch - decision matrix alerts for regional portfolios.

    Evaluates holdings against technical, portfolio and earnings rules
    with thresholds set per classification and tier.

    \b
    Examples:
        matrixwatch db import portfolio.json   # Load holdings and prices
        matrixwatch engine run                 # Evaluate all regions
        matrixwatch alerts list                # Review stored alerts
    """
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["console"] = console


cli.add_command(engine.engine)
cli.add_command(alerts.alerts)
cli.add_command(rules.rules)
cli.add_command(earnings.earnings)
cli.add_command(db.db)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
