"""Shared CLI error handling decorator.

Catches matrixwatch errors in a single place so commands print consistent
Rich-formatted messages and exit with status 1.

Usage:
    @click.command()
    @click.pass_context
    @handle_cli_errors
    def my_command(ctx, ...):
        ...
"""

import functools
import logging

import click
from rich.console import Console

from matrixwatch.core.exceptions import (
    ConfigurationError,
    DataError,
    MatrixWatchError,
    ThresholdConfigError,
)

logger = logging.getLogger(__name__)


def handle_cli_errors(f):
    """Decorator that catches matrixwatch exceptions with Rich-formatted output.

    Must be applied AFTER @click.pass_context so the console is available
    via ctx.obj["console"].
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context(silent=True)
        console = ctx.obj["console"] if ctx and ctx.obj and "console" in ctx.obj else Console()

        try:
            return f(*args, **kwargs)
        except SystemExit:
            raise
        except ThresholdConfigError as e:
            console.print(f"[red]Threshold Table Error:[/red] {e}")
            if e.rule_id:
                console.print(f"[dim]Rule: {e.rule_id}[/dim]")
            console.print(
                "[yellow]Fix the table or unset MATRIXWATCH_THRESHOLDS_PATH "
                "to use the built-in matrix.[/yellow]"
            )
            raise SystemExit(1)
        except ConfigurationError as e:
            console.print(f"[red]Configuration Error:[/red] {e}")
            raise SystemExit(1)
        except DataError as e:
            console.print(f"[red]Data Error:[/red] {e}")
            raise SystemExit(1)
        except MatrixWatchError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except (click.exceptions.Exit, click.ClickException):
            raise
        except Exception as e:
            logger.exception("Unexpected error in %s command", f.__name__)
            console.print(f"[red]Unexpected error:[/red] {e}")
            raise SystemExit(1)

    return wrapper
