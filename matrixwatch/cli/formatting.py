"""Centralized formatting utilities for CLI output.

Provides consistent colors and indicators across all CLI commands.
"""

from typing import Optional

from rich.text import Text

from matrixwatch.core.models import ActionType, Severity

# Border style for main content panels
BORDER_PRIMARY = "blue"

# Missing value indicator
MISSING = "-"


def get_severity_color(severity: Severity | str) -> str:
    """Get Rich color for an alert severity."""
    colors = {
        Severity.INFO: "blue",
        Severity.WARNING: "yellow",
        Severity.CRITICAL: "red",
    }
    return colors.get(Severity(severity), "white")


def get_action_color(action: ActionType | str) -> str:
    """Get Rich color for an alert action type."""
    colors = {
        ActionType.INCREASE: "green",
        ActionType.DECREASE: "red",
        ActionType.RATING: "magenta",
    }
    return colors.get(ActionType.parse(action), "white")


def get_label_color(label: Optional[str]) -> str:
    """Get Rich color for an earnings label."""
    colors = {"Good": "green", "Okay": "yellow", "Bad": "red"}
    return colors.get(label or "", "dim")


def severity_text(severity: Severity | str) -> Text:
    """Severity rendered as styled text (critical in bold)."""
    sev = Severity(severity)
    style = get_severity_color(sev)
    if sev == Severity.CRITICAL:
        style += " bold"
    return Text(sev.value, style=style)


def format_value(value: Optional[float], decimals: int = 2, suffix: str = "") -> str:
    """Format a numeric value, or MISSING for None."""
    if value is None:
        return MISSING
    return f"{value:.{decimals}f}{suffix}"
