"""
Alert aggregation.

Deduplicates candidate alerts per (symbol, rule id), keeping the most
severe instance, and orders the result:

1. Severity descending (critical > warning > info)
2. Symbol ascending
3. Rule id ascending

The ordering is total over the dedup key, so identical inputs always yield
identical output lists.
"""

import logging
from typing import Iterable

from matrixwatch.core.models import Alert

logger = logging.getLogger(__name__)


def alert_sort_key(alert: Alert) -> tuple[int, str, str]:
    """Sort key implementing severity desc, symbol asc, rule id asc."""
    return (-alert.severity.rank, alert.symbol, alert.rule_id)


def _preferred(candidate: Alert, current: Alert) -> bool:
    if candidate.severity.rank != current.severity.rank:
        return candidate.severity.rank > current.severity.rank
    return _tie_key(candidate) < _tie_key(current)


def _tie_key(alert: Alert) -> tuple[str, str, str]:
    return (alert.region.value, alert.details, alert.message)


class AlertAggregator:
    """Merges candidate alerts into the final ordered alert list."""

    def aggregate(self, candidates: Iterable[Alert]) -> list[Alert]:
        """
        Deduplicate and sort candidate alerts.

        Duplicates are resolved, never rejected: the highest severity wins.
        Ties fall to the lowest (region, details, message) so the outcome
        does not depend on input order.

        Args:
            candidates: Candidate alerts from one or more evaluator passes

        Returns:
            Ordered, deduplicated alerts
        """
        best: dict[tuple[str, str], Alert] = {}
        duplicates = 0

        for alert in candidates:
            key = (alert.symbol, alert.rule_id)
            current = best.get(key)
            if current is None:
                best[key] = alert
                continue
            duplicates += 1
            if _preferred(alert, current):
                best[key] = alert

        if duplicates:
            logger.debug("Collapsed %d duplicate candidate alert(s)", duplicates)

        return sorted(best.values(), key=alert_sort_key)
