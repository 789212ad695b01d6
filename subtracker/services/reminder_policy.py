"""Decide when a renewal reminder is due.

Two rules are used and they are intentionally different:

* ``WindowPolicy`` fires on every day from ``threshold`` days before the
  renewal up to the renewal day itself. The in-app/email path relies on the
  notification store to de-duplicate, so a skipped daily run still results in
  one delivery.
* ``PointPolicy`` fires only on exact day counts (7, 3, 1 and 0 days before by
  default). The chat webhook uses it so each milestone produces at most one
  message.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from subtracker.services import renewal


@dataclass(frozen=True)
class DueReminder:
    threshold: int
    renewal_date: date
    send_at: datetime
    days_until: int


def send_at_for(renewal_date: date, threshold: int) -> datetime:
    """Civil midnight ``threshold`` days before the renewal."""
    return datetime.combine(renewal_date - timedelta(days=threshold), time.min, tzinfo=timezone.utc)


class WindowPolicy:
    name = "window"

    def __init__(self, threshold: int):
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        self.threshold = threshold

    def is_due(self, days_until: int) -> bool:
        return 0 <= days_until <= self.threshold

    def thresholds_for(self, days_until: int) -> list[int]:
        return [self.threshold] if self.is_due(days_until) else []

    def __repr__(self):
        return f"WindowPolicy(threshold={self.threshold})"


class PointPolicy:
    name = "point"

    def __init__(self, days: Iterable[int] = (7, 3, 1, 0)):
        self.days = frozenset(days)

    def is_due(self, days_until: int) -> bool:
        return days_until in self.days

    def thresholds_for(self, days_until: int) -> list[int]:
        return [days_until] if self.is_due(days_until) else []

    def __repr__(self):
        return f"PointPolicy(days={sorted(self.days, reverse=True)})"


def evaluate(start_date, billing, today: date, policy) -> list[DueReminder]:
    """Return the reminders ``policy`` says are due for one subscription today.

    Non-recurring cadences never produce reminders. An invalid start date
    raises ``DataError`` from the calculator.
    """
    renewal_date: Optional[date] = renewal.upcoming_renewal(start_date, billing, today)
    if renewal_date is None:
        return []

    days_until = renewal.days_until(renewal_date, today)
    return [
        DueReminder(
            threshold=threshold,
            renewal_date=renewal_date,
            send_at=send_at_for(renewal_date, threshold),
            days_until=days_until,
        )
        for threshold in policy.thresholds_for(days_until)
    ]
