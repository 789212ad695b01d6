"""Renewal date arithmetic shared by the API, the scheduler and the chat notifier.

All functions are pure: "today" is always passed in (or obtained from
``civil_today``/``utc_today`` by the caller) so results are deterministic.
"""

from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Optional, Union

import pytz

from subtracker.config import settings
from subtracker.exceptions import DataError
from subtracker.schemas.subscription import BillingCycle


DateLike = Union[date, datetime, str]


def civil_today(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> date:
    """Return today's calendar date in the configured timezone.

    The current instant is converted to the zone first and then stripped of
    its time part, so users west of UTC do not see yesterday's date late in
    the evening.
    """
    tz = pytz.timezone(tz_name or settings.reminder_timezone)
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def utc_today() -> date:
    """Calendar date used by the scheduled batch job."""
    return datetime.now(timezone.utc).date()


def parse_civil_date(value: DateLike) -> date:
    """Coerce a stored start date into a ``date``.

    Raises:
        DataError: if the value cannot be interpreted as a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise DataError(f"Invalid start date {value!r}: {e}") from e
    raise DataError(f"Invalid start date {value!r}")


def parse_cadence(billing) -> Optional[BillingCycle]:
    """Return the billing cycle, or None for cadences we do not recur on."""
    if isinstance(billing, BillingCycle):
        return billing
    try:
        return BillingCycle(billing)
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    try:
        _, last_day = monthrange(year, month)
        return date(year, month, min(start.day, last_day))
    except (ValueError, OverflowError) as e:
        raise DataError(f"Cannot add {months} months to {start}: {e}") from e


def add_cadence(start: date, cadence: BillingCycle, count: int = 1) -> date:
    """Return the ``count``-th occurrence of ``cadence`` after ``start``.

    Occurrences are always computed from the anchor date rather than from the
    previous occurrence, so a subscription started on the 31st keeps renewing
    on the last day of short months without drifting.
    """
    if cadence == BillingCycle.MONTHLY:
        return add_months(start, count)
    if cadence == BillingCycle.YEARLY:
        return add_months(start, 12 * count)
    raise ValueError(f"Unsupported billing cycle: {cadence}")


def _occurrence_index(start: date, cadence: BillingCycle, today: date) -> int:
    # Smallest n >= 1 with start + n units strictly after today
    n = 1
    while add_cadence(start, cadence, n) <= today:
        n += 1
    return n


def next_renewal(start_date: DateLike, billing, today: date) -> Optional[date]:
    """First renewal strictly after ``today``.

    The start date itself is never a renewal: the cadence is advanced at
    least once even when the start date lies in the future.

    Returns None when ``billing`` is not a known cadence.
    """
    cadence = parse_cadence(billing)
    if cadence is None:
        return None
    start = parse_civil_date(start_date)
    return add_cadence(start, cadence, _occurrence_index(start, cadence, today))


def upcoming_renewal(start_date: DateLike, billing, today: date) -> Optional[date]:
    """Renewal used for day counting: today's renewal if one lands today.

    Equal to ``next_renewal`` except on a renewal day, where the occurrence
    one cadence step earlier (today) is returned so that
    ``days_until_renewal`` reports 0.

    A Yearly start of 2023-06-01 checked on 2024-06-01 therefore counts 0
    days (it renews today), not 365 to the 2025 occurrence.
    """
    cadence = parse_cadence(billing)
    if cadence is None:
        return None
    start = parse_civil_date(start_date)
    n = _occurrence_index(start, cadence, today)
    if n > 1:
        previous = add_cadence(start, cadence, n - 1)
        if previous == today:
            return previous
    return add_cadence(start, cadence, n)


def days_until(target: date, today: date) -> int:
    return (target - today).days


def days_until_renewal(start_date: DateLike, billing, today: date) -> Optional[int]:
    renewal = upcoming_renewal(start_date, billing, today)
    if renewal is None:
        return None
    return days_until(renewal, today)


def monthly_equivalent(price: float, billing) -> float:
    """Convert a price to its monthly cost; unknown cadences cost nothing."""
    cadence = parse_cadence(billing)
    if cadence == BillingCycle.MONTHLY:
        return price
    if cadence == BillingCycle.YEARLY:
        return price / 12
    return 0.0


def yearly_equivalent(price: float, billing) -> float:
    cadence = parse_cadence(billing)
    if cadence == BillingCycle.MONTHLY:
        return price * 12
    if cadence == BillingCycle.YEARLY:
        return price
    return 0.0
