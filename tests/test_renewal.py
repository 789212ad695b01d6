"""Tests for renewal date arithmetic."""

from datetime import date, datetime, timezone

import pytest

from subtracker.exceptions import DataError
from subtracker.schemas.subscription import BillingCycle
from subtracker.services import renewal


class TestNextRenewal:
    """Tests for next_renewal."""

    def test_monthly_example(self):
        assert renewal.next_renewal("2024-01-15", "Monthly", date(2024, 2, 12)) == date(2024, 2, 15)

    def test_yearly_example(self):
        assert renewal.next_renewal("2023-06-01", "Yearly", date(2024, 6, 1)) == date(2025, 6, 1)

    def test_renewal_on_today_moves_to_next_cycle(self):
        assert renewal.next_renewal(date(2024, 1, 15), "Monthly", date(2024, 2, 15)) == date(2024, 3, 15)

    def test_future_start_still_advances_once(self):
        """The start date itself is never a renewal."""
        assert renewal.next_renewal(date(2024, 5, 1), "Monthly", date(2024, 2, 1)) == date(2024, 6, 1)

    def test_start_today(self):
        assert renewal.next_renewal(date(2024, 2, 1), "Yearly", date(2024, 2, 1)) == date(2025, 2, 1)

    def test_many_cycles_later(self):
        assert renewal.next_renewal(date(2019, 3, 10), "Monthly", date(2024, 7, 20)) == date(2024, 8, 10)

    @pytest.mark.parametrize(
        "start, today, expected",
        [
            (date(2024, 1, 31), date(2024, 2, 10), date(2024, 2, 29)),
            (date(2023, 1, 31), date(2023, 2, 10), date(2023, 2, 28)),
            # Anchored on the start day, so March goes back to the 31st
            (date(2024, 1, 31), date(2024, 3, 1), date(2024, 3, 31)),
            (date(2024, 1, 31), date(2024, 4, 1), date(2024, 4, 30)),
        ],
    )
    def test_month_end_clamping(self, start, today, expected):
        assert renewal.next_renewal(start, "Monthly", today) == expected

    def test_leap_day_yearly(self):
        assert renewal.next_renewal(date(2024, 2, 29), "Yearly", date(2024, 6, 1)) == date(2025, 2, 28)
        assert renewal.next_renewal(date(2024, 2, 29), "Yearly", date(2027, 6, 1)) == date(2028, 2, 29)

    @pytest.mark.parametrize(
        "start, billing",
        [(date(9999, 12, 15), "Monthly"), (date(9999, 6, 1), "Yearly")],
    )
    def test_renewal_past_max_year_is_data_error(self, start, billing):
        with pytest.raises(DataError):
            renewal.next_renewal(start, billing, date(2024, 1, 1))
        with pytest.raises(DataError):
            renewal.days_until_renewal(start, billing, date(2024, 1, 1))

    @pytest.mark.parametrize("billing", ["Monthly", "Yearly"])
    def test_always_strictly_after_today(self, billing):
        start = date(2022, 8, 31)
        today = date(2022, 9, 1)
        for _ in range(800):
            result = renewal.next_renewal(start, billing, today)
            assert result > today
            assert renewal.next_renewal(start, billing, today) == result
            today = date.fromordinal(today.toordinal() + 1)

    def test_accepts_enum_and_datetime(self):
        start = datetime(2024, 1, 15, 12, 0)
        assert renewal.next_renewal(start, BillingCycle.MONTHLY, date(2024, 2, 12)) == date(2024, 2, 15)

    @pytest.mark.parametrize("billing", ["Weekly", "", None, "monthly"])
    def test_unknown_cadence_is_non_recurring(self, billing):
        assert renewal.next_renewal("2024-01-15", billing, date(2024, 2, 12)) is None

    @pytest.mark.parametrize("value", ["", "15/01/2024", "2024-13-01", 42])
    def test_invalid_start_date_raises(self, value):
        with pytest.raises(DataError):
            renewal.next_renewal(value, "Monthly", date(2024, 2, 12))


class TestDaysUntilRenewal:
    """Tests for upcoming_renewal and days_until_renewal."""

    def test_monthly_example(self):
        assert renewal.days_until_renewal("2024-01-15", "Monthly", date(2024, 2, 12)) == 3

    def test_renewal_day_counts_as_zero(self):
        today = date(2024, 6, 1)
        assert renewal.upcoming_renewal("2023-06-01", "Yearly", today) == today
        assert renewal.days_until_renewal("2023-06-01", "Yearly", today) == 0

    def test_start_day_is_not_a_renewal(self):
        today = date(2024, 2, 1)
        assert renewal.days_until_renewal(today, "Monthly", today) == 29

    def test_day_after_renewal(self):
        assert renewal.days_until_renewal("2024-01-15", "Monthly", date(2024, 2, 16)) == 28

    def test_unknown_cadence(self):
        assert renewal.upcoming_renewal("2024-01-15", "Quarterly", date(2024, 2, 12)) is None
        assert renewal.days_until_renewal("2024-01-15", "Quarterly", date(2024, 2, 12)) is None


class TestCivilToday:
    """Tests for civil_today."""

    def test_late_evening_utc_is_next_day_in_madrid(self):
        now = datetime(2024, 3, 9, 23, 30, tzinfo=timezone.utc)
        assert renewal.civil_today("Europe/Madrid", now=now) == date(2024, 3, 10)

    def test_naive_instant_is_treated_as_utc(self):
        now = datetime(2024, 7, 1, 21, 59)
        assert renewal.civil_today("Europe/Madrid", now=now) == date(2024, 7, 1)
        assert renewal.civil_today("Europe/Madrid", now=datetime(2024, 7, 1, 22, 0)) == date(2024, 7, 2)

    def test_other_zone(self):
        now = datetime(2024, 3, 10, 3, 0, tzinfo=timezone.utc)
        assert renewal.civil_today("America/New_York", now=now) == date(2024, 3, 9)


class TestCostEquivalents:
    """Tests for monthly_equivalent and yearly_equivalent."""

    def test_monthly(self):
        assert renewal.monthly_equivalent(12.0, "Monthly") == 12.0
        assert renewal.yearly_equivalent(12.0, "Monthly") == 144.0

    def test_yearly(self):
        assert renewal.monthly_equivalent(120.0, "Yearly") == 10.0
        assert renewal.yearly_equivalent(120.0, "Yearly") == 120.0

    def test_unknown_cadence_costs_nothing(self):
        assert renewal.monthly_equivalent(50.0, "Weekly") == 0.0
        assert renewal.yearly_equivalent(50.0, "Weekly") == 0.0
