# Overview: Pytest coverage for rent accrual and billing-cadence figures.

from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from cubepos.services.accrual import round2, summarize_rental


def _rental(start=datetime(2024, 1, 1), end=datetime(2024, 3, 1), rate="10"):
    return SimpleNamespace(start_date=start, end_date=end, daily_rate=Decimal(rate))


def _payments(*amounts):
    return [SimpleNamespace(amount=Decimal(a)) for a in amounts]


class TestAccrualFigures:
    def test_mid_lease_first_fortnight_billed(self):
        """19 days in: one fortnight due, five days accrued but unbilled."""
        summary = summarize_rental(_rental(), [], now=datetime(2024, 1, 20))

        assert summary.elapsed_days == 19
        assert summary.accrued_to_date == Decimal("190.00")
        assert summary.fortnights_elapsed == 1
        assert summary.due_to_date == Decimal("140.00")
        assert summary.unbilled_accrued == Decimal("50.00")
        assert summary.total_rental_days == 60
        assert summary.last_due_date == date(2024, 1, 15)
        assert summary.next_due_date == date(2024, 1, 29)
        assert summary.balance_due == Decimal("140.00")
        assert summary.overdue is True
        assert summary.lease_ended is False

    def test_time_of_day_is_ignored(self):
        morning = summarize_rental(_rental(), [], now=datetime(2024, 1, 20, 0, 1))
        night = summarize_rental(_rental(), [], now=datetime(2024, 1, 20, 23, 59))
        assert morning == night

    def test_payments_reduce_balance(self):
        summary = summarize_rental(_rental(), _payments("100", "40"), now=datetime(2024, 1, 20))
        assert summary.total_paid == Decimal("140.00")
        assert summary.balance_due == Decimal("0.00")
        assert summary.overdue is False

    def test_overpayment_gives_negative_balance(self):
        summary = summarize_rental(_rental(), _payments("200"), now=datetime(2024, 1, 20))
        assert summary.balance_due == Decimal("-60.00")
        assert summary.overdue is False

    def test_before_start_nothing_accrues(self):
        summary = summarize_rental(_rental(), [], now=datetime(2023, 12, 25))
        assert summary.elapsed_days == 0
        assert summary.accrued_to_date == Decimal("0.00")
        assert summary.due_to_date == Decimal("0.00")
        assert summary.next_due_date == date(2024, 1, 15)
        assert summary.overdue is False

    def test_inside_first_fortnight_nothing_due(self):
        summary = summarize_rental(_rental(), [], now=datetime(2024, 1, 10))
        assert summary.accrued_to_date == Decimal("90.00")
        assert summary.due_to_date == Decimal("0.00")
        assert summary.overdue is False

    def test_after_lease_end_everything_is_due(self):
        summary = summarize_rental(_rental(), _payments("100"), now=datetime(2024, 4, 1))

        assert summary.elapsed_days == 60
        assert summary.accrued_to_date == Decimal("600.00")
        assert summary.due_to_date == Decimal("600.00")
        assert summary.unbilled_accrued == Decimal("0.00")
        assert summary.lease_ended is True
        assert summary.last_due_date == date(2024, 2, 26)
        # Next boundary is capped at the lease end
        assert summary.next_due_date == date(2024, 3, 1)
        assert summary.balance_due == Decimal("500.00")
        assert summary.overdue is True

    def test_lease_end_day_counts_as_ended(self):
        summary = summarize_rental(_rental(), [], now=datetime(2024, 3, 1))
        assert summary.lease_ended is True
        assert summary.due_to_date == summary.accrued_to_date == Decimal("600.00")

    @pytest.mark.parametrize("grace_days,expected", [(0, True), (1, True), (2, False), (5, False)])
    def test_grace_period_delays_overdue(self, grace_days, expected):
        # 2024-01-16 is one day past the first boundary
        summary = summarize_rental(_rental(), [], grace_days=grace_days, now=datetime(2024, 1, 16))
        assert summary.overdue is expected

    def test_half_up_rounding(self):
        summary = summarize_rental(_rental(rate="10.335"), [], now=datetime(2024, 1, 2))
        assert summary.accrued_to_date == Decimal("10.34")
        assert round2("2.345") == Decimal("2.35")

    def test_accrual_is_monotonic_and_capped(self):
        rental = _rental()
        cap = Decimal("10") * 60
        previous = Decimal("-1")
        for offset in range(-5, 80):
            summary = summarize_rental(rental, [], now=datetime(2024, 1, 1) + timedelta(days=offset))
            assert summary.accrued_to_date >= previous
            assert summary.accrued_to_date <= cap
            if summary.overdue:
                assert summary.balance_due > 0
            previous = summary.accrued_to_date

    def test_to_dict_formats_money_as_strings(self):
        data = summarize_rental(_rental(), [], now=datetime(2024, 1, 20)).to_dict()
        assert data["accrued_to_date"] == "190.00"
        assert data["due_to_date"] == "140.00"
        assert data["next_due_date"] == "2024-01-29"
        assert data["overdue"] is True
