# Overview: Pure rent accrual and billing-cadence calculations for rentals.

"""
Rent accrual model (authoritative)

- Dates are truncated to the UTC calendar day before any arithmetic.
- Rent accrues daily at Rental.daily_rate and never past the lease end.
- Billing is in fixed 14-day blocks counted from the start date. Rent for a
  block becomes due at the block boundary; after the lease ends everything
  accrued is due.
- All money is Decimal rounded half-up to cents. balance_due may be negative
  when the tenant has paid ahead.
- overdue implies balance_due > 0.

No database access here: callers load the rental and its payments.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from cubepos.time_utils import add_days, to_utc_date, utcnow


BILLING_CYCLE_DAYS = 14
CENT = Decimal("0.01")


def round2(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RentalSummary:
    elapsed_days: int
    total_rental_days: int
    fortnights_elapsed: int
    accrued_to_date: Decimal
    due_to_date: Decimal
    total_paid: Decimal
    balance_due: Decimal
    unbilled_accrued: Decimal
    last_due_date: date
    next_due_date: date
    lease_ended: bool
    overdue: bool

    def to_dict(self) -> dict:
        return {
            "elapsed_days": self.elapsed_days,
            "total_rental_days": self.total_rental_days,
            "fortnights_elapsed": self.fortnights_elapsed,
            "accrued_to_date": f"{self.accrued_to_date:.2f}",
            "due_to_date": f"{self.due_to_date:.2f}",
            "total_paid": f"{self.total_paid:.2f}",
            "balance_due": f"{self.balance_due:.2f}",
            "unbilled_accrued": f"{self.unbilled_accrued:.2f}",
            "last_due_date": self.last_due_date.isoformat(),
            "next_due_date": self.next_due_date.isoformat(),
            "lease_ended": self.lease_ended,
            "overdue": self.overdue,
        }


def summarize_rental(
    rental,
    payments: Iterable,
    *,
    grace_days: int = 0,
    now: datetime | date | None = None,
) -> RentalSummary:
    """
    Turn lease dates, the daily rate and the payment ledger into billing figures.

    rental needs start_date, end_date and daily_rate; each payment needs amount.
    """
    today = to_utc_date(now if now is not None else utcnow())
    start = to_utc_date(rental.start_date)
    end = to_utc_date(rental.end_date)
    rate = Decimal(rental.daily_rate)

    clamped = min(today, end)
    elapsed_days = max(0, (clamped - start).days)
    total_rental_days = max(0, (end - start).days)
    lease_ended = today >= end

    accrued_to_date = round2(elapsed_days * rate)

    fortnights_elapsed = elapsed_days // BILLING_CYCLE_DAYS
    due_days = min(BILLING_CYCLE_DAYS * fortnights_elapsed, total_rental_days)
    if lease_ended:
        due_to_date = accrued_to_date
    else:
        due_to_date = round2(due_days * rate)

    total_paid = round2(sum((Decimal(p.amount) for p in payments), Decimal("0")))
    balance_due = round2(due_to_date - total_paid)
    unbilled_accrued = round2(accrued_to_date - due_to_date)

    last_due_date = add_days(start, BILLING_CYCLE_DAYS * fortnights_elapsed)
    next_due_date = min(add_days(last_due_date, BILLING_CYCLE_DAYS), end)

    overdue = balance_due > 0 and (
        lease_ended
        or (fortnights_elapsed > 0 and today >= add_days(last_due_date, grace_days))
    )

    return RentalSummary(
        elapsed_days=elapsed_days,
        total_rental_days=total_rental_days,
        fortnights_elapsed=fortnights_elapsed,
        accrued_to_date=accrued_to_date,
        due_to_date=due_to_date,
        total_paid=total_paid,
        balance_due=balance_due,
        unbilled_accrued=unbilled_accrued,
        last_due_date=last_due_date,
        next_due_date=next_due_date,
        lease_ended=lease_ended,
        overdue=overdue,
    )
