# Overview: Billing reminder batch: accrual per active rental, dedup guards, templated sends.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import PaymentReminder, Rental
from ..models.rentals import (
    RENTAL_ACTIVE,
    REMINDER_ONE_DAY_DUE,
    REMINDER_OVERDUE,
    REMINDER_SEVEN_DAY_ADVANCE,
)
from ..time_utils import Clock, add_days, to_utc_date, utcnow
from ..validation import ConflictError
from .accrual import BILLING_CYCLE_DAYS, RentalSummary, round2, summarize_rental
from .email_templates import (
    KIND_REMINDER_ONE_DAY,
    KIND_REMINDER_OVERDUE,
    KIND_REMINDER_SEVEN_DAY,
    render_email,
)
from .notifier import Notifier, OutboundEmail


logger = logging.getLogger(__name__)

_TEMPLATE_BY_TYPE = {
    REMINDER_SEVEN_DAY_ADVANCE: KIND_REMINDER_SEVEN_DAY,
    REMINDER_ONE_DAY_DUE: KIND_REMINDER_ONE_DAY,
    REMINDER_OVERDUE: KIND_REMINDER_OVERDUE,
}

ZERO = Decimal("0")


@dataclass
class ReminderRunStats:
    processed: int = 0
    sent: int = 0
    skipped: int = 0
    errors: int = 0
    results: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "sent": self.sent,
            "skipped": self.skipped,
            "errors": self.errors,
            "results": self.results,
        }


@dataclass(frozen=True)
class _Trigger:
    reminder_type: str
    due_date: date
    amount: Decimal


class BillingReminderScheduler:
    """
    Sequential pass over ACTIVE rentals.

    For each rental the three reminder triggers are evaluated in a fixed
    order (seven-day advance, one-day due, overdue). A trigger whose
    (rental, type, due date) already has a PaymentReminder row is
    suppressed. One rental failing is recorded in the stats and the batch
    moves on.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        renderer=render_email,
        grace_days: int = 0,
        generic_min_accrued: Decimal = Decimal("50"),
        clock: Clock = utcnow,
    ):
        self.notifier = notifier
        self.renderer = renderer
        self.grace_days = grace_days
        self.generic_min_accrued = Decimal(generic_min_accrued)
        self.clock = clock

    def run(self) -> ReminderRunStats:
        now = self.clock()
        stats = ReminderRunStats()

        rental_ids = [
            rid for (rid,) in
            db.session.query(Rental.id).filter(Rental.status == RENTAL_ACTIVE).order_by(Rental.id).all()
        ]
        logger.info("Reminder run: %s active rentals", len(rental_ids))

        for rental_id in rental_ids:
            stats.processed += 1
            try:
                entry = self._process_rental(rental_id, now, stats)
            except Exception as exc:
                db.session.rollback()
                stats.errors += 1
                logger.exception("Reminder processing failed for rental %s", rental_id)
                entry = {"rental_id": rental_id, "status": "error", "error": str(exc)}
            stats.results.append(entry)

        logger.info(
            "Reminder run done: processed=%s sent=%s skipped=%s errors=%s",
            stats.processed, stats.sent, stats.skipped, stats.errors,
        )
        return stats

    def _process_rental(self, rental_id: int, now, stats: ReminderRunStats) -> dict:
        rental = db.session.get(Rental, rental_id)
        summary = summarize_rental(rental, rental.payments, grace_days=self.grace_days, now=now)
        today = to_utc_date(now)

        if summary.accrued_to_date == 0 and summary.balance_due == 0:
            stats.skipped += 1
            return {"rental_id": rental.id, "status": "skipped", "reminders": []}

        triggers = self._triggers(summary, today)
        reminders = []

        for trigger in triggers:
            if self._already_sent(rental.id, trigger.reminder_type, trigger.due_date):
                continue
            reminders.append(self._send(rental, summary, trigger, stats))

        if not triggers and summary.accrued_to_date > self.generic_min_accrued:
            # Generic reminder shares the seven-day type and dedup key.
            if not self._already_sent(rental.id, REMINDER_SEVEN_DAY_ADVANCE, summary.next_due_date):
                generic = _Trigger(REMINDER_SEVEN_DAY_ADVANCE, summary.next_due_date, summary.accrued_to_date)
                reminders.append(self._send(rental, summary, generic, stats))

        return {
            "rental_id": rental.id,
            "status": "ok",
            "balance_due": f"{summary.balance_due:.2f}",
            "reminders": reminders,
        }

    def _triggers(self, summary: RentalSummary, today: date) -> list[_Trigger]:
        """Triggers whose date condition holds, before dedup."""
        fired = []
        if add_days(today, 7) >= summary.next_due_date:
            fired.append(_Trigger(
                REMINDER_SEVEN_DAY_ADVANCE,
                summary.next_due_date,
                summary.accrued_to_date,
            ))
        if add_days(today, 1) >= summary.next_due_date:
            fired.append(_Trigger(
                REMINDER_ONE_DAY_DUE,
                summary.next_due_date,
                max(ZERO, round2(summary.due_to_date - summary.total_paid)),
            ))
        if summary.overdue:
            unbilled = summary.unbilled_accrued if summary.lease_ended else ZERO
            fired.append(_Trigger(
                REMINDER_OVERDUE,
                summary.last_due_date,
                max(ZERO, round2(summary.due_to_date + unbilled - summary.total_paid)),
            ))
        return fired

    def _already_sent(self, rental_id: int, reminder_type: str, due_date: date) -> bool:
        return db.session.query(PaymentReminder.id).filter_by(
            rental_id=rental_id,
            reminder_type=reminder_type,
            due_date=due_date,
        ).first() is not None

    def _send(self, rental: Rental, summary: RentalSummary, trigger: _Trigger, stats: ReminderRunStats) -> dict:
        if trigger.reminder_type == REMINDER_OVERDUE:
            period_start = add_days(summary.last_due_date, -BILLING_CYCLE_DAYS)
            period_end = summary.last_due_date
        else:
            period_start = summary.last_due_date
            period_end = summary.next_due_date

        rendered = self.renderer(_TEMPLATE_BY_TYPE[trigger.reminder_type], {
            "tenant_name": rental.tenant.business_name,
            "cube_code": rental.cube.code,
            "due_date": trigger.due_date,
            "amount_due": trigger.amount,
            "daily_rate": rental.daily_rate,
            "total_paid": summary.total_paid,
            "billing_period_start": period_start,
            "billing_period_end": period_end,
            "lease_start_date": rental.start_date,
            "lease_end_date": rental.end_date,
        })
        result = self.notifier.send(OutboundEmail(
            to=rental.tenant.user.email,
            subject=rendered.subject,
            html_body=rendered.html,
            text_body=rendered.text,
        ))

        # The attempt is recorded once whatever the delivery outcome.
        reminder = PaymentReminder(
            rental_id=rental.id,
            reminder_type=trigger.reminder_type,
            due_date=trigger.due_date,
            amount=trigger.amount,
            email_sent=result.success,
            message_id=result.message_id,
            error=(result.error or "")[:500] or None,
            created_at=self.clock(),
        )
        db.session.add(reminder)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(
                "Reminder already recorded",
                details={
                    "rental_id": rental.id,
                    "reminder_type": trigger.reminder_type,
                    "due_date": trigger.due_date.isoformat(),
                },
            ) from exc

        if result.success:
            stats.sent += 1
        else:
            logger.warning(
                "%s reminder for rental %s not delivered: %s",
                trigger.reminder_type, rental.id, result.error,
            )

        return {
            "reminder_type": trigger.reminder_type,
            "due_date": trigger.due_date.isoformat(),
            "amount": f"{trigger.amount:.2f}",
            "email_sent": result.success,
        }


def build_scheduler(config, notifier: Notifier, clock: Clock = utcnow) -> BillingReminderScheduler:
    return BillingReminderScheduler(
        notifier,
        grace_days=int(config.get("REMINDER_GRACE_DAYS") or 0),
        generic_min_accrued=Decimal(str(config.get("GENERIC_REMINDER_MIN_ACCRUED") or "50")),
        clock=clock,
    )
