# Overview: Cube allocation and rent payment ledger operations.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Cube, Payment, Rental, Tenant
from ..models.rentals import RENTAL_ACTIVE, RENTAL_EXPIRED, RENTAL_UPCOMING
from ..models.tenancy import CUBE_AVAILABLE, CUBE_RENTED
from ..time_utils import Clock, to_utc_date, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    RentalAllocationRequest,
    RentalPaymentRequest,
    ValidationError,
)
from .accrual import RentalSummary, summarize_rental
from .concurrency import UnitOfWork, lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


def rental_status_for(start, end, now) -> str:
    """Status from a date comparison; taken once when the rental is allocated."""
    today = to_utc_date(now)
    if today < to_utc_date(start):
        return RENTAL_UPCOMING
    if today < to_utc_date(end):
        return RENTAL_ACTIVE
    return RENTAL_EXPIRED


def _get_rental(rental_id: int) -> Rental:
    rental = db.session.get(Rental, rental_id)
    if rental is None:
        raise NotFoundError("Rental not found", details={"rental_id": rental_id})
    return rental


def allocate_rental(request: RentalAllocationRequest, *, clock: Clock = utcnow) -> Rental:
    if request.end_date <= request.start_date:
        raise ValidationError("end_date must be after start_date")

    def _op():
        with UnitOfWork() as uow:
            tenant = uow.session.get(Tenant, request.tenant_id)
            if tenant is None:
                raise NotFoundError("Tenant not found", details={"tenant_id": request.tenant_id})

            cube = lock_for_update(uow.session.query(Cube).filter_by(id=request.cube_id)).first()
            if cube is None:
                raise NotFoundError("Cube not found", details={"cube_id": request.cube_id})
            if cube.status != CUBE_AVAILABLE:
                raise ConflictError(
                    f"Cube {cube.code} is not available",
                    details={"cube_id": cube.id, "status": cube.status},
                )

            rental = Rental(
                tenant_id=tenant.id,
                cube_id=cube.id,
                start_date=request.start_date,
                end_date=request.end_date,
                daily_rate=cube.daily_rate,
                status=rental_status_for(request.start_date, request.end_date, clock()),
                allocated_by_id=request.allocated_by_id,
                created_at=clock(),
            )
            cube.status = CUBE_RENTED
            uow.session.add(rental)
            uow.flush()
            return rental

    rental = run_with_retry(_op)
    logger.info("Cube %s allocated to tenant %s (rental %s)", rental.cube_id, rental.tenant_id, rental.id)
    return rental


def record_rental_payment(
    rental_id: int,
    request: RentalPaymentRequest,
    *,
    clock: Clock = utcnow,
    grace_days: int = 0,
) -> tuple[Payment, RentalSummary]:
    """Append a payment to the rental ledger and return it with the fresh summary."""
    if request.amount <= 0:
        raise ValidationError("amount must be > 0")

    with UnitOfWork():
        rental = _get_rental(rental_id)
        payment = Payment(
            rental_id=rental.id,
            amount=request.amount,
            method=request.method,
            paid_at=request.paid_at or clock(),
            received_by_id=request.received_by_id,
            note=request.note,
            created_at=clock(),
        )
        db.session.add(payment)

    rental = _get_rental(rental_id)
    summary = summarize_rental(rental, rental.payments, grace_days=grace_days, now=clock())
    logger.info("Payment %s of %s recorded for rental %s", payment.id, payment.amount, rental_id)
    return payment, summary


def get_rental_payments(
    rental_id: int,
    *,
    clock: Clock = utcnow,
    grace_days: int = 0,
) -> tuple[list[Payment], RentalSummary]:
    rental = _get_rental(rental_id)
    payments = (
        db.session.query(Payment)
        .filter_by(rental_id=rental.id)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
        .all()
    )
    return payments, summarize_rental(rental, payments, grace_days=grace_days, now=clock())


def list_overdue_rentals(*, clock: Clock = utcnow, grace_days: int = 0) -> list[dict]:
    """Overdue rentals with a positive balance, largest balance first."""
    now = clock()
    overdue = []
    for rental in db.session.query(Rental).order_by(Rental.id).all():
        summary = summarize_rental(rental, rental.payments, grace_days=grace_days, now=now)
        if summary.overdue and summary.balance_due > 0:
            overdue.append((rental, summary))

    overdue.sort(key=lambda pair: pair[1].balance_due, reverse=True)
    return [
        {
            "rental": rental.to_dict(),
            "tenant": rental.tenant.to_dict(),
            "cube_code": rental.cube.code,
            "summary": summary.to_dict(),
        }
        for rental, summary in overdue
    ]
