# Overview: Idempotent POS checkout: basket to sale with atomic stock decrement and audit trail.

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import InventoryLog, ProductVariant, Sale, SaleItem, SalePayment
from ..models.inventory import CHANGE_SALE
from ..models.sales import SALE_PAYMENT_CAPTURED, SALE_STATUS_COMPLETED
from ..time_utils import Clock, utcnow
from ..validation import (
    CheckoutRequest,
    CubePosError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .concurrency import UnitOfWork, run_with_retry
from .stock_alert_service import StockAlertDispatcher, snapshot_variant


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int


@dataclass
class CheckoutResult:
    sale: Sale
    created: bool


def compute_totals(request: CheckoutRequest) -> CheckoutTotals:
    """Integer-cent totals; discount and tax are per unit."""
    subtotal = sum(item.unit_price_cents * item.quantity for item in request.items)
    discount = sum(item.discount_cents * item.quantity for item in request.items)
    tax = sum(item.tax_cents * item.quantity for item in request.items)
    return CheckoutTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        tax_cents=tax,
        total_cents=subtotal - discount + tax,
    )


def _find_sale(session, idempotency_key: str) -> Sale | None:
    return session.query(Sale).filter_by(idempotency_key=idempotency_key).first()


def _decrement_stock(session, variant_id: int, quantity: int) -> int:
    """
    Single conditional write: stock -= quantity WHERE stock >= quantity.

    Returns the post-decrement stock. Raises InsufficientStockError when no
    row matched.
    """
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id, ProductVariant.stock >= quantity)
        .values(stock=ProductVariant.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    stock_query = select(ProductVariant.stock).where(ProductVariant.id == variant_id)

    if session.get_bind().dialect.update_returning:
        new_stock = session.execute(stmt.returning(ProductVariant.stock)).scalar_one_or_none()
        if new_stock is not None:
            return new_stock
    elif session.execute(stmt).rowcount:
        # No UPDATE .. RETURNING (SQLite < 3.35): read back inside the same transaction
        return session.execute(stock_query).scalar_one()

    current = session.execute(stock_query).scalar_one()
    raise InsufficientStockError(variant_id, quantity, available=current)


def process_checkout(
    request: CheckoutRequest,
    *,
    uow: UnitOfWork | None = None,
    alerts: StockAlertDispatcher | None = None,
    clock: Clock = utcnow,
) -> CheckoutResult:
    """
    Convert a basket into a sale exactly once per idempotency key.

    - Replay of a known key returns the stored sale untouched.
    - Payments must sum to the computed total (ValidationError, nothing written).
    - Stock decrements, audit logs, sale, items and payments commit together;
      any failure rolls all of it back.
    - Stock alerts are queued only after the commit.
    """
    uow = uow or UnitOfWork()
    session = uow.session

    existing = _find_sale(session, request.idempotency_key)
    if existing:
        return CheckoutResult(sale=existing, created=False)

    totals = compute_totals(request)
    paid = sum(p.amount_cents for p in request.payments)
    if paid != totals.total_cents:
        raise ValidationError(
            "Payments must equal total amount",
            details={"total_cents": totals.total_cents, "paid_cents": paid},
        )

    snapshots = {}

    def _op():
        snapshots.clear()
        with uow:
            replay = _find_sale(session, request.idempotency_key)
            if replay:
                return replay, False

            variant_ids = {item.variant_id for item in request.items}
            variants = {
                v.id: v
                for v in session.query(ProductVariant).filter(ProductVariant.id.in_(variant_ids)).all()
            }

            logs = []
            for item in request.items:
                variant = variants.get(item.variant_id)
                if variant is None:
                    raise NotFoundError(f"Variant {item.variant_id} not found")
                tenant = variant.product.tenant
                if tenant is None or tenant.id != request.tenant_id:
                    # Other tenants' variants are invisible at this till.
                    raise NotFoundError(
                        f"Variant {item.variant_id} not found",
                        details={"tenant_id": request.tenant_id},
                    )

                new_stock = _decrement_stock(session, variant.id, item.quantity)

                log = InventoryLog(
                    product_id=variant.product_id,
                    variant_id=variant.id,
                    actor_user_id=request.cashier_user_id or tenant.user_id,
                    change_type=CHANGE_SALE,
                    previous_value=str(new_stock + item.quantity),
                    new_value=str(new_stock),
                    created_at=clock(),
                )
                session.add(log)
                logs.append(log)
                snapshots[variant.id] = snapshot_variant(variant, stock=new_stock)

            sale = Sale(
                idempotency_key=request.idempotency_key,
                tenant_id=request.tenant_id,
                cashier_user_id=request.cashier_user_id,
                currency=request.currency,
                subtotal_cents=totals.subtotal_cents,
                discount_cents=totals.discount_cents,
                tax_cents=totals.tax_cents,
                total_cents=totals.total_cents,
                status=SALE_STATUS_COMPLETED,
                created_at=clock(),
            )
            session.add(sale)

            for item in request.items:
                variant = variants[item.variant_id]
                session.add(SaleItem(
                    sale=sale,
                    product_id=variant.product_id,
                    variant_id=variant.id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    discount_cents=item.discount_cents,
                    tax_cents=item.tax_cents,
                    line_total_cents=(item.unit_price_cents - item.discount_cents + item.tax_cents) * item.quantity,
                    product_name=variant.product.name,
                    variant_name=variant.display_name,
                    barcode=variant.barcode,
                ))

            for payment in request.payments:
                session.add(SalePayment(
                    sale=sale,
                    method=payment.method,
                    amount_cents=payment.amount_cents,
                    status=SALE_PAYMENT_CAPTURED,
                    provider=payment.provider,
                    provider_intent=payment.provider_intent,
                ))

            uow.flush()
            for log in logs:
                log.sale_id = sale.id
            return sale, True

    try:
        sale, created = run_with_retry(_op, session=session)
    except CubePosError:
        raise
    except IntegrityError:
        # Lost a same-key race: the other request's sale is the answer.
        session.rollback()
        winner = _find_sale(session, request.idempotency_key)
        if winner:
            return CheckoutResult(sale=winner, created=False)
        logger.exception("Checkout %s failed on a constraint", request.idempotency_key)
        raise InternalError("Checkout failed")
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Checkout %s failed", request.idempotency_key)
        raise InternalError("Checkout failed") from exc

    if created:
        logger.info(
            "Sale %s created for tenant %s (%s cents)",
            sale.id, sale.tenant_id, sale.total_cents,
        )
        if alerts is not None:
            for snapshot in snapshots.values():
                alerts.submit(snapshot)

    return CheckoutResult(sale=sale, created=created)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale
