# Overview: Variant edits and approvals with audit logging, barcode lookup, inventory log queries and the stock scan.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import InventoryLog, Product, ProductVariant, Tenant, User
from ..models.inventory import (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    CHANGE_APPROVAL,
    CHANGE_VARIANT_PRICE_UPDATE,
    CHANGE_VARIANT_STOCK_UPDATE,
)
from ..time_utils import Clock, utcnow
from ..validation import NotFoundError, ProductApprovalRequest, ValidationError, VariantUpdateRequest
from .concurrency import UnitOfWork, lock_for_update, run_with_retry
from .stock_alert_service import (
    ALERT_OUT_OF_STOCK,
    StockAlertDispatcher,
    StockAlertService,
    evaluate_stock,
    snapshot_variant,
)


logger = logging.getLogger(__name__)


def update_variant(
    variant_id: int,
    request: VariantUpdateRequest,
    *,
    alerts: StockAlertDispatcher | None = None,
    clock: Clock = utcnow,
) -> ProductVariant:
    """
    Set a variant's price and/or stock.

    Each changed field gets its own InventoryLog row in the same
    transaction. A stock change queues an alert evaluation after commit.
    """
    if request.stock is not None and request.stock < 0:
        raise ValidationError("stock must be >= 0")

    snapshot = None

    def _op():
        nonlocal snapshot
        snapshot = None
        with UnitOfWork() as uow:
            variant = lock_for_update(
                uow.session.query(ProductVariant).filter_by(id=variant_id)
            ).first()
            if variant is None or variant.product.tenant_id != request.tenant_id:
                raise NotFoundError("Variant not found", details={"variant_id": variant_id})

            changes = []
            if request.price is not None and request.price != variant.price:
                changes.append((CHANGE_VARIANT_PRICE_UPDATE, f"{variant.price:.2f}", f"{request.price:.2f}"))
                variant.price = request.price
            if request.stock is not None and request.stock != variant.stock:
                changes.append((CHANGE_VARIANT_STOCK_UPDATE, str(variant.stock), str(request.stock)))
                variant.stock = request.stock
            if not changes:
                raise ValidationError("No changes to apply", details={"variant_id": variant_id})

            for change_type, previous, new in changes:
                uow.session.add(InventoryLog(
                    product_id=variant.product_id,
                    variant_id=variant.id,
                    actor_user_id=request.actor_user_id,
                    change_type=change_type,
                    previous_value=previous,
                    new_value=new,
                    created_at=clock(),
                ))

            if any(change[0] == CHANGE_VARIANT_STOCK_UPDATE for change in changes):
                snapshot = snapshot_variant(variant)
            return variant

    variant = run_with_retry(_op)
    logger.info("Variant %s updated by user %s", variant_id, request.actor_user_id)

    if snapshot is not None and alerts is not None:
        alerts.submit(snapshot)
    return variant


def lookup_variant_by_barcode(barcode: str | None) -> ProductVariant:
    """Resolve a scanned barcode to its variant (the till feeds the id into checkout)."""
    code = (barcode or "").strip()
    if not code:
        raise ValidationError("barcode is required")
    variant = db.session.query(ProductVariant).filter_by(barcode=code).first()
    if variant is None:
        raise NotFoundError("Variant not found", details={"barcode": code})
    return variant


def set_product_approval(
    product_id: int,
    request: ProductApprovalRequest,
    *,
    clock: Clock = utcnow,
) -> Product:
    """
    Approve or reject a product and every one of its variants.

    Writes a single product-level APPROVAL log row in the same transaction.
    """
    status = APPROVAL_APPROVED if request.approve else APPROVAL_REJECTED

    def _op():
        with UnitOfWork() as uow:
            product = uow.session.get(Product, product_id)
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": product_id})
            if uow.session.get(User, request.actor_user_id) is None:
                raise NotFoundError("User not found", details={"actor_user_id": request.actor_user_id})

            for variant in product.variants:
                variant.approval_status = status
            uow.session.add(InventoryLog(
                product_id=product.id,
                actor_user_id=request.actor_user_id,
                change_type=CHANGE_APPROVAL,
                new_value=status,
                created_at=clock(),
            ))
            return product

    product = run_with_retry(_op)
    logger.info("Product %s set to %s by user %s", product_id, status, request.actor_user_id)
    return product


def list_inventory_logs(product_id: int, tenant_id: int) -> list[InventoryLog]:
    product = db.session.get(Product, product_id)
    if product is None or product.tenant_id != tenant_id:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return (
        db.session.query(InventoryLog)
        .filter_by(product_id=product_id)
        .order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())
        .all()
    )


def perform_stock_check(service: StockAlertService) -> dict:
    """
    Scan every tenant-owned variant and send alerts synchronously.

    Used by the scheduled/CLI check; checkout relies on the dispatcher instead.
    """
    stats = {
        "total_variants": 0,
        "low_stock_alerts": 0,
        "out_of_stock_alerts": 0,
        "emails_sent": 0,
        "errors": 0,
    }

    variants = (
        db.session.query(ProductVariant)
        .join(Product, ProductVariant.product_id == Product.id)
        .join(Tenant, Product.tenant_id == Tenant.id)
        .order_by(ProductVariant.id)
        .all()
    )
    stats["total_variants"] = len(variants)

    for variant in variants:
        alert = evaluate_stock(variant.stock, variant.low_stock_threshold)
        if alert is None:
            continue
        if alert == ALERT_OUT_OF_STOCK:
            stats["out_of_stock_alerts"] += 1
        else:
            stats["low_stock_alerts"] += 1

        if service.process(snapshot_variant(variant)):
            stats["emails_sent"] += 1
        else:
            stats["errors"] += 1

    logger.info(
        "Stock check: %s variants, %s low, %s out, %s emailed",
        stats["total_variants"], stats["low_stock_alerts"],
        stats["out_of_stock_alerts"], stats["emails_sent"],
    )
    return stats
