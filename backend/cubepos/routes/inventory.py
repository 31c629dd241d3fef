# Overview: Flask API routes for barcode lookup, variant edits, product approval and inventory audit logs.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_clock, get_stock_alerts
from ..services import inventory_service
from ..validation import CubePosError, ValidationError, parse_product_approval, parse_variant_update


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/variants/lookup")
def lookup_variant_route():
    """Query params: barcode (required). Used by the till after a scan."""
    try:
        variant = inventory_service.lookup_variant_by_barcode(request.args.get("barcode"))
        product = variant.product
        return jsonify({
            "variant": variant.to_dict(),
            "product": product.to_dict(),
            "tenant": {"id": product.tenant.id, "business_name": product.tenant.business_name},
        }), 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@inventory_bp.put("/variants/<int:variant_id>")
def update_variant_route(variant_id: int):
    """
    Update a variant's price and/or stock.

    Body: {tenant_id, actor_user_id, price?, stock?}
    """
    try:
        update = parse_variant_update(request.get_json(silent=True))
        variant = inventory_service.update_variant(
            variant_id,
            update,
            alerts=get_stock_alerts(),
            clock=get_clock(),
        )
        return jsonify({"variant": variant.to_dict()}), 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update variant")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/products/<int:product_id>/logs")
def list_inventory_logs_route(product_id: int):
    """Query params: tenant_id (required)."""
    try:
        tenant_id = request.args.get("tenant_id", type=int)
        if tenant_id is None:
            raise ValidationError("tenant_id query parameter is required (integer)")
        logs = inventory_service.list_inventory_logs(product_id, tenant_id)
        return jsonify({"logs": [log.to_dict() for log in logs]}), 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@inventory_bp.put("/products/<int:product_id>/approve")
def approve_product_route(product_id: int):
    """
    Approve or reject a product and its variants.

    Body: {approve: bool, actor_user_id}
    """
    try:
        approval = parse_product_approval(request.get_json(silent=True))
        product = inventory_service.set_product_approval(product_id, approval, clock=get_clock())
        return jsonify({
            "product": product.to_dict(),
            "variants": [v.to_dict() for v in product.variants],
        }), 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product approval")
        return jsonify({"error": "Internal server error"}), 500
