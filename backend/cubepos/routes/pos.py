# Overview: Flask API routes for POS checkout; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_clock, get_stock_alerts
from ..services import checkout_service
from ..validation import CubePosError, parse_checkout_request


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


@pos_bp.post("/checkout")
def checkout_route():
    """
    Idempotent checkout.

    201 when a sale is created, 200 when the idempotency key was already used
    (the stored sale is returned unchanged).
    """
    try:
        checkout = parse_checkout_request(
            request.get_json(silent=True),
            default_currency=current_app.config["DEFAULT_CURRENCY"],
        )
        result = checkout_service.process_checkout(
            checkout,
            alerts=get_stock_alerts(),
            clock=get_clock(),
        )
        return jsonify({"sale": result.sale.to_dict()}), 201 if result.created else 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/sales/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = checkout_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
