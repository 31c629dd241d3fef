# Overview: Flask API routes for cube rentals, rent payments and billing reminders.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_clock, get_notifier
from ..services import rental_service
from ..services.reminder_service import build_scheduler
from ..validation import CubePosError, parse_rental_allocation, parse_rental_payment


billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


def _grace_days() -> int:
    return int(current_app.config.get("REMINDER_GRACE_DAYS") or 0)


@billing_bp.post("/rentals")
def allocate_rental_route():
    """Allocate an available cube to a tenant."""
    try:
        allocation = parse_rental_allocation(request.get_json(silent=True))
        rental = rental_service.allocate_rental(allocation, clock=get_clock())
        return jsonify({"rental": rental.to_dict()}), 201

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to allocate rental")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/rentals/<int:rental_id>/payments")
def list_rental_payments_route(rental_id: int):
    try:
        payments, summary = rental_service.get_rental_payments(
            rental_id, clock=get_clock(), grace_days=_grace_days()
        )
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "summary": summary.to_dict(),
        }), 200

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@billing_bp.post("/rentals/<int:rental_id>/payments")
def record_rental_payment_route(rental_id: int):
    try:
        payment_request = parse_rental_payment(request.get_json(silent=True))
        payment, summary = rental_service.record_rental_payment(
            rental_id, payment_request, clock=get_clock(), grace_days=_grace_days()
        )
        return jsonify({"payment": payment.to_dict(), "summary": summary.to_dict()}), 201

    except CubePosError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record rental payment")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/rentals/overdue")
def list_overdue_rentals_route():
    overdue = rental_service.list_overdue_rentals(clock=get_clock(), grace_days=_grace_days())
    return jsonify({"rentals": overdue, "count": len(overdue)}), 200


@billing_bp.post("/reminders/run")
def run_reminders_route():
    """Run the reminder batch once; per-rental failures are reported in the stats."""
    try:
        scheduler = build_scheduler(current_app.config, get_notifier(), clock=get_clock())
        stats = scheduler.run()
        return jsonify(stats.to_dict()), 200
    except Exception:
        current_app.logger.exception("Reminder run failed")
        return jsonify({"error": "Internal server error"}), 500
