# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Booking Payment API Routes

DESIGN:
- One payment settles one booking, possibly with split tenders
- Tender sum must equal the booking price (422 otherwise)
- Paying a settled booking is a 409
- Only notes can be edited afterwards
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import SettlementError
from ..services import payment_service
from ..time_utils import day_end, day_start
from ..validation import coerce_int, get_json_body, parse_date_arg, parse_paging_args


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/")
@payments_bp.post("")
@require_tenant
def record_payment_route():
    """
    Record payment of a booking.

    Request body:
    {
        "booking_id": 12,
        "tenders": [
            {"method": "CASH", "amount_cents": 20000},
            {"method": "CARD", "amount_cents": 10000}
        ],
        "notes": "..."  (optional)
    }
    """
    try:
        data = get_json_body()
        payment = payment_service.record_payment(
            g.tenant_id,
            coerce_int(data.get("booking_id"), "booking_id"),
            data.get("tenders"),
            actor_id=g.actor_id,
            notes=data.get("notes"),
        )
        return jsonify({"payment": payment.to_dict()}), 201
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/")
@payments_bp.get("")
@require_tenant
def list_payments_route():
    try:
        start = parse_date_arg("start")
        end = parse_date_arg("end")
        limit, offset = parse_paging_args()
        payments, total = payment_service.list_payments(
            g.tenant_id,
            from_dt=day_start(start) if start else None,
            to_dt=day_end(end) if end else None,
            provider_id=request.args.get("provider_id", type=int),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.get("/<int:payment_id>")
@require_tenant
def get_payment_route(payment_id: int):
    try:
        payment = payment_service.get_payment(g.tenant_id, payment_id)
        return jsonify({"payment": payment.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.patch("/<int:payment_id>")
@require_tenant
def update_payment_notes_route(payment_id: int):
    """Only {"notes": "..."} is accepted."""
    try:
        data = get_json_body()
        unknown = set(data) - {"notes"}
        if unknown:
            return jsonify({"error": f"Payments are immutable; cannot change {', '.join(sorted(unknown))}"}), 400
        payment = payment_service.update_payment_notes(g.tenant_id, payment_id, data.get("notes"))
        return jsonify({"payment": payment.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update payment %s", payment_id)
        return jsonify({"error": "Internal server error"}), 500
