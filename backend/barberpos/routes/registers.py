# Overview: Flask API routes for till operations; parses input and returns JSON responses.

"""
Till (Cash Register) API Routes

DESIGN:
- Shift lifecycle: open -> close (terminal)
- One open till per tenant; a second open is a 409
- Ingress/egress are append-only and rejected on a closed till
- Close computes variance against the expected cash
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import InvalidInput, SettlementError
from ..services import register_service
from ..time_utils import parse_iso_date
from ..validation import coerce_int, get_json_body, parse_date_arg, parse_paging_args


tills_bp = Blueprint("tills", __name__, url_prefix="/api/tills")


def _till_payload(till, include_entries: bool = False) -> dict:
    return till.to_dict(include_entries=include_entries, minor_limit=register_service.minor_variance_limit())


@tills_bp.post("/")
@tills_bp.post("")
@require_tenant
def open_till_route():
    """
    Open the tenant's till.

    Request body:
    {
        "opening_float_cents": 50000,
        "shift": "MORNING" | "AFTERNOON" | "FULL",
        "responsible": "Ana",
        "business_date": "2026-01-31",  (optional, defaults to today)
        "notes": "..."  (optional)
    }
    """
    try:
        data = get_json_body()
        business_date = data.get("business_date")
        till = register_service.open_till(
            g.tenant_id,
            coerce_int(data.get("opening_float_cents"), "opening_float_cents"),
            responsible=data.get("responsible") or g.actor_id,
            shift=data.get("shift", "FULL"),
            business_date=_parse_business_date(business_date),
            notes=data.get("notes"),
        )
        return jsonify({"till": _till_payload(till)}), 201
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open till")
        return jsonify({"error": "Internal server error"}), 500


def _parse_business_date(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput("business_date must be an ISO date (YYYY-MM-DD)")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise InvalidInput("business_date must be an ISO date (YYYY-MM-DD)")


@tills_bp.get("/current")
@require_tenant
def current_till_route():
    till = register_service.get_open_till(g.tenant_id)
    if till is None:
        return jsonify({"till": None}), 200
    return jsonify({"till": _till_payload(till, include_entries=True)}), 200


@tills_bp.get("/")
@tills_bp.get("")
@require_tenant
def list_tills_route():
    try:
        limit, offset = parse_paging_args()
        tills, total = register_service.list_tills(
            g.tenant_id,
            status=request.args.get("status"),
            from_date=parse_date_arg("start"),
            to_date=parse_date_arg("end"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "tills": [_till_payload(t) for t in tills],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@tills_bp.get("/<int:till_id>")
@require_tenant
def get_till_route(till_id: int):
    try:
        return jsonify({"till": register_service.get_till_summary(g.tenant_id, till_id)}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@tills_bp.post("/<int:till_id>/ingress")
@require_tenant
def add_ingress_route(till_id: int):
    """
    Request body:
    {"amount_cents": 15000, "concept": "Tip jar", "category": "SALE" | "OTHER"}
    """
    try:
        data = get_json_body()
        entry = register_service.add_ingress(
            g.tenant_id,
            till_id,
            coerce_int(data.get("amount_cents"), "amount_cents"),
            data.get("concept"),
            category=data.get("category", "OTHER"),
            recorded_by=g.actor_id,
        )
        return jsonify({"entry": entry.to_dict()}), 201
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add ingress to till %s", till_id)
        return jsonify({"error": "Internal server error"}), 500


@tills_bp.post("/<int:till_id>/egress")
@require_tenant
def add_egress_route(till_id: int):
    """
    Request body:
    {
        "amount_cents": 3000,
        "concept": "Towels",
        "category": "PURCHASE" | "EXPENSE" | "BANK_WITHDRAWAL",
        "authorized_by": "manager-1"
    }
    """
    try:
        data = get_json_body()
        entry = register_service.add_egress(
            g.tenant_id,
            till_id,
            coerce_int(data.get("amount_cents"), "amount_cents"),
            data.get("concept"),
            category=data.get("category"),
            authorized_by=data.get("authorized_by"),
            recorded_by=g.actor_id,
        )
        return jsonify({"entry": entry.to_dict()}), 201
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add egress to till %s", till_id)
        return jsonify({"error": "Internal server error"}), 500


@tills_bp.post("/<int:till_id>/close")
@require_tenant
def close_till_route(till_id: int):
    """
    Request body:
    {
        "counted_cents": 61500,
        "denomination_breakdown": {"20000": 3, "1000": 1, "500": 1},  (optional)
        "notes": "..."  (optional)
    }
    """
    try:
        data = get_json_body()
        till = register_service.close_till(
            g.tenant_id,
            till_id,
            coerce_int(data.get("counted_cents"), "counted_cents"),
            denomination_breakdown=data.get("denomination_breakdown"),
            notes=data.get("notes"),
            closed_by=g.actor_id,
        )
        return jsonify({"till": _till_payload(till, include_entries=True)}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close till %s", till_id)
        return jsonify({"error": "Internal server error"}), 500
