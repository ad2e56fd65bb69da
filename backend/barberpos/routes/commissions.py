# Overview: Flask API routes for the commission ledger; parses input and returns JSON responses.

"""
Commission Ledger API Routes

DESIGN:
- Entries are created by sales and payments, never through this API
- Transitions: approve (PENDING -> APPROVED), pay (APPROVED -> PAID)
- Adjustments need a reason and keep the split summing to gross
- PAID entries are final
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import SettlementError
from ..services import commission_service
from ..time_utils import day_end, day_start
from ..validation import coerce_int, get_json_body, parse_date_arg, parse_paging_args


commissions_bp = Blueprint("commissions", __name__, url_prefix="/api/commissions")


@commissions_bp.get("/")
@commissions_bp.get("")
@require_tenant
def list_entries_route():
    try:
        start = parse_date_arg("start")
        end = parse_date_arg("end")
        limit, offset = parse_paging_args()
        entries, total = commission_service.list_entries(
            g.tenant_id,
            provider_id=request.args.get("provider_id", type=int),
            state=request.args.get("state"),
            from_dt=day_start(start) if start else None,
            to_dt=day_end(end) if end else None,
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "entries": [e.to_dict(include_history=False) for e in entries],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.get("/<int:entry_id>")
@require_tenant
def get_entry_route(entry_id: int):
    try:
        entry = commission_service.get_entry(g.tenant_id, entry_id)
        return jsonify({"entry": entry.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.post("/<int:entry_id>/approve")
@require_tenant
def approve_entry_route(entry_id: int):
    try:
        entry = commission_service.approve_entry(g.tenant_id, entry_id, g.actor_id)
        return jsonify({"entry": entry.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve commission entry %s", entry_id)
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.post("/<int:entry_id>/pay")
@require_tenant
def pay_entry_route(entry_id: int):
    """Request body: {"tender_method": "CASH", "notes": "..."}"""
    try:
        data = get_json_body()
        entry = commission_service.mark_entry_paid(
            g.tenant_id,
            entry_id,
            data.get("tender_method"),
            actor=g.actor_id,
            notes=data.get("notes"),
        )
        return jsonify({"entry": entry.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to pay commission entry %s", entry_id)
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.post("/<int:entry_id>/adjust")
@require_tenant
def adjust_entry_route(entry_id: int):
    """
    Request body:
    {"provider_cents": 6000, "business_cents": 4000, "reason": "Agreed bonus"}
    """
    try:
        data = get_json_body()
        entry = commission_service.adjust_entry(
            g.tenant_id,
            entry_id,
            coerce_int(data.get("provider_cents"), "provider_cents"),
            coerce_int(data.get("business_cents"), "business_cents"),
            reason=data.get("reason"),
            actor=g.actor_id,
        )
        return jsonify({"entry": entry.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust commission entry %s", entry_id)
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.get("/providers/<int:provider_id>/balance")
@require_tenant
def provider_balance_route(provider_id: int):
    try:
        balance = commission_service.get_provider_balance(
            g.tenant_id,
            provider_id,
            state=request.args.get("state"),
        )
        return jsonify(balance), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
