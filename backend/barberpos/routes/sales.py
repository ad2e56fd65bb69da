# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales API Routes

DESIGN:
- POST records a sale in one call (items, discount, tender, provider)
- Prices always come from the catalog; client prices are ignored
- Stock, till and commission side effects never fail the request
- GET endpoints list and read sales; reconcile replays side effects
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import SettlementError
from ..services import inventory_service, sales_service
from ..time_utils import day_end, day_start
from ..validation import coerce_int, get_json_body, parse_date_arg, parse_paging_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@sales_bp.post("")
@require_tenant
def record_sale_route():
    """
    Record a point-of-sale transaction.

    Request body:
    {
        "items": [
            {"kind": "SERVICE", "item_id": 3, "quantity": 1},
            {"kind": "PRODUCT", "item_id": 8, "quantity": 2}
        ],
        "discount_cents": 2000,     (optional, clamped to subtotal)
        "tender_method": "CASH",
        "provider_id": 4            (optional, enables commissions)
    }
    """
    try:
        data = get_json_body()
        sale = sales_service.record_sale(
            g.tenant_id,
            data.get("items"),
            discount_cents=coerce_int(data.get("discount_cents"), "discount_cents", required=False),
            tender_method=data.get("tender_method"),
            provider_id=coerce_int(data.get("provider_id"), "provider_id", required=False),
            actor_id=g.actor_id,
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@sales_bp.get("")
@require_tenant
def list_sales_route():
    try:
        start = parse_date_arg("start")
        end = parse_date_arg("end")
        limit, offset = parse_paging_args()
        sales, total = sales_service.list_sales(
            g.tenant_id,
            from_dt=day_start(start) if start else None,
            to_dt=day_end(end) if end else None,
            provider_id=request.args.get("provider_id", type=int),
            tender_method=request.args.get("tender_method"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "sales": [s.to_dict(include_lines=False) for s in sales],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_tenant
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.tenant_id, sale_id)
        movements, _ = inventory_service.list_movements(g.tenant_id, sale_id=sale_id)
        return jsonify({
            "sale": sale.to_dict(),
            "stock_movements": [m.to_dict() for m in movements],
        }), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<int:sale_id>/reconcile")
@require_tenant
def reconcile_sale_route(sale_id: int):
    """Re-run the sale's stock/till/commission side effects (idempotent)."""
    try:
        outcomes = sales_service.reconcile_sale(g.tenant_id, sale_id)
        return jsonify({"effects": [o.to_dict() for o in outcomes]}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconcile sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/reverse-stock")
@require_tenant
def reverse_sale_stock_route(sale_id: int):
    """Return the products of a sale to stock."""
    try:
        movements = inventory_service.reverse_sale_stock(g.tenant_id, sale_id)
        return jsonify({"stock_movements": [m.to_dict() for m in movements]}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reverse stock for sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
