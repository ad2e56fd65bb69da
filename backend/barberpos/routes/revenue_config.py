# Overview: Flask API routes for revenue split configuration; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import SettlementError
from ..services import revenue_service
from ..validation import coerce_int, get_json_body


revenue_config_bp = Blueprint("revenue_config", __name__, url_prefix="/api/revenue-config")


@revenue_config_bp.get("/")
@revenue_config_bp.get("")
@require_tenant
def get_config_route():
    """Tenant config; created with defaults (50/50, no tax) on first read."""
    try:
        config = revenue_service.get_or_create_revenue_config(g.tenant_id)
        return jsonify({"config": config.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load revenue config")
        return jsonify({"error": "Internal server error"}), 500


@revenue_config_bp.patch("/")
@revenue_config_bp.patch("")
@require_tenant
def update_config_route():
    try:
        config = revenue_service.update_revenue_config(g.tenant_id, get_json_body())
        return jsonify({"config": config.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update revenue config")
        return jsonify({"error": "Internal server error"}), 500


@revenue_config_bp.put("/overrides")
@require_tenant
def upsert_override_route():
    """
    Request body:
    {
        "scope": "PROVIDER" | "SERVICE",
        "target_id": 4,
        "provider_pct": 70,
        "business_pct": 30,
        "is_active": true,   (optional)
        "notes": "..."       (optional)
    }
    """
    try:
        data = get_json_body()
        override = revenue_service.upsert_override(
            g.tenant_id,
            scope=str(data.get("scope") or "").upper(),
            target_id=coerce_int(data.get("target_id"), "target_id"),
            provider_pct=coerce_int(data.get("provider_pct"), "provider_pct"),
            business_pct=coerce_int(data.get("business_pct"), "business_pct"),
            notes=data.get("notes"),
            is_active=data.get("is_active", True),
        )
        return jsonify({"override": override.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save revenue override")
        return jsonify({"error": "Internal server error"}), 500


@revenue_config_bp.patch("/overrides/<int:override_id>")
@require_tenant
def set_override_active_route(override_id: int):
    """Request body: {"is_active": false}"""
    try:
        data = get_json_body()
        if "is_active" not in data:
            return jsonify({"error": "is_active is required"}), 400
        override = revenue_service.set_override_active(g.tenant_id, override_id, data["is_active"])
        return jsonify({"override": override.to_dict()}), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update revenue override %s", override_id)
        return jsonify({"error": "Internal server error"}), 500


@revenue_config_bp.get("/resolve")
@require_tenant
def resolve_rate_route():
    """Which split applies to ?provider_id=&service_id= right now."""
    rate = revenue_service.resolve_commission_rate(
        g.tenant_id,
        request.args.get("provider_id", type=int),
        request.args.get("service_id", type=int),
    )
    return jsonify({
        "provider_pct": rate.provider_pct,
        "business_pct": rate.business_pct,
        "source": rate.source,
    }), 200
