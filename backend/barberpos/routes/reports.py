from flask import Blueprint, jsonify, request, g

from ..decorators import require_tenant
from ..errors import SettlementError
from ..services import reporting_service
from ..validation import parse_period_args


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_tenant
def summary_report():
    try:
        start, end = parse_period_args()
        return jsonify(reporting_service.period_summary(g.tenant_id, start, end)), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/leaderboard")
@require_tenant
def leaderboard_report():
    try:
        start, end = parse_period_args()
        limit = request.args.get("limit", reporting_service.LEADERBOARD_LIMIT, type=int)
        rows = reporting_service.provider_leaderboard(g.tenant_id, start, end, limit=limit)
        return jsonify({"start": start.isoformat(), "end": end.isoformat(), "rows": rows}), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/tenders")
@require_tenant
def tender_report():
    try:
        start, end = parse_period_args()
        return jsonify(reporting_service.tender_breakdown(g.tenant_id, start, end)), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/daily")
@require_tenant
def daily_report():
    try:
        start, end = parse_period_args()
        rows = reporting_service.daily_revenue(g.tenant_id, start, end)
        return jsonify({"start": start.isoformat(), "end": end.isoformat(), "rows": rows}), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/financial")
@require_tenant
def financial_report():
    try:
        start, end = parse_period_args()
        return jsonify(reporting_service.financial_report(g.tenant_id, start, end)), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/till-variance")
@require_tenant
def till_variance_report():
    try:
        start, end = parse_period_args()
        return jsonify(reporting_service.till_variance_report(g.tenant_id, start, end)), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code
