# backend/barberpos/routes/system.py
"""
System health endpoint.

Used by deployment probes and the live API suite. No tenant context.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Tenant
from barberpos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health() -> dict:
    """Round-trip the database and count tenants; never raises."""
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
        tenants = db.session.query(Tenant).count()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Database error"}
    return {"status": "healthy", "latency_ms": _elapsed_ms(started), "details": {"tenants": tenants}}


@system_bp.get("/health")
def health():
    """200 when the database answers, 503 otherwise."""
    started = time.perf_counter()
    database = check_database_health()
    healthy = database["status"] == "healthy"

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(started),
        "checks": {"database": database},
    }, 200 if healthy else 503
