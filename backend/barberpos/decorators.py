# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Tenant


def require_tenant(f):
    """
    Establish tenant context from the upstream auth layer.

    The settlement core performs no authentication. The gateway in front
    of it has already authenticated the caller and forwards:
    - X-Tenant-Id: the caller's tenant (required)
    - X-Actor-Id: the acting user (optional, recorded on documents)

    Sets g.tenant_id and g.actor_id.

    Returns 401 if the tenant header is missing or malformed, 404 if the
    tenant does not exist or is inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_tenant = request.headers.get("X-Tenant-Id", "").strip()
        if not raw_tenant:
            return jsonify({"error": "Tenant context required"}), 401
        try:
            tenant_id = int(raw_tenant)
        except ValueError:
            return jsonify({"error": "Invalid tenant context"}), 401

        tenant = db.session.get(Tenant, tenant_id)
        if not tenant or not tenant.is_active:
            return jsonify({"error": "Tenant not found"}), 404

        g.tenant_id = tenant.id
        g.actor_id = request.headers.get("X-Actor-Id") or None

        return f(*args, **kwargs)

    return decorated_function
