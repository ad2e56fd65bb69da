"""
Tenant Scoping Helpers

Every core operation receives an already-authenticated tenant id. These
helpers load tenant-owned rows and treat rows of another tenant exactly
like missing rows, so callers never learn that a foreign id exists.

USAGE:
    from barberpos.services.tenant_service import require_tenant, get_scoped

    tenant = require_tenant(g.tenant_id)
    sale = get_scoped(Sale, sale_id, g.tenant_id, label="Sale")
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound
from ..models import Tenant, Provider


def require_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant or not tenant.is_active:
        raise NotFound(f"Tenant {tenant_id} not found")
    return tenant


def get_scoped(model, entity_id: int, tenant_id: int, *, label: str | None = None):
    """Load a tenant-owned row or raise NotFound (also for other tenants' rows)."""
    obj = db.session.get(model, entity_id)
    if obj is None or obj.tenant_id != tenant_id:
        raise NotFound(f"{label or model.__name__} {entity_id} not found")
    return obj


def require_provider(tenant_id: int, provider_id: int) -> Provider:
    provider = get_scoped(Provider, provider_id, tenant_id, label="Provider")
    if not provider.is_active:
        raise NotFound(f"Provider {provider_id} not found")
    return provider


def create_tenant(name: str, code: str | None = None) -> Tenant:
    tenant = Tenant(name=name, code=code, is_active=True)
    db.session.add(tenant)
    db.session.commit()
    return tenant


def create_provider(tenant_id: int, name: str) -> Provider:
    require_tenant(tenant_id)
    provider = Provider(tenant_id=tenant_id, name=name, is_active=True)
    db.session.add(provider)
    db.session.commit()
    return provider
