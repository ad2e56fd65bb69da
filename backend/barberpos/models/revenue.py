from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

OVERRIDE_SCOPE_PROVIDER = "PROVIDER"
OVERRIDE_SCOPE_SERVICE = "SERVICE"

class RevenueConfig(db.Model):
    """
    Per-tenant revenue split and tax configuration.

    One row per tenant (unique tenant_id), created lazily with system
    defaults (50/50 split, tax disabled) the first time it is needed.
    """
    __tablename__ = "revenue_configs"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", name="uq_revenue_configs_tenant"),
        db.CheckConstraint(
            "default_provider_pct + default_business_pct = 100",
            name="ck_revenue_configs_default_split",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)

    default_provider_pct = db.Column(db.Integer, nullable=False, default=50)
    default_business_pct = db.Column(db.Integer, nullable=False, default=50)

    # Sales tax (IVA) in basis points (1900 = 19%)
    tax_enabled = db.Column(db.Boolean, nullable=False, default=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    # Withholding on provider commissions, basis points
    withholding_enabled = db.Column(db.Boolean, nullable=False, default=False)
    withholding_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    allow_manual_adjustments = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    overrides = db.relationship("RevenueOverride", backref="config", lazy=True, order_by="RevenueOverride.id")
    __mapper_args__ = {"version_id_col": version_id}

    def overrides_for(self, scope: str) -> list["RevenueOverride"]:
        return [o for o in self.overrides if o.scope == scope]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "default_provider_pct": self.default_provider_pct,
            "default_business_pct": self.default_business_pct,
            "tax_enabled": self.tax_enabled,
            "tax_rate_bps": self.tax_rate_bps,
            "withholding_enabled": self.withholding_enabled,
            "withholding_rate_bps": self.withholding_rate_bps,
            "allow_manual_adjustments": self.allow_manual_adjustments,
            "provider_overrides": [o.to_dict() for o in self.overrides_for(OVERRIDE_SCOPE_PROVIDER)],
            "service_overrides": [o.to_dict() for o in self.overrides_for(OVERRIDE_SCOPE_SERVICE)],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class RevenueOverride(db.Model):
    """
    Split exception for one provider or one service.

    SCOPES:
    - PROVIDER: target_id is a provider id
    - SERVICE: target_id is a catalog service id

    Inactive overrides are kept for history and ignored by the resolver.
    """
    __tablename__ = "revenue_overrides"
    __table_args__ = (
        db.UniqueConstraint("config_id", "scope", "target_id", name="uq_revenue_overrides_target"),
        db.CheckConstraint(
            "provider_pct + business_pct = 100",
            name="ck_revenue_overrides_split",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    config_id = db.Column(db.Integer, db.ForeignKey("revenue_configs.id"), nullable=False, index=True)

    scope = db.Column(db.String(16), nullable=False)  # PROVIDER, SERVICE
    target_id = db.Column(db.Integer, nullable=False)

    provider_pct = db.Column(db.Integer, nullable=False)
    business_pct = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope": self.scope,
            "target_id": self.target_id,
            "provider_pct": self.provider_pct,
            "business_pct": self.business_pct,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
