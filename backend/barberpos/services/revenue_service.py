"""
Revenue Split Configuration and Commission Rate Resolution

Resolves how a service line's amount is split between the provider and
the business.

PRECEDENCE (first match wins):
1. Active PROVIDER override for the provider
2. Active SERVICE override for the service
3. Tenant default split
4. System default (50/50) when the tenant has no config row yet

Resolution never writes: a tenant without a config row simply gets the
system default. The row itself is created by get_or_create_revenue_config
(first read through the configuration API).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInput, NotFound
from ..models import RevenueConfig, RevenueOverride, Service, Provider
from ..models.revenue import OVERRIDE_SCOPE_PROVIDER, OVERRIDE_SCOPE_SERVICE
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import get_scoped, require_tenant


SYSTEM_DEFAULT_PROVIDER_PCT = 50
SYSTEM_DEFAULT_BUSINESS_PCT = 50

SOURCE_PROVIDER_OVERRIDE = "PROVIDER_OVERRIDE"
SOURCE_SERVICE_OVERRIDE = "SERVICE_OVERRIDE"
SOURCE_TENANT_DEFAULT = "TENANT_DEFAULT"
SOURCE_SYSTEM_DEFAULT = "SYSTEM_DEFAULT"

VALID_SCOPES = (OVERRIDE_SCOPE_PROVIDER, OVERRIDE_SCOPE_SERVICE)


@dataclass(frozen=True)
class CommissionRate:
    provider_pct: int
    business_pct: int
    source: str


@dataclass(frozen=True)
class SplitAmounts:
    gross_cents: int
    provider_cents: int
    business_cents: int


SYSTEM_DEFAULT_RATE = CommissionRate(
    provider_pct=SYSTEM_DEFAULT_PROVIDER_PCT,
    business_pct=SYSTEM_DEFAULT_BUSINESS_PCT,
    source=SOURCE_SYSTEM_DEFAULT,
)


# =============================================================================
# RESOLUTION
# =============================================================================

def get_revenue_config(tenant_id: int) -> RevenueConfig | None:
    """Read the tenant's config without creating it."""
    return db.session.query(RevenueConfig).filter_by(tenant_id=tenant_id).first()


def _find_active(overrides, scope: str, target_id: int | None) -> RevenueOverride | None:
    if target_id is None:
        return None
    for override in overrides:
        if override.scope == scope and override.target_id == target_id and override.is_active:
            return override
    return None


def select_rate(config: RevenueConfig | None, provider_id: int | None, service_id: int | None) -> CommissionRate:
    """Pure precedence rule over an already-loaded config."""
    if config is None:
        return SYSTEM_DEFAULT_RATE

    override = _find_active(config.overrides, OVERRIDE_SCOPE_PROVIDER, provider_id)
    if override is not None:
        return CommissionRate(override.provider_pct, override.business_pct, SOURCE_PROVIDER_OVERRIDE)

    override = _find_active(config.overrides, OVERRIDE_SCOPE_SERVICE, service_id)
    if override is not None:
        return CommissionRate(override.provider_pct, override.business_pct, SOURCE_SERVICE_OVERRIDE)

    return CommissionRate(config.default_provider_pct, config.default_business_pct, SOURCE_TENANT_DEFAULT)


def resolve_commission_rate(tenant_id: int, provider_id: int | None, service_id: int | None) -> CommissionRate:
    return select_rate(get_revenue_config(tenant_id), provider_id, service_id)


def split_amount(gross_cents: int, rate: CommissionRate) -> SplitAmounts:
    """
    Split gross between provider and business.

    The provider share is rounded half-to-even; the business gets the
    remainder, so provider + business == gross exactly.
    """
    provider = Decimal(gross_cents) * Decimal(rate.provider_pct) / Decimal(100)
    provider_cents = int(provider.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))
    return SplitAmounts(
        gross_cents=gross_cents,
        provider_cents=provider_cents,
        business_cents=gross_cents - provider_cents,
    )


# =============================================================================
# CONFIGURATION MANAGEMENT
# =============================================================================

def get_or_create_revenue_config(tenant_id: int) -> RevenueConfig:
    """
    Return the tenant's config, creating it with system defaults if absent.

    Idempotent under concurrent first access: the unique tenant_id
    constraint lets exactly one insert win; losers reload the winner's row.
    """
    config = get_revenue_config(tenant_id)
    if config:
        return config

    require_tenant(tenant_id)
    config = RevenueConfig(
        tenant_id=tenant_id,
        default_provider_pct=SYSTEM_DEFAULT_PROVIDER_PCT,
        default_business_pct=SYSTEM_DEFAULT_BUSINESS_PCT,
        tax_enabled=False,
        tax_rate_bps=0,
        withholding_enabled=False,
        withholding_rate_bps=0,
        allow_manual_adjustments=True,
    )
    db.session.add(config)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        config = get_revenue_config(tenant_id)
        if config is None:
            raise
    return config


def _validate_split(provider_pct, business_pct) -> tuple[int, int]:
    for label, value in (("provider_pct", provider_pct), ("business_pct", business_pct)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidInput(f"{label} must be an integer")
        if value < 0 or value > 100:
            raise InvalidInput(f"{label} must be between 0 and 100")
    if provider_pct + business_pct != 100:
        raise InvalidInput(
            "provider_pct and business_pct must add up to 100",
            details={"provider_pct": provider_pct, "business_pct": business_pct},
        )
    return provider_pct, business_pct


def _validate_bps(label: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInput(f"{label} must be an integer (basis points)")
    if value < 0 or value > 10_000:
        raise InvalidInput(f"{label} must be between 0 and 10000")
    return value


def update_revenue_config(tenant_id: int, changes: dict) -> RevenueConfig:
    """
    Update defaults and tax settings.

    Accepted keys: default_provider_pct, default_business_pct, tax_enabled,
    tax_rate_bps, withholding_enabled, withholding_rate_bps,
    allow_manual_adjustments. Unknown keys are rejected.
    """
    allowed = {
        "default_provider_pct",
        "default_business_pct",
        "tax_enabled",
        "tax_rate_bps",
        "withholding_enabled",
        "withholding_rate_bps",
        "allow_manual_adjustments",
    }
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidInput(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

    get_or_create_revenue_config(tenant_id)

    def _op():
        config = lock_for_update(db.session.query(RevenueConfig).filter_by(tenant_id=tenant_id)).first()

        if "default_provider_pct" in changes or "default_business_pct" in changes:
            # Both halves are validated together; a partial change must still sum to 100.
            provider_pct = changes.get("default_provider_pct", config.default_provider_pct)
            business_pct = changes.get("default_business_pct", config.default_business_pct)
            config.default_provider_pct, config.default_business_pct = _validate_split(provider_pct, business_pct)

        for key in ("tax_rate_bps", "withholding_rate_bps"):
            if key in changes:
                setattr(config, key, _validate_bps(key, changes[key]))

        for key in ("tax_enabled", "withholding_enabled", "allow_manual_adjustments"):
            if key in changes:
                setattr(config, key, bool(changes[key]))

        db.session.commit()
        return config

    return run_with_retry(_op)


def _require_target(tenant_id: int, scope: str, target_id: int) -> None:
    if scope == OVERRIDE_SCOPE_PROVIDER:
        get_scoped(Provider, target_id, tenant_id, label="Provider")
    else:
        get_scoped(Service, target_id, tenant_id, label="Service")


def find_override(config_id: int, scope: str, target_id: int) -> RevenueOverride | None:
    return db.session.query(RevenueOverride).filter_by(
        config_id=config_id,
        scope=scope,
        target_id=target_id,
    ).first()


def _apply_override_fields(override, provider_pct, business_pct, notes, is_active) -> None:
    override.provider_pct = provider_pct
    override.business_pct = business_pct
    override.notes = notes
    override.is_active = bool(is_active)


def upsert_override(
    tenant_id: int,
    *,
    scope: str,
    target_id: int,
    provider_pct: int,
    business_pct: int,
    notes: str | None = None,
    is_active: bool = True,
) -> RevenueOverride:
    """Create or replace the override for (scope, target)."""
    if scope not in VALID_SCOPES:
        raise InvalidInput(f"Invalid override scope: {scope}. Must be one of {list(VALID_SCOPES)}")
    provider_pct, business_pct = _validate_split(provider_pct, business_pct)
    _require_target(tenant_id, scope, target_id)

    config = get_or_create_revenue_config(tenant_id)
    config_id = config.id

    override = find_override(config_id, scope, target_id)
    if override is None:
        override = RevenueOverride(config_id=config_id, scope=scope, target_id=target_id)
        db.session.add(override)
    _apply_override_fields(override, provider_pct, business_pct, notes, is_active)

    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent first write for the same target won; update its row
        db.session.rollback()
        override = db.session.query(RevenueOverride).filter_by(
            config_id=config_id, scope=scope, target_id=target_id
        ).first()
        if override is None:
            raise
        _apply_override_fields(override, provider_pct, business_pct, notes, is_active)
        db.session.commit()
    return override


def set_override_active(tenant_id: int, override_id: int, is_active: bool) -> RevenueOverride:
    override = db.session.get(RevenueOverride, override_id)
    if override is None or override.config.tenant_id != tenant_id:
        raise NotFound(f"Override {override_id} not found")
    override.is_active = bool(is_active)
    db.session.commit()
    return override
