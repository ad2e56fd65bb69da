# Overview: Service-layer operations for tax; rate lookup and rounding of rate applications.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN

from ..extensions import db
from ..models import RevenueConfig

BPS_DENOMINATOR = 10_000


def apply_rate_bps(amount_cents: int, rate_bps: int) -> int:
    """
    amount * rate, rounded half-to-even to a whole minor unit.

    Exact decimal arithmetic: 29_750 at 1900 bps is 5652.5 -> 5652.
    """
    if not amount_cents or not rate_bps:
        return 0
    value = Decimal(amount_cents) * Decimal(rate_bps) / Decimal(BPS_DENOMINATOR)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))


def _load_config(tenant_id: int) -> RevenueConfig | None:
    return db.session.query(RevenueConfig).filter_by(tenant_id=tenant_id).first()


def get_tax_rate_bps(tenant_id: int) -> int:
    """Tenant sales tax rate; 0 when tax is disabled or no config exists yet."""
    config = _load_config(tenant_id)
    if not config or not config.tax_enabled:
        return 0
    return config.tax_rate_bps or 0


def compute_tax(net_amount_cents: int, rate_bps: int) -> int:
    if net_amount_cents <= 0:
        return 0
    return apply_rate_bps(net_amount_cents, rate_bps)


def get_withholding_rate_bps(tenant_id: int) -> int:
    config = _load_config(tenant_id)
    if not config or not config.withholding_enabled:
        return 0
    return config.withholding_rate_bps or 0


def compute_withholding(tenant_id: int, provider_amount_cents: int) -> int:
    """Tax withheld from a provider's commission share."""
    return compute_tax(provider_amount_cents, get_withholding_rate_bps(tenant_id))
