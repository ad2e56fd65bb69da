# Overview: Pytest coverage for revenue split configuration and rate precedence.

"""
Revenue Split Tests

Precedence (first match wins):
1. Active provider override
2. Active service override
3. Tenant default
4. System default 50/50 (no config row)
"""

import pytest

from barberpos.errors import InvalidInput, NotFound
from barberpos.models import RevenueConfig, RevenueOverride
from barberpos.services import revenue_service
from barberpos.services.revenue_service import (
    SOURCE_PROVIDER_OVERRIDE,
    SOURCE_SERVICE_OVERRIDE,
    SOURCE_SYSTEM_DEFAULT,
    SOURCE_TENANT_DEFAULT,
    CommissionRate,
    resolve_commission_rate,
    split_amount,
)
from barberpos.services.tax_service import get_tax_rate_bps, get_withholding_rate_bps


class TestRatePrecedence:

    def test_system_default_without_config(self, app, tenant_a, provider_a, service_a, db_session):
        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert (rate.provider_pct, rate.business_pct) == (50, 50)
        assert rate.source == SOURCE_SYSTEM_DEFAULT
        # Resolution never creates the config row
        assert db_session.query(RevenueConfig).filter_by(tenant_id=tenant_a.id).count() == 0

    def test_tenant_default(self, app, tenant_a, provider_a, service_a, set_revenue_config):
        set_revenue_config(tenant_a, default_provider_pct=40, default_business_pct=60)

        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert (rate.provider_pct, rate.business_pct, rate.source) == (40, 60, SOURCE_TENANT_DEFAULT)

    def test_service_override_beats_tenant_default(self, app, tenant_a, provider_a, service_a):
        revenue_service.upsert_override(
            tenant_a.id, scope="SERVICE", target_id=service_a.id, provider_pct=60, business_pct=40
        )

        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert (rate.provider_pct, rate.business_pct, rate.source) == (60, 40, SOURCE_SERVICE_OVERRIDE)

    def test_provider_override_beats_service_override(self, app, tenant_a, provider_a, service_a):
        """Provider 70/30 and service 60/40 both match: the provider override applies."""
        revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=70, business_pct=30
        )
        revenue_service.upsert_override(
            tenant_a.id, scope="SERVICE", target_id=service_a.id, provider_pct=60, business_pct=40
        )

        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert (rate.provider_pct, rate.business_pct, rate.source) == (70, 30, SOURCE_PROVIDER_OVERRIDE)

    def test_inactive_provider_override_falls_through(self, app, tenant_a, provider_a, service_a):
        override = revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=70, business_pct=30
        )
        revenue_service.upsert_override(
            tenant_a.id, scope="SERVICE", target_id=service_a.id, provider_pct=60, business_pct=40
        )
        revenue_service.set_override_active(tenant_a.id, override.id, False)

        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert rate.source == SOURCE_SERVICE_OVERRIDE
        assert rate.provider_pct == 60

    def test_override_for_other_provider_does_not_apply(self, app, tenant_a, provider_a, service_a, make_provider):
        other = make_provider(tenant_a, name="Luis")
        revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=other.id, provider_pct=80, business_pct=20
        )

        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)

        assert rate.source == SOURCE_TENANT_DEFAULT
        assert rate.provider_pct == 50

    def test_split_always_sums_to_100(self, app, tenant_a, provider_a, service_a):
        revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=65, business_pct=35
        )
        rate = resolve_commission_rate(tenant_a.id, provider_a.id, service_a.id)
        assert rate.provider_pct + rate.business_pct == 100


class TestSplitAmount:

    @pytest.mark.parametrize("gross", [0, 1, 3, 999, 10001, 29750, 123457])
    @pytest.mark.parametrize("provider_pct", [0, 33, 50, 65, 70, 100])
    def test_parts_add_up_to_gross(self, gross, provider_pct):
        split = split_amount(gross, CommissionRate(provider_pct, 100 - provider_pct, SOURCE_TENANT_DEFAULT))

        assert split.provider_cents + split.business_cents == gross
        assert split.provider_cents >= 0
        assert split.business_cents >= 0

    def test_half_cent_rounds_to_even(self):
        # 1 * 50% = 0.5 -> 0; 3 * 50% = 1.5 -> 2
        rate = CommissionRate(50, 50, SOURCE_SYSTEM_DEFAULT)
        assert split_amount(1, rate).provider_cents == 0
        assert split_amount(3, rate).provider_cents == 2

    def test_seventy_thirty(self):
        split = split_amount(10000, CommissionRate(70, 30, SOURCE_PROVIDER_OVERRIDE))
        assert (split.provider_cents, split.business_cents) == (7000, 3000)


class TestConfigManagement:

    def test_get_or_create_uses_defaults(self, app, tenant_a):
        config = revenue_service.get_or_create_revenue_config(tenant_a.id)

        assert config.default_provider_pct == 50
        assert config.default_business_pct == 50
        assert config.tax_enabled is False
        assert config.tax_rate_bps == 0

    def test_get_or_create_is_idempotent(self, app, tenant_a, db_session):
        first = revenue_service.get_or_create_revenue_config(tenant_a.id)
        second = revenue_service.get_or_create_revenue_config(tenant_a.id)

        assert first.id == second.id
        assert db_session.query(RevenueConfig).filter_by(tenant_id=tenant_a.id).count() == 1

    def test_get_or_create_unknown_tenant(self, app, db_session):
        with pytest.raises(NotFound):
            revenue_service.get_or_create_revenue_config(424242)

    def test_update_defaults_must_sum_to_100(self, app, tenant_a):
        with pytest.raises(InvalidInput):
            revenue_service.update_revenue_config(tenant_a.id, {"default_provider_pct": 70})

        config = revenue_service.update_revenue_config(
            tenant_a.id, {"default_provider_pct": 70, "default_business_pct": 30}
        )
        assert (config.default_provider_pct, config.default_business_pct) == (70, 30)

    def test_update_rejects_unknown_fields(self, app, tenant_a):
        with pytest.raises(InvalidInput):
            revenue_service.update_revenue_config(tenant_a.id, {"currency": "COP"})

    def test_update_rejects_out_of_range_bps(self, app, tenant_a):
        with pytest.raises(InvalidInput):
            revenue_service.update_revenue_config(tenant_a.id, {"tax_rate_bps": 10001})

    def test_tax_rate_only_when_enabled(self, app, tenant_a):
        revenue_service.update_revenue_config(tenant_a.id, {"tax_rate_bps": 1900})
        assert get_tax_rate_bps(tenant_a.id) == 0

        revenue_service.update_revenue_config(tenant_a.id, {"tax_enabled": True})
        assert get_tax_rate_bps(tenant_a.id) == 1900

    def test_withholding_rate_only_when_enabled(self, app, tenant_a):
        revenue_service.update_revenue_config(tenant_a.id, {"withholding_rate_bps": 1000})
        assert get_withholding_rate_bps(tenant_a.id) == 0

        revenue_service.update_revenue_config(tenant_a.id, {"withholding_enabled": True})
        assert get_withholding_rate_bps(tenant_a.id) == 1000


class TestOverrides:

    def test_upsert_replaces_existing_override(self, app, tenant_a, provider_a):
        first = revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=70, business_pct=30
        )
        second = revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=75, business_pct=25
        )

        assert first.id == second.id
        assert second.provider_pct == 75

    def test_override_split_must_sum_to_100(self, app, tenant_a, provider_a):
        with pytest.raises(InvalidInput):
            revenue_service.upsert_override(
                tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=70, business_pct=40
            )

    def test_invalid_scope(self, app, tenant_a, provider_a):
        with pytest.raises(InvalidInput):
            revenue_service.upsert_override(
                tenant_a.id, scope="STORE", target_id=provider_a.id, provider_pct=70, business_pct=30
            )

    def test_override_target_must_belong_to_tenant(self, app, tenant_a, tenant_b, make_provider):
        foreign = make_provider(tenant_b, name="Foraneo")

        with pytest.raises(NotFound):
            revenue_service.upsert_override(
                tenant_a.id, scope="PROVIDER", target_id=foreign.id, provider_pct=70, business_pct=30
            )

    def test_cannot_toggle_other_tenants_override(self, app, tenant_a, tenant_b, make_provider):
        provider_b = make_provider(tenant_b, name="Pedro")
        override = revenue_service.upsert_override(
            tenant_b.id, scope="PROVIDER", target_id=provider_b.id, provider_pct=70, business_pct=30
        )

        with pytest.raises(NotFound):
            revenue_service.set_override_active(tenant_a.id, override.id, False)

    def test_upsert_updates_row_written_by_concurrent_first_write(self, app, tenant_a, provider_a, db_session, monkeypatch):
        first = revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=70, business_pct=30
        )
        first_id = first.id
        # lookup misses as if the other writer had not committed yet
        monkeypatch.setattr(revenue_service, "find_override", lambda *args: None)

        second = revenue_service.upsert_override(
            tenant_a.id, scope="PROVIDER", target_id=provider_a.id, provider_pct=80, business_pct=20
        )

        assert second.id == first_id
        db_session.expire_all()
        rows = db_session.query(RevenueOverride).all()
        assert len(rows) == 1
        assert (rows[0].provider_pct, rows[0].business_pct) == (80, 20)
