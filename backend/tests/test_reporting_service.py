# Overview: Pytest coverage for read-only reporting aggregates.

from datetime import timedelta

import pytest

from barberpos.errors import InvalidInput
from barberpos.models import CommissionEntry, Sale
from barberpos.services import commission_service, register_service, reporting_service
from barberpos.services.payment_service import record_payment
from barberpos.services.reporting_service import percent_change, previous_period
from barberpos.services.sales_service import record_sale
from barberpos.time_utils import today, utcnow


def _sell(tenant, service, provider=None, tender="CARD", quantity=1):
    return record_sale(
        tenant.id,
        [{"kind": "SERVICE", "item_id": service.id, "quantity": quantity}],
        tender_method=tender,
        provider_id=provider.id if provider else None,
    )


class TestPercentChange:

    def test_growth_from_zero_is_100(self):
        assert percent_change(0, 5000) == 100.0

    def test_both_zero_is_flat(self):
        assert percent_change(0, 0) == 0.0

    def test_regular_change(self):
        assert percent_change(10000, 12500) == 25.0
        assert percent_change(10000, 7500) == -25.0

    def test_one_decimal(self):
        assert percent_change(3, 4) == 33.3


class TestPeriods:

    def test_previous_period_has_same_length(self):
        start = today()
        end = start + timedelta(days=6)

        prev_start, prev_end = previous_period(start, end)

        assert prev_end == start - timedelta(days=1)
        assert (prev_end - prev_start).days == 6

    def test_end_before_start_rejected(self, app, tenant_a):
        with pytest.raises(InvalidInput):
            reporting_service.period_summary(tenant_a.id, today(), today() - timedelta(days=1))


class TestPeriodSummary:

    @pytest.mark.reports
    def test_revenue_includes_sales_and_payments(self, app, tenant_a, service_a, make_booking):
        _sell(tenant_a, service_a)
        booking = make_booking(tenant_a, price_cents=30000)
        record_payment(tenant_a.id, booking.id, [{"method": "CARD", "amount_cents": 30000}])

        summary = reporting_service.period_summary(tenant_a.id, today(), today())

        assert summary["sales"]["count"] == 1
        assert summary["sales"]["total_cents"] == 10000
        assert summary["payments"]["gross_cents"] == 30000
        assert summary["payments"]["fee_cents"] == 750
        assert summary["revenue_cents"] == 40000

    def test_other_tenants_are_excluded(self, app, tenant_a, tenant_b, service_a, make_service):
        _sell(tenant_a, service_a)
        _sell(tenant_b, make_service(tenant_b, price_cents=99000))

        summary = reporting_service.period_summary(tenant_a.id, today(), today())

        assert summary["revenue_cents"] == 10000

    def test_rerun_is_identical(self, app, tenant_a, provider_a, service_a):
        register_service.open_till(tenant_a.id, 10000, responsible="Ana")
        _sell(tenant_a, service_a, provider_a, tender="CASH")
        _sell(tenant_a, service_a, provider_a, tender="CARD")

        first = reporting_service.financial_report(tenant_a.id, today(), today())
        second = reporting_service.financial_report(tenant_a.id, today(), today())

        assert first == second
        assert first["period"]["till"]["ingress_cents"] == 10000

    def test_growth_against_empty_previous_period(self, app, tenant_a, service_a):
        _sell(tenant_a, service_a)

        report = reporting_service.financial_report(tenant_a.id, today(), today())

        assert report["previous_period"]["revenue_cents"] == 0
        assert report["growth"]["revenue_pct"] == 100.0
        assert report["growth"]["commissions_pct"] == 0.0

    def test_growth_against_previous_day(self, app, tenant_a, service_a, db_session):
        yesterday_sale = _sell(tenant_a, service_a)
        stored = db_session.get(Sale, yesterday_sale.id)
        stored.created_at = utcnow() - timedelta(days=1)
        db_session.commit()
        _sell(tenant_a, service_a, quantity=2)

        report = reporting_service.financial_report(tenant_a.id, today(), today())

        assert report["previous_period"]["revenue_cents"] == 10000
        assert report["period"]["revenue_cents"] == 20000
        assert report["growth"]["revenue_pct"] == 100.0
        assert report["growth"]["sales_count_pct"] == 0.0


class TestLeaderboard:

    def test_sorted_by_provider_amount(self, app, tenant_a, service_a, make_provider):
        carlos = make_provider(tenant_a, name="Carlos")
        luis = make_provider(tenant_a, name="Luis")
        _sell(tenant_a, service_a, carlos)
        _sell(tenant_a, service_a, luis, quantity=3)

        rows = reporting_service.provider_leaderboard(tenant_a.id, today(), today())

        assert [r["provider_name"] for r in rows] == ["Luis", "Carlos"]
        assert rows[0]["rank"] == 1
        assert rows[0]["provider_cents"] == 15000
        assert rows[1]["provider_cents"] == 5000

    def test_adjusted_amounts_count(self, app, tenant_a, service_a, make_provider, db_session):
        carlos = make_provider(tenant_a, name="Carlos")
        luis = make_provider(tenant_a, name="Luis")
        _sell(tenant_a, service_a, carlos)
        _sell(tenant_a, service_a, luis)
        entry = db_session.query(CommissionEntry).filter_by(provider_id=carlos.id).one()
        commission_service.adjust_entry(tenant_a.id, entry.id, 9000, 1000, reason="Bono", actor="m1")

        rows = reporting_service.provider_leaderboard(tenant_a.id, today(), today())

        assert rows[0]["provider_id"] == carlos.id
        assert rows[0]["provider_cents"] == 9000

    def test_limit(self, app, tenant_a, service_a, make_provider):
        for n in range(3):
            _sell(tenant_a, service_a, make_provider(tenant_a, name=f"Barbero {n}"))

        rows = reporting_service.provider_leaderboard(tenant_a.id, today(), today(), limit=2)

        assert len(rows) == 2


class TestTenderBreakdown:

    def test_shares_by_method(self, app, tenant_a, service_a, make_booking):
        _sell(tenant_a, service_a, tender="CASH")
        booking = make_booking(tenant_a, price_cents=30000)
        record_payment(
            tenant_a.id,
            booking.id,
            [{"method": "CASH", "amount_cents": 20000}, {"method": "CARD", "amount_cents": 10000}],
        )

        breakdown = reporting_service.tender_breakdown(tenant_a.id, today(), today())

        assert breakdown["total_cents"] == 40000
        assert breakdown["methods"] == [
            {"method": "CASH", "amount_cents": 30000, "percentage": 75.0},
            {"method": "CARD", "amount_cents": 10000, "percentage": 25.0},
        ]

    def test_empty_period(self, app, tenant_a):
        breakdown = reporting_service.tender_breakdown(tenant_a.id, today(), today())

        assert breakdown == {"total_cents": 0, "methods": []}


class TestDailyRevenue:

    def test_zero_filled_days(self, app, tenant_a, service_a):
        _sell(tenant_a, service_a)
        start = today() - timedelta(days=2)

        rows = reporting_service.daily_revenue(tenant_a.id, start, today())

        assert [r["date"] for r in rows] == [(start + timedelta(days=n)).isoformat() for n in range(3)]
        assert [r["revenue_cents"] for r in rows] == [0, 0, 10000]


class TestTillVariance:

    def test_only_tills_with_variance(self, app, tenant_a):
        first = register_service.open_till(tenant_a.id, 50000, responsible="Ana")
        register_service.close_till(tenant_a.id, first.id, 50000)
        second = register_service.open_till(tenant_a.id, 50000, responsible="Ana", shift="AFTERNOON")
        register_service.close_till(tenant_a.id, second.id, 47000)

        report = reporting_service.till_variance_report(tenant_a.id, today(), today())

        assert report["closed_tills"] == 2
        assert report["tills_with_variance"] == 1
        assert report["net_variance_cents"] == -3000
        assert report["rows"][0]["severity"] == "HIGH"
