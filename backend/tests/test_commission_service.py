# Overview: Pytest coverage for the commission ledger state machine.

"""
Commission Ledger Tests

STATE MACHINE:
    PENDING --approve--> APPROVED --pay--> PAID (terminal)

PAID is final: no adjustment or transition succeeds afterwards.
"""

import pytest

from barberpos.errors import AlreadyPaid, InvalidInput, InvalidState, NotFound
from barberpos.models import CommissionAdjustment, CommissionEntry
from barberpos.services import commission_service
from barberpos.services.sales_service import record_sale


@pytest.fixture
def entry(app, tenant_a, provider_a, service_a, db_session):
    sale = record_sale(
        tenant_a.id,
        [{"kind": "SERVICE", "item_id": service_a.id, "quantity": 1}],
        tender_method="CARD",
        provider_id=provider_a.id,
    )
    return db_session.query(CommissionEntry).filter_by(sale_id=sale.id).one()


class TestCreateEntry:

    def test_default_split(self, entry):
        assert entry.gross_cents == 10000
        assert (entry.provider_cents, entry.business_cents) == (5000, 5000)
        assert entry.calculation_method == "PERCENTAGE"
        assert entry.rate_source == "SYSTEM_DEFAULT"
        assert entry.state == "PENDING"

    def test_create_is_idempotent_per_origin(self, entry, tenant_a, provider_a):
        again = commission_service.create_entry(
            tenant_a.id, provider_a.id, 10000, sale_line_id=entry.sale_line_id, sale_id=entry.sale_id
        )

        assert again.id == entry.id

    def test_origin_required(self, app, tenant_a, provider_a):
        with pytest.raises(InvalidInput):
            commission_service.create_entry(tenant_a.id, provider_a.id, 10000)

    def test_withholding_applied_to_provider_share(
        self, app, tenant_a, provider_a, service_a, set_revenue_config, db_session
    ):
        set_revenue_config(tenant_a, withholding_enabled=True, withholding_rate_bps=1000)
        sale = record_sale(
            tenant_a.id,
            [{"kind": "SERVICE", "item_id": service_a.id, "quantity": 1}],
            tender_method="CARD",
            provider_id=provider_a.id,
        )

        created = db_session.query(CommissionEntry).filter_by(sale_id=sale.id).one()
        assert created.tax_withheld_cents == 500
        assert created.provider_net_cents == 4500


class TestTransitions:

    @pytest.mark.commissions
    def test_approve_then_pay(self, entry, tenant_a):
        approved = commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")
        assert approved.state == "APPROVED"
        assert approved.approved_by == "manager-1"
        assert approved.approved_at is not None

        paid = commission_service.mark_entry_paid(tenant_a.id, entry.id, "transfer", actor="manager-1", notes="Quincena")
        assert paid.state == "PAID"
        assert paid.tender_method == "TRANSFER"
        assert paid.paid_at is not None
        assert paid.notes == "Quincena"

    def test_approve_requires_actor(self, entry, tenant_a):
        with pytest.raises(InvalidInput):
            commission_service.approve_entry(tenant_a.id, entry.id, None)

    def test_pay_requires_approval(self, entry, tenant_a):
        with pytest.raises(InvalidState):
            commission_service.mark_entry_paid(tenant_a.id, entry.id, "CASH")

    def test_pay_requires_known_tender(self, entry, tenant_a):
        commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")

        with pytest.raises(InvalidInput):
            commission_service.mark_entry_paid(tenant_a.id, entry.id, None)

    def test_pay_twice_is_already_paid(self, entry, tenant_a):
        commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")
        commission_service.mark_entry_paid(tenant_a.id, entry.id, "CASH")

        with pytest.raises(AlreadyPaid):
            commission_service.mark_entry_paid(tenant_a.id, entry.id, "CASH")

    def test_approve_paid_entry_fails(self, entry, tenant_a):
        commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")
        commission_service.mark_entry_paid(tenant_a.id, entry.id, "CASH")

        with pytest.raises(InvalidState):
            commission_service.approve_entry(tenant_a.id, entry.id, "manager-2")

    def test_foreign_entry_not_found(self, entry, tenant_b):
        with pytest.raises(NotFound):
            commission_service.approve_entry(tenant_b.id, entry.id, "manager-b")


class TestAdjustments:

    def test_adjust_pending_entry(self, entry, tenant_a, db_session):
        adjusted = commission_service.adjust_entry(
            tenant_a.id, entry.id, 6000, 4000, reason="Bono acordado", actor="manager-1"
        )

        assert (adjusted.provider_cents, adjusted.business_cents) == (6000, 4000)
        assert (adjusted.auto_provider_cents, adjusted.auto_business_cents) == (5000, 5000)
        assert adjusted.calculation_method == "MANUAL"
        assert adjusted.state == "PENDING"
        history = db_session.query(CommissionAdjustment).filter_by(entry_id=entry.id).all()
        assert len(history) == 1
        assert history[0].previous_provider_cents == 5000
        assert history[0].new_provider_cents == 6000
        assert history[0].reason == "Bono acordado"

    def test_adjust_approved_entry_keeps_state(self, entry, tenant_a):
        commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")

        adjusted = commission_service.adjust_entry(tenant_a.id, entry.id, 5500, 4500, reason="Ajuste", actor="m1")

        assert adjusted.state == "APPROVED"

    def test_repeated_adjustments_append_history(self, entry, tenant_a, db_session):
        commission_service.adjust_entry(tenant_a.id, entry.id, 6000, 4000, reason="Uno", actor="m1")
        commission_service.adjust_entry(tenant_a.id, entry.id, 6500, 3500, reason="Dos", actor="m1")

        assert db_session.query(CommissionAdjustment).filter_by(entry_id=entry.id).count() == 2

    def test_reason_required(self, entry, tenant_a):
        with pytest.raises(InvalidInput):
            commission_service.adjust_entry(tenant_a.id, entry.id, 6000, 4000, reason="  ", actor="m1")

    def test_amounts_must_sum_to_gross(self, entry, tenant_a):
        with pytest.raises(InvalidInput):
            commission_service.adjust_entry(tenant_a.id, entry.id, 6000, 5000, reason="Mal", actor="m1")

    def test_adjusting_paid_entry_fails_and_changes_nothing(self, entry, tenant_a, db_session):
        commission_service.adjust_entry(tenant_a.id, entry.id, 6000, 4000, reason="Antes de pagar", actor="m1")
        commission_service.approve_entry(tenant_a.id, entry.id, "manager-1")
        commission_service.mark_entry_paid(tenant_a.id, entry.id, "CASH")

        with pytest.raises(InvalidState):
            commission_service.adjust_entry(tenant_a.id, entry.id, 7000, 3000, reason="Despues", actor="m1")

        db_session.rollback()
        db_session.expire_all()
        stored = db_session.get(CommissionEntry, entry.id)
        assert (stored.provider_cents, stored.business_cents) == (6000, 4000)
        assert stored.state == "PAID"
        assert db_session.query(CommissionAdjustment).filter_by(entry_id=entry.id).count() == 1

    def test_adjustments_disabled_by_config(self, entry, tenant_a, set_revenue_config):
        set_revenue_config(tenant_a, allow_manual_adjustments=False)

        with pytest.raises(InvalidState):
            commission_service.adjust_entry(tenant_a.id, entry.id, 6000, 4000, reason="No", actor="m1")


class TestBalances:

    def test_balance_by_state(self, app, tenant_a, provider_a, service_a, db_session):
        for _ in range(3):
            record_sale(
                tenant_a.id,
                [{"kind": "SERVICE", "item_id": service_a.id, "quantity": 1}],
                tender_method="CARD",
                provider_id=provider_a.id,
            )
        entries = db_session.query(CommissionEntry).order_by(CommissionEntry.id).all()
        commission_service.approve_entry(tenant_a.id, entries[0].id, "m1")
        commission_service.approve_entry(tenant_a.id, entries[1].id, "m1")
        commission_service.mark_entry_paid(tenant_a.id, entries[1].id, "CASH")

        overall = commission_service.get_provider_balance(tenant_a.id, provider_a.id)
        pending = commission_service.get_provider_balance(tenant_a.id, provider_a.id, state="pending")

        assert overall["balance_cents"] == 15000
        assert overall["entry_count"] == 3
        assert (overall["pending_cents"], overall["approved_cents"], overall["paid_cents"]) == (5000, 5000, 5000)
        assert pending["balance_cents"] == 5000
        assert pending["entry_count"] == 1

    def test_balance_uses_adjusted_amounts(self, entry, tenant_a, provider_a):
        commission_service.adjust_entry(tenant_a.id, entry.id, 8000, 2000, reason="Bono", actor="m1")

        assert commission_service.get_provider_balance(tenant_a.id, provider_a.id)["balance_cents"] == 8000

    def test_invalid_state_filter(self, app, tenant_a, provider_a):
        with pytest.raises(InvalidInput):
            commission_service.get_provider_balance(tenant_a.id, provider_a.id, state="VOID")
