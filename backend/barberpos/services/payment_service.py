# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Booking Payment Service

Settles a single booking, possibly with several tenders.

DESIGN PRINCIPLES:
- Tender sum must equal the booking's price exactly (no partials, no change)
- Each tender carries a processing fee from a fixed per-method table
- Tax is computed on net revenue (after fees)
- Payment and "booking settled" commit together; a booking is paid once
- Cash reaches the open till and the provider's commission entry is
  created afterwards, as best-effort side effects
- Immutable: only notes can change after creation
"""

from __future__ import annotations

from datetime import datetime
from functools import partial

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AlreadyPaid, AmountMismatch, InvalidInput
from ..models import Booking, Payment, PaymentTender
from ..models.sales import (
    TENDER_CARD,
    TENDER_CASH,
    TENDER_CREDIT,
    TENDER_DEBIT,
    TENDER_METHODS,
    TENDER_TRANSFER,
)
from barberpos.time_utils import utcnow
from . import commission_service, register_service
from .concurrency import lock_for_update, run_with_retry
from .effects import EffectContext, EffectOutcome, PostCommitEffect, run_post_commit_effects
from .tax_service import apply_rate_bps, compute_tax, get_tax_rate_bps
from .tenant_service import get_scoped, require_tenant


# =============================================================================
# PROCESSING FEES (basis points)
# =============================================================================

TENDER_FEE_BPS = {
    TENDER_CREDIT: 300,
    TENDER_DEBIT: 150,
    TENDER_CARD: 250,
    TENDER_CASH: 0,
    TENDER_TRANSFER: 0,
}


def processing_fee_cents(method: str, amount_cents: int) -> int:
    return apply_rate_bps(amount_cents, TENDER_FEE_BPS.get(method, 0))


def _parse_tenders(tenders) -> list[tuple[str, int]]:
    if not isinstance(tenders, list) or not tenders:
        raise InvalidInput("At least one tender is required")

    parsed = []
    for index, tender in enumerate(tenders):
        if not isinstance(tender, dict):
            raise InvalidInput(f"tenders[{index}] must be an object")
        method = tender.get("method")
        method = method.upper() if isinstance(method, str) else ""
        if method not in TENDER_METHODS:
            raise InvalidInput(
                f"Invalid tender method: {tender.get('method')}. Must be one of {list(TENDER_METHODS)}"
            )
        amount = tender.get("amount_cents")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidInput(f"tenders[{index}].amount_cents must be a positive integer")
        parsed.append((method, amount))
    return parsed


def record_payment(
    tenant_id: int,
    booking_id: int,
    tenders: list[dict],
    actor_id: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record payment of a booking.

    Args:
        tenders: [{"method": "CASH"|"CARD"|"CREDIT"|"DEBIT"|"TRANSFER",
                   "amount_cents": int}]

    Raises:
        InvalidInput: empty tenders, unknown method, non-positive amount
        NotFound: booking missing or owned by another tenant
        AlreadyPaid: booking already settled
        AmountMismatch: tender sum differs from the booking price
    """
    parsed = _parse_tenders(tenders)
    require_tenant(tenant_id)
    get_scoped(Booking, booking_id, tenant_id, label="Booking")

    tax_rate_bps = get_tax_rate_bps(tenant_id)

    def _op() -> Payment:
        booking = lock_for_update(db.session.query(Booking).filter_by(id=booking_id)).first()
        if booking.settled:
            raise AlreadyPaid(f"Booking {booking_id} is already paid")

        gross = sum(amount for _, amount in parsed)
        if gross != booking.price_cents:
            raise AmountMismatch(
                "Tender total does not match the booking price",
                details={"tendered_cents": gross, "price_cents": booking.price_cents},
            )

        now = utcnow()
        payment = Payment(
            tenant_id=tenant_id,
            booking_id=booking.id,
            provider_id=booking.provider_id,
            gross_cents=gross,
            tax_rate_bps=tax_rate_bps,
            recorded_by=str(actor_id) if actor_id is not None else None,
            notes=notes,
            created_at=now,
        )

        fee_total = 0
        for method, amount in parsed:
            fee_bps = TENDER_FEE_BPS.get(method, 0)
            fee = processing_fee_cents(method, amount)
            fee_total += fee
            payment.tenders.append(
                PaymentTender(
                    method=method,
                    amount_cents=amount,
                    fee_bps=fee_bps,
                    fee_cents=fee,
                    net_cents=amount - fee,
                )
            )

        payment.fee_cents = fee_total
        payment.net_cents = gross - fee_total
        payment.tax_cents = compute_tax(payment.net_cents, tax_rate_bps)

        booking.settled = True
        booking.settled_at = now

        db.session.add(payment)
        try:
            db.session.commit()
        except IntegrityError:
            # Unique booking_id: a concurrent payment for this booking won
            db.session.rollback()
            raise AlreadyPaid(f"Booking {booking_id} is already paid")
        return payment

    payment = run_with_retry(_op)
    current_app.logger.info(
        "Payment %s recorded for booking %s (tenant %s): gross=%s fee=%s net=%s tax=%s",
        payment.id,
        booking_id,
        tenant_id,
        payment.gross_cents,
        payment.fee_cents,
        payment.net_cents,
        payment.tax_cents,
    )

    run_payment_effects(payment)
    return payment


def build_payment_effects(payment: Payment) -> list[PostCommitEffect]:
    tenant_id = payment.tenant_id
    booking = payment.booking
    effects = []

    cash = payment.amount_for(TENDER_CASH)
    if cash > 0:
        effects.append(
            PostCommitEffect(
                name="till_ingress",
                apply=partial(
                    register_service.record_cash_ingress_if_open,
                    tenant_id,
                    cash,
                    f"Booking #{booking.id} - {booking.customer_name or 'N/A'}",
                    source_key=f"payment:{payment.id}",
                    payment_id=payment.id,
                    booking_id=booking.id,
                    recorded_by=payment.recorded_by,
                ),
            )
        )

    if booking.provider_id is not None:
        methods = {t.method for t in payment.tenders}
        effects.append(
            PostCommitEffect(
                name="commission[booking]",
                apply=partial(
                    commission_service.create_entry,
                    tenant_id,
                    booking.provider_id,
                    payment.gross_cents,
                    service_id=booking.service_id,
                    booking_id=booking.id,
                    payment_id=payment.id,
                    tender_method=methods.pop() if len(methods) == 1 else None,
                ),
            )
        )

    return effects


def run_payment_effects(payment: Payment) -> list[EffectOutcome]:
    context = EffectContext(
        tenant_id=payment.tenant_id,
        document=f"payment={payment.id}",
        extra={"booking": payment.booking_id},
    )
    return run_post_commit_effects(build_payment_effects(payment), context)


def reconcile_payment(tenant_id: int, payment_id: int) -> list[EffectOutcome]:
    return run_payment_effects(get_payment(tenant_id, payment_id))


def update_payment_notes(tenant_id: int, payment_id: int, notes: str | None) -> Payment:
    """Notes are the only mutable field of a payment."""
    get_payment(tenant_id, payment_id)

    def _op() -> Payment:
        payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
        payment.notes = notes
        db.session.commit()
        return payment

    return run_with_retry(_op)


def get_payment(tenant_id: int, payment_id: int) -> Payment:
    return get_scoped(Payment, payment_id, tenant_id, label="Payment")


def list_payments(
    tenant_id: int,
    *,
    from_dt: datetime | None = None,
    to_dt: datetime | None = None,
    provider_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    query = db.session.query(Payment).filter(Payment.tenant_id == tenant_id)
    if from_dt:
        query = query.filter(Payment.created_at >= from_dt)
    if to_dt:
        query = query.filter(Payment.created_at < to_dt)
    if provider_id is not None:
        query = query.filter(Payment.provider_id == provider_id)

    total = query.count()
    payments = (
        query.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 200))
        .all()
    )
    return payments, total
