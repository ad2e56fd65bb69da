"""
Commission Ledger Service

Money owed to providers, one entry per commissionable service line or
settled booking.

STATE MACHINE:
    PENDING --approve--> APPROVED --mark paid--> PAID (terminal)

- PENDING/APPROVED entries may be adjusted any number of times; each
  adjustment appends a CommissionAdjustment row and keeps
  provider + business == gross.
- Nothing succeeds on a PAID entry.
- Entries are never deleted.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AlreadyPaid, InvalidInput, InvalidState
from ..models import CommissionAdjustment, CommissionEntry
from ..models.commissions import ENTRY_APPROVED, ENTRY_PAID, ENTRY_PENDING
from ..models.sales import TENDER_METHODS
from barberpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .revenue_service import get_revenue_config, resolve_commission_rate, split_amount
from .tax_service import compute_withholding
from .tenant_service import get_scoped, require_provider


ENTRY_STATES = (ENTRY_PENDING, ENTRY_APPROVED, ENTRY_PAID)

METHOD_PERCENTAGE = "PERCENTAGE"
METHOD_MANUAL = "MANUAL"


def _find_by_origin(sale_line_id: int | None, booking_id: int | None) -> CommissionEntry | None:
    if sale_line_id is not None:
        return db.session.query(CommissionEntry).filter_by(sale_line_id=sale_line_id).first()
    if booking_id is not None:
        return db.session.query(CommissionEntry).filter_by(booking_id=booking_id).first()
    return None


def create_entry(
    tenant_id: int,
    provider_id: int,
    gross_cents: int,
    *,
    service_id: int | None = None,
    sale_id: int | None = None,
    sale_line_id: int | None = None,
    booking_id: int | None = None,
    payment_id: int | None = None,
    tender_method: str | None = None,
    notes: str | None = None,
) -> CommissionEntry:
    """
    Create a PENDING entry splitting gross_cents by the resolved rate.

    Idempotent per origin: a second call for the same sale line or booking
    returns the entry created by the first.
    """
    if sale_line_id is None and booking_id is None:
        raise InvalidInput("A commission entry needs a sale line or a booking")
    if not isinstance(gross_cents, int) or isinstance(gross_cents, bool) or gross_cents < 0:
        raise InvalidInput("gross_cents must be a non-negative integer")

    existing = _find_by_origin(sale_line_id, booking_id)
    if existing is not None:
        return existing

    require_provider(tenant_id, provider_id)

    rate = resolve_commission_rate(tenant_id, provider_id, service_id)
    split = split_amount(gross_cents, rate)

    entry = CommissionEntry(
        tenant_id=tenant_id,
        provider_id=provider_id,
        service_id=service_id,
        sale_id=sale_id,
        sale_line_id=sale_line_id,
        booking_id=booking_id,
        payment_id=payment_id,
        gross_cents=gross_cents,
        auto_provider_cents=split.provider_cents,
        auto_business_cents=split.business_cents,
        provider_cents=split.provider_cents,
        business_cents=split.business_cents,
        provider_pct=rate.provider_pct,
        business_pct=rate.business_pct,
        rate_source=rate.source,
        calculation_method=METHOD_PERCENTAGE,
        tax_withheld_cents=compute_withholding(tenant_id, split.provider_cents),
        state=ENTRY_PENDING,
        tender_method=tender_method,
        notes=notes,
        created_at=utcnow(),
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        winner = _find_by_origin(sale_line_id, booking_id)
        if winner is None:
            raise
        return winner
    return entry


def get_entry(tenant_id: int, entry_id: int) -> CommissionEntry:
    return get_scoped(CommissionEntry, entry_id, tenant_id, label="Commission entry")


def _locked_entry(entry_id: int) -> CommissionEntry:
    return lock_for_update(db.session.query(CommissionEntry).filter_by(id=entry_id)).first()


def approve_entry(tenant_id: int, entry_id: int, actor: str) -> CommissionEntry:
    """PENDING -> APPROVED. Requires the approving actor."""
    if not actor:
        raise InvalidInput("An approving actor is required")
    get_entry(tenant_id, entry_id)

    def _op() -> CommissionEntry:
        entry = _locked_entry(entry_id)
        if entry.state == ENTRY_PAID:
            raise InvalidState(f"Commission entry {entry_id} is already paid")
        if entry.state != ENTRY_PENDING:
            raise InvalidState(f"Commission entry {entry_id} is {entry.state}, expected {ENTRY_PENDING}")
        entry.state = ENTRY_APPROVED
        entry.approved_by = str(actor)
        entry.approved_at = utcnow()
        db.session.commit()
        return entry

    return run_with_retry(_op)


def mark_entry_paid(
    tenant_id: int,
    entry_id: int,
    tender_method: str,
    *,
    actor: str | None = None,
    notes: str | None = None,
) -> CommissionEntry:
    """
    APPROVED -> PAID.

    Raises:
        AlreadyPaid: entry is already PAID
        InvalidState: entry has not been approved yet
        InvalidInput: missing or unknown tender method
    """
    method = (tender_method or "").upper()
    if method not in TENDER_METHODS:
        raise InvalidInput(f"Invalid tender method: {tender_method}. Must be one of {list(TENDER_METHODS)}")
    get_entry(tenant_id, entry_id)

    def _op() -> CommissionEntry:
        entry = _locked_entry(entry_id)
        if entry.state == ENTRY_PAID:
            raise AlreadyPaid(f"Commission entry {entry_id} is already paid")
        if entry.state != ENTRY_APPROVED:
            raise InvalidState(f"Commission entry {entry_id} must be approved before payment")
        entry.state = ENTRY_PAID
        entry.tender_method = method
        entry.paid_by = str(actor) if actor else None
        entry.paid_at = utcnow()
        if notes:
            entry.notes = notes
        db.session.commit()
        return entry

    return run_with_retry(_op)


def _require_amount(label: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidInput(f"{label} must be a non-negative integer")
    return value


def adjust_entry(
    tenant_id: int,
    entry_id: int,
    new_provider_cents: int,
    new_business_cents: int,
    *,
    reason: str,
    actor: str,
) -> CommissionEntry:
    """
    Overwrite the current split of a PENDING or APPROVED entry.

    The new amounts must still add up to the entry's gross. Withholding is
    recomputed on the new provider amount.
    """
    if not reason or not str(reason).strip():
        raise InvalidInput("An adjustment reason is required")
    if not actor:
        raise InvalidInput("An adjusting actor is required")
    new_provider_cents = _require_amount("provider_cents", new_provider_cents)
    new_business_cents = _require_amount("business_cents", new_business_cents)

    get_entry(tenant_id, entry_id)

    config = get_revenue_config(tenant_id)
    if config is not None and not config.allow_manual_adjustments:
        raise InvalidState("Manual commission adjustments are disabled for this tenant")

    def _op() -> CommissionEntry:
        entry = _locked_entry(entry_id)
        if entry.state == ENTRY_PAID:
            raise InvalidState(f"Commission entry {entry_id} is paid and can no longer be adjusted")
        if new_provider_cents + new_business_cents != entry.gross_cents:
            raise InvalidInput(
                "Adjusted amounts must add up to the gross amount",
                details={
                    "gross_cents": entry.gross_cents,
                    "provider_cents": new_provider_cents,
                    "business_cents": new_business_cents,
                },
            )

        db.session.add(
            CommissionAdjustment(
                entry_id=entry.id,
                previous_provider_cents=entry.provider_cents,
                previous_business_cents=entry.business_cents,
                new_provider_cents=new_provider_cents,
                new_business_cents=new_business_cents,
                reason=str(reason).strip(),
                actor=str(actor),
                occurred_at=utcnow(),
            )
        )
        entry.provider_cents = new_provider_cents
        entry.business_cents = new_business_cents
        entry.calculation_method = METHOD_MANUAL
        entry.tax_withheld_cents = compute_withholding(tenant_id, new_provider_cents)
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    current_app.logger.info(
        "Commission entry %s adjusted by %s: provider=%s business=%s",
        entry.id,
        actor,
        entry.provider_cents,
        entry.business_cents,
    )
    return entry


def get_provider_balance(tenant_id: int, provider_id: int, state: str | None = None) -> dict:
    """
    Sum of current provider amounts for a provider, by state.

    With a state filter, balance_cents is the sum for that state only;
    otherwise it is the sum across all states.
    """
    require_provider(tenant_id, provider_id)
    if state is not None:
        state = state.upper()
        if state not in ENTRY_STATES:
            raise InvalidInput(f"Invalid state: {state}. Must be one of {list(ENTRY_STATES)}")

    rows = (
        db.session.query(
            CommissionEntry.state,
            func.coalesce(func.sum(CommissionEntry.provider_cents), 0),
            func.coalesce(func.sum(CommissionEntry.tax_withheld_cents), 0),
            func.count(CommissionEntry.id),
        )
        .filter(
            CommissionEntry.tenant_id == tenant_id,
            CommissionEntry.provider_id == provider_id,
        )
        .group_by(CommissionEntry.state)
        .all()
    )
    by_state = {s: {"amount": int(amount), "withheld": int(withheld), "count": int(count)} for s, amount, withheld, count in rows}

    def _amount(s: str) -> int:
        return by_state.get(s, {}).get("amount", 0)

    total = sum(v["amount"] for v in by_state.values())
    if state is not None:
        balance = _amount(state)
        withheld = by_state.get(state, {}).get("withheld", 0)
        count = by_state.get(state, {}).get("count", 0)
    else:
        balance = total
        withheld = sum(v["withheld"] for v in by_state.values())
        count = sum(v["count"] for v in by_state.values())

    return {
        "provider_id": provider_id,
        "state": state,
        "balance_cents": balance,
        "tax_withheld_cents": withheld,
        "entry_count": count,
        "total_cents": total,
        "pending_cents": _amount(ENTRY_PENDING),
        "approved_cents": _amount(ENTRY_APPROVED),
        "paid_cents": _amount(ENTRY_PAID),
    }


def list_entries(
    tenant_id: int,
    *,
    provider_id: int | None = None,
    state: str | None = None,
    from_dt: datetime | None = None,
    to_dt: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[CommissionEntry], int]:
    query = db.session.query(CommissionEntry).filter(CommissionEntry.tenant_id == tenant_id)
    if provider_id is not None:
        query = query.filter(CommissionEntry.provider_id == provider_id)
    if state:
        query = query.filter(CommissionEntry.state == state.upper())
    if from_dt:
        query = query.filter(CommissionEntry.created_at >= from_dt)
    if to_dt:
        query = query.filter(CommissionEntry.created_at < to_dt)

    total = query.count()
    rows = (
        query.order_by(CommissionEntry.created_at.desc(), CommissionEntry.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 200))
        .all()
    )
    return rows, total
