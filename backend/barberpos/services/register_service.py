"""
Till (Cash Register) Service

Tracks the cash drawer of a tenant for one business day and shift.

DESIGN PRINCIPLES:
- At most one OPEN till per tenant (partial unique index on tills)
- Entries are append-only; a CLOSED till accepts nothing
- expected = opening float + ingress - egress, always derived from entries
- Every append locks the till row and bumps its version, so two
  concurrent appends serialize instead of overwriting each other
- Cash from sales/payments reaches the till only if one is open
  (soft linkage); a missing till is not an error
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AlreadyOpen, InvalidInput, InvalidState
from ..models import Till, TillEntry
from ..models.registers import (
    VARIANCE_NONE,
    DEFAULT_MINOR_VARIANCE_LIMIT,
    ENTRY_EGRESS,
    ENTRY_INGRESS,
    TILL_STATUS_CLOSED,
    TILL_STATUS_OPEN,
)
from barberpos.time_utils import today, utcnow
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import get_scoped, require_tenant


SHIFTS = ("MORNING", "AFTERNOON", "FULL")

INGRESS_CATEGORIES = ("SALE", "OTHER")
EGRESS_CATEGORIES = ("PURCHASE", "EXPENSE", "BANK_WITHDRAWAL")

# Every entry bumps the till version, so busy tills see more conflicts
ENTRY_WRITE_ATTEMPTS = 5


def minor_variance_limit() -> int:
    return int(current_app.config.get("TILL_MINOR_VARIANCE_LIMIT", DEFAULT_MINOR_VARIANCE_LIMIT))


def _require_amount(label: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInput(f"{label} must be an integer amount in minor units")
    return value


def _require_positive(label: str, value) -> int:
    value = _require_amount(label, value)
    if value <= 0:
        raise InvalidInput(f"{label} must be positive")
    return value


# =============================================================================
# OPEN / LOOKUP
# =============================================================================

def get_open_till(tenant_id: int) -> Till | None:
    return db.session.query(Till).filter_by(tenant_id=tenant_id, status=TILL_STATUS_OPEN).first()


def get_till(tenant_id: int, till_id: int) -> Till:
    return get_scoped(Till, till_id, tenant_id, label="Till")


def open_till(
    tenant_id: int,
    opening_float_cents: int,
    *,
    responsible: str,
    shift: str = "FULL",
    business_date: date | None = None,
    notes: str | None = None,
) -> Till:
    """
    Open the tenant's till for a shift.

    Raises:
        AlreadyOpen: the tenant already has an OPEN till (also when a
            concurrent open wins the race at the unique index)
        InvalidInput: negative float, unknown shift, missing responsible
    """
    require_tenant(tenant_id)

    opening_float_cents = _require_amount("opening_float_cents", opening_float_cents)
    if opening_float_cents < 0:
        raise InvalidInput("opening_float_cents cannot be negative")
    shift = (shift or "").upper()
    if shift not in SHIFTS:
        raise InvalidInput(f"Invalid shift: {shift}. Must be one of {list(SHIFTS)}")
    if not responsible or not str(responsible).strip():
        raise InvalidInput("responsible is required")

    existing = get_open_till(tenant_id)
    if existing:
        raise AlreadyOpen(
            f"Tenant already has an open till (till {existing.id})",
            details={"open_till_id": existing.id},
        )

    till = Till(
        tenant_id=tenant_id,
        business_date=business_date or today(),
        shift=shift,
        responsible=str(responsible).strip(),
        status=TILL_STATUS_OPEN,
        opening_float_cents=opening_float_cents,
        opened_at=utcnow(),
        notes=notes,
    )
    db.session.add(till)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current = get_open_till(tenant_id)
        raise AlreadyOpen(
            "Tenant already has an open till",
            details={"open_till_id": current.id if current else None},
        )

    current_app.logger.info("Till %s opened for tenant %s (float %s)", till.id, tenant_id, opening_float_cents)
    return till


# =============================================================================
# ENTRIES
# =============================================================================

def _existing_entry(till_id: int, source_key: str | None) -> TillEntry | None:
    if not source_key:
        return None
    return db.session.query(TillEntry).filter_by(till_id=till_id, source_key=source_key).first()


def _append_entry(
    tenant_id: int,
    till_id: int,
    *,
    entry_type: str,
    amount_cents: int,
    concept: str,
    category: str,
    authorized_by: str | None = None,
    recorded_by: str | None = None,
    sale_id: int | None = None,
    payment_id: int | None = None,
    booking_id: int | None = None,
    source_key: str | None = None,
) -> TillEntry:
    get_till(tenant_id, till_id)

    def _op() -> TillEntry:
        till = lock_for_update(db.session.query(Till).filter_by(id=till_id)).first()
        if till.status != TILL_STATUS_OPEN:
            raise InvalidState(f"Till {till_id} is closed", details={"till_id": till_id})

        existing = _existing_entry(till_id, source_key)
        if existing is not None:
            return existing

        now = utcnow()
        entry = TillEntry(
            till_id=till.id,
            tenant_id=tenant_id,
            entry_type=entry_type,
            amount_cents=amount_cents,
            concept=concept,
            category=category,
            authorized_by=authorized_by,
            recorded_by=recorded_by,
            sale_id=sale_id,
            payment_id=payment_id,
            booking_id=booking_id,
            source_key=source_key,
            occurred_at=now,
        )
        db.session.add(entry)
        till.last_entry_at = now
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            winner = _existing_entry(till_id, source_key)
            if winner is None:
                raise
            return winner
        return entry

    return run_with_retry(_op, attempts=ENTRY_WRITE_ATTEMPTS)


def add_ingress(
    tenant_id: int,
    till_id: int,
    amount_cents: int,
    concept: str,
    *,
    category: str = "OTHER",
    recorded_by: str | None = None,
    sale_id: int | None = None,
    payment_id: int | None = None,
    booking_id: int | None = None,
    source_key: str | None = None,
) -> TillEntry:
    amount_cents = _require_positive("amount_cents", amount_cents)
    category = (category or "").upper()
    if category not in INGRESS_CATEGORIES:
        raise InvalidInput(f"Invalid ingress category: {category}. Must be one of {list(INGRESS_CATEGORIES)}")
    if not concept:
        raise InvalidInput("concept is required")

    return _append_entry(
        tenant_id,
        till_id,
        entry_type=ENTRY_INGRESS,
        amount_cents=amount_cents,
        concept=concept,
        category=category,
        recorded_by=recorded_by,
        sale_id=sale_id,
        payment_id=payment_id,
        booking_id=booking_id,
        source_key=source_key,
    )


def add_egress(
    tenant_id: int,
    till_id: int,
    amount_cents: int,
    concept: str,
    *,
    category: str,
    authorized_by: str,
    recorded_by: str | None = None,
) -> TillEntry:
    """Cash leaving the drawer. Needs an authorizer."""
    amount_cents = _require_positive("amount_cents", amount_cents)
    category = (category or "").upper()
    if category not in EGRESS_CATEGORIES:
        raise InvalidInput(f"Invalid egress category: {category}. Must be one of {list(EGRESS_CATEGORIES)}")
    if not concept:
        raise InvalidInput("concept is required")
    if not authorized_by:
        raise InvalidInput("authorized_by is required for egress")

    return _append_entry(
        tenant_id,
        till_id,
        entry_type=ENTRY_EGRESS,
        amount_cents=amount_cents,
        concept=concept,
        category=category,
        authorized_by=authorized_by,
        recorded_by=recorded_by,
    )


def record_cash_ingress_if_open(
    tenant_id: int,
    amount_cents: int,
    concept: str,
    *,
    source_key: str,
    sale_id: int | None = None,
    payment_id: int | None = None,
    booking_id: int | None = None,
    recorded_by: str | None = None,
) -> TillEntry | None:
    """
    Reflect cash from a sale or payment in the open till, if any.

    Returns None when no till is open (or it closed in the meantime).
    source_key makes repeated calls for the same document a no-op, also
    across tills.
    """
    if amount_cents <= 0:
        return None

    already = db.session.query(TillEntry).filter_by(tenant_id=tenant_id, source_key=source_key).first()
    if already is not None:
        return already

    till = get_open_till(tenant_id)
    if till is None:
        current_app.logger.info(
            "No open till for tenant %s; cash from %s not reflected in any till", tenant_id, source_key
        )
        return None

    try:
        return add_ingress(
            tenant_id,
            till.id,
            amount_cents,
            concept,
            category="SALE",
            recorded_by=recorded_by,
            sale_id=sale_id,
            payment_id=payment_id,
            booking_id=booking_id,
            source_key=source_key,
        )
    except InvalidState:
        current_app.logger.info(
            "Till %s closed before cash from %s could be recorded", till.id, source_key
        )
        return None


# =============================================================================
# CLOSE / REPORTING
# =============================================================================

def breakdown_total_cents(breakdown: dict) -> int:
    """
    Total of a denomination breakdown {denomination_cents: count}.

    Keys may be strings (JSON); counts must be non-negative integers.
    """
    total = 0
    for denomination, count in breakdown.items():
        try:
            value = int(denomination)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid denomination: {denomination}")
        if value <= 0:
            raise InvalidInput(f"Invalid denomination: {denomination}")
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise InvalidInput(f"Invalid count for denomination {denomination}")
        total += value * count
    return total


def close_till(
    tenant_id: int,
    till_id: int,
    counted_cents: int,
    *,
    denomination_breakdown: dict | None = None,
    notes: str | None = None,
    closed_by: str | None = None,
) -> Till:
    """
    Close a till with the counted cash.

    variance = counted - expected; severity NONE/MINOR/HIGH.

    Raises:
        InvalidState: till already closed
        InvalidInput: negative count, or breakdown total != counted
    """
    counted_cents = _require_amount("counted_cents", counted_cents)
    if counted_cents < 0:
        raise InvalidInput("counted_cents cannot be negative")

    if denomination_breakdown is not None:
        if not isinstance(denomination_breakdown, dict):
            raise InvalidInput("denomination_breakdown must be an object")
        breakdown_total = breakdown_total_cents(denomination_breakdown)
        if breakdown_total != counted_cents:
            raise InvalidInput(
                "Denomination breakdown does not match counted amount",
                details={"breakdown_total_cents": breakdown_total, "counted_cents": counted_cents},
            )

    get_till(tenant_id, till_id)

    def _op() -> Till:
        till = lock_for_update(db.session.query(Till).filter_by(id=till_id)).first()
        if till.status != TILL_STATUS_OPEN:
            raise InvalidState(f"Till {till_id} is already closed", details={"till_id": till_id})

        till.status = TILL_STATUS_CLOSED
        till.counted_cents = counted_cents
        till.denomination_breakdown = denomination_breakdown
        till.closed_at = utcnow()
        till.closed_by = closed_by
        if notes:
            till.notes = f"{till.notes}\n{notes}" if till.notes else notes
        db.session.commit()
        return till

    till = run_with_retry(_op)

    severity = till.variance_severity(minor_variance_limit())
    log = current_app.logger.warning if severity != VARIANCE_NONE else current_app.logger.info
    log(
        "Till %s closed for tenant %s: expected=%s counted=%s variance=%s (%s)",
        till.id,
        tenant_id,
        till.expected_cents,
        till.counted_cents,
        till.variance_cents,
        severity,
    )
    return till


def get_till_summary(tenant_id: int, till_id: int) -> dict:
    till = get_till(tenant_id, till_id)
    return till.to_dict(include_entries=True, minor_limit=minor_variance_limit())


def list_tills(
    tenant_id: int,
    *,
    status: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Till], int]:
    query = db.session.query(Till).filter(Till.tenant_id == tenant_id)
    if status:
        query = query.filter(Till.status == status.upper())
    if from_date:
        query = query.filter(Till.business_date >= from_date)
    if to_date:
        query = query.filter(Till.business_date <= to_date)

    total = query.count()
    tills = (
        query.order_by(Till.opened_at.desc(), Till.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 200))
        .all()
    )
    return tills, total
